"""Report endpoints.

The caller's role and visible clients arrive as query parameters; the
gateway in front of this service is responsible for authenticating them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from paydesk.core.exceptions import PaydeskError
from paydesk.models.filters import ReportFilters, Role, SecurityScope
from paydesk.models.report import ReportSnapshot
from paydesk.services.report_service import ReportService

router = APIRouter(tags=["reports"])


def get_report_service(request: Request) -> ReportService:
    return request.app.state.report_service


def get_scope(
    role: str = Role.USER,
    visible_client_ids: Annotated[list[str], Query()] = [],
    company_ids: Annotated[Optional[list[str]], Query()] = None,
) -> SecurityScope:
    return SecurityScope(
        role=role,
        visible_client_ids=tuple(visible_client_ids),
        company_ids=tuple(company_ids) if company_ids is not None else None,
    )


def get_filters(
    company_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    include_unpaid: bool = False,
    include_unreviewed: bool = False,
    include_inactive: bool = False,
) -> ReportFilters:
    return ReportFilters(
        company_id=company_id,
        start_date=start_date,
        end_date=end_date,
        include_unpaid=include_unpaid,
        include_unreviewed=include_unreviewed,
        include_inactive=include_inactive,
    )


async def _snapshot(service: ReportService, scope: SecurityScope, filters: ReportFilters) -> ReportSnapshot:
    try:
        return await service.snapshot(scope, filters)
    except PaydeskError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


def _dump(items: list[Any]) -> list[dict]:
    return [item.model_dump(mode="json", by_alias=True) for item in items]


@router.get("")
async def get_reports(
    service: Annotated[ReportService, Depends(get_report_service)],
    scope: Annotated[SecurityScope, Depends(get_scope)],
    filters: Annotated[ReportFilters, Depends(get_filters)],
) -> list[dict]:
    """Company reports, largest total first."""
    snapshot = await _snapshot(service, scope, filters)
    return _dump(snapshot.reports)


@router.get("/departments")
async def get_department_stats(
    service: Annotated[ReportService, Depends(get_report_service)],
    scope: Annotated[SecurityScope, Depends(get_scope)],
    filters: Annotated[ReportFilters, Depends(get_filters)],
) -> list[dict]:
    """Client/division rows across companies; the Expenses row comes last."""
    snapshot = await _snapshot(service, scope, filters)
    return _dump(snapshot.department_stats)


@router.get("/employees")
async def get_employee_summary(
    service: Annotated[ReportService, Depends(get_report_service)],
    scope: Annotated[SecurityScope, Depends(get_scope)],
    filters: Annotated[ReportFilters, Depends(get_filters)],
) -> list[dict]:
    snapshot = await _snapshot(service, scope, filters)
    return _dump(snapshot.employee_summary)
