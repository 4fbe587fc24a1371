"""Report service: loads the record sets and turns them into report snapshots.

``snapshot`` is a one-shot read. ``watch`` keeps four live queries open
(companies, clients, employees, checks) and rebuilds the snapshot whenever
all of them have settled after a change.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, TypeVar

from pydantic import ValidationError

from paydesk.core.config import AppSettings
from paydesk.core.exceptions import ArchiveError
from paydesk.core.protocols import IDocumentStore, IReportArchive
from paydesk.core.types import JsonDict
from paydesk.models.filters import ReportFilters, SecurityScope
from paydesk.models.records import Check, Client, Company, Employee, StoreModel
from paydesk.models.report import CompanyReport, ReportSnapshot
from paydesk.reporting.aggregator import (
    build_client_department_stats,
    build_employee_summary,
    build_report,
    select_checks,
)
from paydesk.sync.live_query import LiveQuery
from paydesk.sync.synchronizer import ChunkedQuerySynchronizer

logger = logging.getLogger(__name__)

COMPANIES = "companies"
CLIENTS = "clients"
EMPLOYEES = "employees"
CHECKS = "checks"

ModelT = TypeVar("ModelT", bound=StoreModel)

ReportCallback = Callable[[ReportSnapshot], None]


def parse_documents(model: type[ModelT], docs: Iterable[JsonDict]) -> list[ModelT]:
    """Validate raw store documents, skipping (and logging) any that do not parse."""
    parsed: list[ModelT] = []
    for doc in docs:
        try:
            parsed.append(model.model_validate(doc))
        except ValidationError as exc:
            logger.warning(
                "Skipping invalid %s document %r: %d error(s)",
                model.__name__, doc.get("id"), exc.error_count(),
            )
    return parsed


class ReportService:
    """Builds report snapshots from a document store."""

    def __init__(
        self,
        settings: AppSettings,
        store: IDocumentStore,
        synchronizer: Optional[ChunkedQuerySynchronizer] = None,
        archive: Optional[IReportArchive] = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.synchronizer = synchronizer or ChunkedQuerySynchronizer(
            store, chunk_size=settings.query.chunk_size,
        )
        self._archive = archive

    def check_filters(self, scope: SecurityScope) -> dict[str, Any]:
        """Store-side filter for the checks collection under ``scope``."""
        if scope.role == self.settings.query.admin_role or scope.company_ids is None:
            return {}
        return {"companyId": list(scope.company_ids)}

    async def load(self, collection: str, filters: Optional[dict[str, Any]] = None) -> list[JsonDict]:
        return await self.synchronizer.fetch(collection, filters)

    async def snapshot(self, scope: SecurityScope, filters: Optional[ReportFilters] = None) -> ReportSnapshot:
        companies, clients, employees, checks = await asyncio.gather(
            self.load(COMPANIES),
            self.load(CLIENTS),
            self.load(EMPLOYEES),
            self.load(CHECKS, self.check_filters(scope)),
        )
        return self.build(scope, filters, companies, clients, employees, checks)

    def build(
        self,
        scope: SecurityScope,
        filters: Optional[ReportFilters],
        companies: Iterable[JsonDict],
        clients: Iterable[JsonDict],
        employees: Iterable[JsonDict],
        checks: Iterable[JsonDict],
    ) -> ReportSnapshot:
        """Derive a snapshot from raw record sets."""
        filters = filters or ReportFilters()
        report_settings = self.settings.report
        admin_role = self.settings.query.admin_role

        company_models = parse_documents(Company, companies)
        client_models = parse_documents(Client, clients)
        employee_models = parse_documents(Employee, employees)
        visible = select_checks(
            parse_documents(Check, checks), scope, filters, admin_role=admin_role,
        )

        reports = build_report(
            company_models, client_models, visible,
            holiday_as_pto=report_settings.holiday_as_pto,
            reconcile_tolerance=report_settings.reconcile_tolerance,
            admin_role=admin_role,
        )
        return ReportSnapshot(
            reports=reports,
            department_stats=build_client_department_stats(
                reports, client_models, include_inactive=filters.include_inactive,
            ),
            employee_summary=build_employee_summary(
                visible, employee_models, company_models,
                company_id=filters.company_id,
                employee_ids=filters.employee_ids or None,
                holiday_as_pto=report_settings.holiday_as_pto,
            ),
        )

    def watch(
        self,
        scope: SecurityScope,
        filters: Optional[ReportFilters] = None,
        on_report: Optional[ReportCallback] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> ReportView:
        """Open a live report view. Must be called from a running event loop."""
        return ReportView(self, scope, filters or ReportFilters(), on_report, on_error)

    def archive(self, data: ReportSnapshot | list[CompanyReport], name: Optional[str] = None) -> str:
        """Serialize reports to JSON and store them. Returns the archive key."""
        if self._archive is None:
            raise ArchiveError("No report archive configured")
        if isinstance(data, list):
            data = ReportSnapshot(reports=data)
        if name is None:
            name = f"report-{datetime.now(timezone.utc):%Y%m%dT%H%M%SZ}.json"
        key = self._archive.save(name, data.model_dump_json(by_alias=True).encode())
        logger.info("Archived %d company report(s) to %s", len(data.reports), key)
        return key

    def load_archived(self, key: str) -> ReportSnapshot:
        if self._archive is None:
            raise ArchiveError("No report archive configured")
        return ReportSnapshot.model_validate_json(self._archive.load(key))


class ReportView:
    """Live report for one scope and one set of report filters.

    Only the checks query depends on the scope. Changing the report filters
    re-derives the snapshot from the cached record sets; changing the scope
    also re-points the checks query, which closes its old listeners first.
    """

    def __init__(
        self,
        service: ReportService,
        scope: SecurityScope,
        filters: ReportFilters,
        on_report: Optional[ReportCallback],
        on_error: Optional[Callable[[Exception], None]],
    ) -> None:
        self._service = service
        self._scope = scope
        self._filters = filters
        self._on_report = on_report
        self._on_error = on_error
        self._ready = False
        self._closed = False
        self.snapshot: ReportSnapshot | None = None

        sync = service.synchronizer
        self._queries: dict[str, LiveQuery] = {
            COMPANIES: LiveQuery(sync, COMPANIES, on_change=self._on_query_change),
            CLIENTS: LiveQuery(sync, CLIENTS, on_change=self._on_query_change),
            EMPLOYEES: LiveQuery(sync, EMPLOYEES, on_change=self._on_query_change),
            CHECKS: LiveQuery(
                sync, CHECKS, service.check_filters(scope), on_change=self._on_query_change,
            ),
        }
        self._ready = True
        self._refresh()

    @property
    def scope(self) -> SecurityScope:
        return self._scope

    @property
    def filters(self) -> ReportFilters:
        return self._filters

    @property
    def loading(self) -> bool:
        return any(query.loading for query in self._queries.values())

    @property
    def error(self) -> Exception | None:
        for query in self._queries.values():
            if query.error is not None:
                return query.error
        return None

    @property
    def reports(self) -> list[CompanyReport]:
        return self.snapshot.reports if self.snapshot is not None else []

    def set_filters(self, filters: ReportFilters) -> None:
        if filters == self._filters:
            return
        self._filters = filters
        self._refresh()

    def set_scope(self, scope: SecurityScope) -> None:
        if scope == self._scope:
            return
        self._scope = scope
        # nothing derived under the old scope may outlive it
        self.snapshot = None
        if not self._queries[CHECKS].set_filters(self._service.check_filters(scope)):
            # same store query, but visibility still changed
            self._refresh()

    def refetch(self) -> None:
        for query in self._queries.values():
            query.refetch()

    def close(self) -> None:
        self._closed = True
        for query in self._queries.values():
            query.close()

    def _on_query_change(self, query: LiveQuery) -> None:
        if self._ready:
            self._refresh()

    def _refresh(self) -> None:
        if self._closed or self.loading:
            return
        error = self.error
        if error is not None:
            self._report_error(error)
            return
        self.snapshot = self._service.build(
            self._scope, self._filters,
            *(self._queries[name].data for name in (COMPANIES, CLIENTS, EMPLOYEES, CHECKS)),
        )
        if self._on_report is None:
            return
        try:
            self._on_report(self.snapshot)
        except Exception:
            logger.exception("Report handler failed")

    def _report_error(self, error: Exception) -> None:
        logger.warning("Live report is stale: %s", error)
        if self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception:
            logger.exception("Report error handler failed")
