"""Client-visibility filter applied before any classification or aggregation."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from paydesk.models.filters import Role, SecurityScope
from paydesk.models.records import Check

logger = logging.getLogger(__name__)


def filter_visible(
    checks: Iterable[Check],
    role: str,
    visible_client_ids: Iterable[str],
    company_ids: Optional[Iterable[str]] = None,
    *,
    admin_role: str = Role.ADMIN,
) -> list[Check]:
    """Keep only checks the caller may see.

    The admin role sees everything. Anyone else sees a check only when its
    direct client or one of its relationship clients is visible, and (when
    ``company_ids`` is given) the check's company is assigned to them.
    """
    checks = list(checks)
    if role == admin_role:
        return checks

    visible = set(visible_client_ids)
    companies = set(company_ids) if company_ids is not None else None

    kept = [
        check for check in checks
        if (companies is None or check.company_id in companies)
        and any(client_id in visible for client_id in check.client_ids())
    ]
    if len(kept) != len(checks):
        logger.debug("Security filter kept %d of %d checks for role %r", len(kept), len(checks), role)
    return kept


def filter_scope(checks: Iterable[Check], scope: SecurityScope, *, admin_role: str = Role.ADMIN) -> list[Check]:
    return filter_visible(
        checks, scope.role, scope.visible_client_ids, scope.company_ids, admin_role=admin_role,
    )
