"""Hierarchical report aggregation: company -> division -> client -> pay bucket.

Every check is split into slices (its relationship details, or the check
itself when it has none), each slice is classified into a division and
priced by the pay calculator, and the results are accumulated into
(division, client) cells. Division, client and company totals are all sums
of those cells, so every level adds up exactly to its parent.

All functions here are pure over their arguments.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from paydesk.core.exceptions import InconsistentTotalWarning
from paydesk.models.filters import ReportFilters, Role, SecurityScope
from paydesk.models.records import Check, Client, Company, Employee, RelationshipDetail
from paydesk.models.report import (
    ZERO,
    BreakdownCell,
    ClientBreakdown,
    ClientDepartmentStats,
    CompanyReport,
    DivisionBreakdown,
    EmployeeSummary,
    PayBreakdown,
    PayTotals,
    TotalMismatch,
)
from paydesk.reporting.division import EXPENSES_DIVISION, classify
from paydesk.reporting.filters import apply_report_filters
from paydesk.reporting.pay import compute_check_pay, compute_pay, pay_slices
from paydesk.reporting.security import filter_scope

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "Unknown Client"
DEFAULT_TOLERANCE = Decimal("0.01")
CENT = Decimal("0.01")


# ---------------------------------------------------------------------------
# Accumulators
# ---------------------------------------------------------------------------

@dataclass
class _Cell:
    division_name: str
    client_id: Optional[str]
    client_name: str
    pay: PayBreakdown = field(default_factory=PayBreakdown)
    check_ids: list[str] = field(default_factory=list)

    def add(self, check: Check, pay: PayBreakdown) -> None:
        self.pay = self.pay + pay
        if check.id not in self.check_ids:
            self.check_ids.append(check.id)

    def to_model(self) -> BreakdownCell:
        return BreakdownCell(
            division_name=self.division_name,
            client_id=self.client_id,
            client_name=self.client_name,
            total_checks=len(self.check_ids),
            check_ids=list(self.check_ids),
            **PayTotals.fields_from(self.pay),
        )


@dataclass
class _Group:
    """Division or client bucket: ordered cells plus its deduplicated checks."""

    cells: dict[tuple, _Cell] = field(default_factory=dict)
    checks: dict[str, Check] = field(default_factory=dict)

    def add_check(self, check: Check) -> None:
        self.checks.setdefault(check.id, check)

    def pay(self) -> PayBreakdown:
        total = PayBreakdown()
        for cell in self.cells.values():
            total = total + cell.pay
        return total


def _client_for_slice(
    check: Check,
    relationship: Optional[RelationshipDetail],
    clients: dict[str, Client],
) -> tuple[Optional[str], str]:
    client_id = relationship.client_id if relationship is not None else check.client_id
    client = clients.get(client_id) if client_id else None
    if relationship is not None and relationship.client_name:
        return client_id, relationship.client_name
    if client is not None and client.name:
        return client_id, client.name
    return client_id, UNKNOWN_CLIENT


def _client_key(client_id: Optional[str], client_name: str) -> tuple:
    return ("id", client_id) if client_id else ("name", client_name)


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------

def reconcile(
    check: Check,
    computed: Optional[PayBreakdown] = None,
    *,
    tolerance: Decimal = DEFAULT_TOLERANCE,
    holiday_as_pto: bool = False,
) -> Optional[InconsistentTotalWarning]:
    """Compare a check's stored amount with its computed pay.

    Returns a warning when they differ by more than ``tolerance``; checks
    with no stored amount are not compared.
    """
    if check.amount is None:
        return None
    if computed is None:
        computed = compute_check_pay(check, holiday_as_pto=holiday_as_pto)
    if abs(check.amount - computed.total) > tolerance:
        return InconsistentTotalWarning(check.id, check.amount, computed.total)
    return None


# ---------------------------------------------------------------------------
# Company reports
# ---------------------------------------------------------------------------

def _build_company_report(
    company: Company,
    checks: list[Check],
    clients: dict[str, Client],
    *,
    holiday_as_pto: bool,
    tolerance: Decimal,
) -> CompanyReport:
    divisions: dict[str, _Group] = {}
    client_groups: dict[tuple, _Group] = {}
    client_labels: dict[tuple, tuple[Optional[str], str]] = {}
    mismatches: list[TotalMismatch] = []

    for check in checks:
        check_pay = PayBreakdown()
        for rel in pay_slices(check):
            division_name = classify(check, rel, clients)
            client_id, client_name = _client_for_slice(check, rel, clients)
            ckey = _client_key(client_id, client_name)
            client_labels.setdefault(ckey, (client_id, client_name))

            division = divisions.setdefault(division_name, _Group())
            client_group = client_groups.setdefault(ckey, _Group())
            cell = division.cells.get(ckey)
            if cell is None:
                cell = _Cell(division_name, *client_labels[ckey])
                division.cells[ckey] = cell
                client_group.cells[(division_name,)] = cell

            pay = compute_pay(check, rel, holiday_as_pto=holiday_as_pto)
            cell.add(check, pay)
            division.add_check(check)
            client_group.add_check(check)
            check_pay = check_pay + pay

        warning = reconcile(check, check_pay, tolerance=tolerance)
        if warning is not None:
            logger.warning("%s", warning)
            mismatches.append(TotalMismatch(
                check_id=warning.check_id,
                stored_amount=warning.stored,
                computed_amount=warning.computed,
                difference=warning.difference,
            ))

    division_breakdown = [
        DivisionBreakdown(
            division_name=name,
            total_checks=len(group.checks),
            clients=[cell.to_model() for cell in group.cells.values()],
            checks=list(group.checks.values()),
            **PayTotals.fields_from(group.pay()),
        )
        for name, group in divisions.items()
    ]
    client_breakdown = [
        ClientBreakdown(
            client_id=client_labels[ckey][0],
            client_name=client_labels[ckey][1],
            total_checks=len(group.checks),
            divisions=[cell.to_model() for cell in group.cells.values()],
            checks=list(group.checks.values()),
            **PayTotals.fields_from(group.pay()),
        )
        for ckey, group in client_groups.items()
    ]

    company_pay = PayBreakdown()
    for group in divisions.values():
        company_pay = company_pay + group.pay()

    return CompanyReport(
        company=company,
        total_checks=len(checks),
        division_breakdown=division_breakdown,
        client_breakdown=client_breakdown,
        checks=checks,
        mismatches=mismatches,
        **PayTotals.fields_from(company_pay),
    )


def select_checks(
    checks: Iterable[Check],
    scope: Optional[SecurityScope] = None,
    filters: Optional[ReportFilters] = None,
    *,
    admin_role: str = Role.ADMIN,
) -> list[Check]:
    """Security filter first, then report filters. A ``None`` scope trusts the caller."""
    visible = filter_scope(checks, scope, admin_role=admin_role) if scope is not None else list(checks)
    if filters is not None:
        visible = apply_report_filters(visible, filters)
    return visible


def build_report(
    companies: Iterable[Company],
    clients: Iterable[Client],
    checks: Iterable[Check],
    scope: Optional[SecurityScope] = None,
    *,
    filters: Optional[ReportFilters] = None,
    holiday_as_pto: bool = False,
    reconcile_tolerance: Decimal = DEFAULT_TOLERANCE,
    admin_role: str = Role.ADMIN,
) -> list[CompanyReport]:
    """Build per-company reports, largest total first.

    The security scope is applied before anything else; a ``None`` scope
    means the caller has already restricted ``checks``. Companies with no
    matching checks are left out.
    """
    visible = select_checks(checks, scope, filters, admin_role=admin_role)

    client_map = {client.id: client for client in clients}
    by_company: dict[str, list[Check]] = {}
    for check in visible:
        by_company.setdefault(check.company_id, []).append(check)

    reports: list[CompanyReport] = []
    for company in companies:
        company_checks = by_company.get(company.id)
        if not company_checks:
            continue
        reports.append(_build_company_report(
            company, company_checks, client_map,
            holiday_as_pto=holiday_as_pto, tolerance=reconcile_tolerance,
        ))

    # sorted() is stable, so ties keep the companies' input order
    return sorted(reports, key=lambda report: report.total_amount, reverse=True)


# ---------------------------------------------------------------------------
# Flat rollups
# ---------------------------------------------------------------------------

@dataclass
class _StatsRow:
    client_id: Optional[str]
    client_name: str
    division_name: str
    pay: PayBreakdown = field(default_factory=PayBreakdown)
    check_ids: list[str] = field(default_factory=list)
    company_names: list[str] = field(default_factory=list)

    def add(self, cell: BreakdownCell, company_name: str) -> None:
        self.pay = self.pay + PayBreakdown(
            hourly=cell.hourly_amount,
            perdiem=cell.perdiem_amount,
            pto=cell.pto_amount,
            other_pay=cell.other_pay_amount,
            expense=cell.expenses_amount,
        )
        for check_id in cell.check_ids:
            if check_id not in self.check_ids:
                self.check_ids.append(check_id)
        if company_name not in self.company_names:
            self.company_names.append(company_name)


def build_client_department_stats(
    reports: Iterable[CompanyReport],
    clients: Iterable[Client],
    *,
    include_inactive: bool = False,
) -> list[ClientDepartmentStats]:
    """Flatten company reports into client/division rows across companies.

    Rows are ordered by descending total. All expense cells are folded into
    one synthetic ``Expenses`` row, appended last when any exist.
    """
    client_map = {client.id: client for client in clients}
    rows: dict[tuple, _StatsRow] = {}
    expenses: Optional[_StatsRow] = None

    for report in reports:
        company_name = report.company.name
        for division in report.division_breakdown:
            for cell in division.clients:
                if division.division_name == EXPENSES_DIVISION:
                    if expenses is None:
                        expenses = _StatsRow(None, EXPENSES_DIVISION, EXPENSES_DIVISION)
                    expenses.add(cell, company_name)
                    continue
                key = (_client_key(cell.client_id, cell.client_name), division.division_name)
                row = rows.get(key)
                if row is None:
                    row = rows[key] = _StatsRow(cell.client_id, cell.client_name, division.division_name)
                row.add(cell, company_name)

    stats: list[ClientDepartmentStats] = []
    for row in rows.values():
        client = client_map.get(row.client_id) if row.client_id else None
        active = client.active if client is not None else True
        if not active and not include_inactive:
            continue
        stats.append(ClientDepartmentStats(
            client_id=row.client_id,
            client_name=row.client_name,
            division_name=row.division_name,
            company_names=row.company_names,
            total_checks=len(row.check_ids),
            active=active,
            **PayTotals.fields_from(row.pay),
        ))
    stats.sort(key=lambda item: item.total_amount, reverse=True)

    if expenses is not None:
        stats.append(ClientDepartmentStats(
            client_name=EXPENSES_DIVISION,
            division_name=EXPENSES_DIVISION,
            company_names=expenses.company_names,
            total_checks=len(expenses.check_ids),
            is_expense_row=True,
            **PayTotals.fields_from(expenses.pay),
        ))
    return stats


def build_employee_summary(
    checks: Iterable[Check],
    employees: Iterable[Employee],
    companies: Iterable[Company],
    *,
    company_id: Optional[str] = None,
    employee_ids: Optional[Iterable[str]] = None,
    holiday_as_pto: bool = False,
) -> list[EmployeeSummary]:
    """Per-employee check count, computed total and average per check.

    Explicit ``employee_ids`` win over the company filter. Employees with
    no checks are omitted. Sorted by company name, then employee name.
    """
    company_names = {company.id: company.name for company in companies}
    wanted = set(employee_ids or ())
    by_employee: dict[str, list[Check]] = {}
    for check in checks:
        if check.employee_id:
            by_employee.setdefault(check.employee_id, []).append(check)

    summaries: list[EmployeeSummary] = []
    for employee in employees:
        if wanted:
            if employee.id not in wanted:
                continue
        elif company_id is not None and employee.company_id != company_id:
            continue
        employee_checks = by_employee.get(employee.id)
        if not employee_checks:
            continue
        total = sum(
            (compute_check_pay(check, holiday_as_pto=holiday_as_pto).total for check in employee_checks),
            ZERO,
        )
        summaries.append(EmployeeSummary(
            employee_id=employee.id,
            employee_name=employee.name,
            company_name=company_names.get(employee.company_id, "Unknown"),
            total_checks=len(employee_checks),
            total_amount=total,
            average_per_check=(total / len(employee_checks)).quantize(CENT, rounding=ROUND_HALF_UP),
        ))

    summaries.sort(key=lambda item: (item.company_name, item.employee_name))
    return summaries
