"""Report-level check filters (company, date range, paid/reviewed, expenses)."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from paydesk.models.filters import ExpenseMode, ReportFilters
from paydesk.models.records import Check


def _naive(value: datetime) -> datetime:
    return value.replace(tzinfo=None) if value.tzinfo is not None else value


def apply_report_filters(checks: Iterable[Check], filters: ReportFilters) -> list[Check]:
    """Filter checks for a report; unpaid and unreviewed checks are excluded by default.

    Checks without a date are dropped when a date range is set.
    """
    kept: list[Check] = []
    start = _naive(filters.start_date) if filters.start_date else None
    end = _naive(filters.end_date) if filters.end_date else None
    employees = set(filters.employee_ids)

    for check in checks:
        if filters.company_id and check.company_id != filters.company_id:
            continue
        if start is not None or end is not None:
            if check.date is None:
                continue
            when = _naive(check.date)
            if start is not None and when < start:
                continue
            if end is not None and when > end:
                continue
        if not filters.include_unpaid and not check.paid:
            continue
        if not filters.include_unreviewed and not check.reviewed:
            continue
        if filters.expense_mode == ExpenseMode.ONLY and not check.is_expense_check:
            continue
        if filters.expense_mode == ExpenseMode.EXCLUDE and check.is_expense_check:
            continue
        if employees and check.employee_id not in employees:
            continue
        kept.append(check)
    return kept
