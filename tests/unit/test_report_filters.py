"""Tests for report-level check filters."""

from __future__ import annotations

from datetime import datetime, timezone

from paydesk.models.filters import ExpenseMode, ReportFilters
from paydesk.models.records import Check
from paydesk.reporting.filters import apply_report_filters


def _check(check_id: str, **kwargs) -> Check:
    fields = {"company_id": "co-1", "paid": True, "reviewed": True, "date": datetime(2024, 3, 8)}
    fields.update(kwargs)
    return Check(id=check_id, **fields)


def _ids(checks):
    return [check.id for check in checks]


def test_unpaid_and_unreviewed_excluded_by_default():
    checks = [_check("c1"), _check("c2", paid=False), _check("c3", reviewed=False)]
    assert _ids(apply_report_filters(checks, ReportFilters())) == ["c1"]


def test_include_flags():
    checks = [_check("c1"), _check("c2", paid=False), _check("c3", reviewed=False)]
    filters = ReportFilters(include_unpaid=True, include_unreviewed=True)
    assert _ids(apply_report_filters(checks, filters)) == ["c1", "c2", "c3"]


def test_company_filter():
    checks = [_check("c1"), _check("c2", company_id="co-2")]
    assert _ids(apply_report_filters(checks, ReportFilters(company_id="co-2"))) == ["c2"]


def test_date_range_is_inclusive():
    checks = [
        _check("c1", date=datetime(2024, 3, 1)),
        _check("c2", date=datetime(2024, 3, 15)),
        _check("c3", date=datetime(2024, 3, 16)),
        _check("c4", date=None),
    ]
    filters = ReportFilters(start_date=datetime(2024, 3, 1), end_date=datetime(2024, 3, 15))
    assert _ids(apply_report_filters(checks, filters)) == ["c1", "c2"]


def test_aware_and_naive_dates_compare():
    checks = [_check("c1", date=datetime(2024, 3, 8, tzinfo=timezone.utc))]
    filters = ReportFilters(start_date=datetime(2024, 3, 1))
    assert _ids(apply_report_filters(checks, filters)) == ["c1"]


def test_expense_modes():
    checks = [_check("c1"), _check("c2", is_expense=True)]
    assert _ids(apply_report_filters(checks, ReportFilters(expense_mode=ExpenseMode.ONLY))) == ["c2"]
    assert _ids(apply_report_filters(checks, ReportFilters(expense_mode=ExpenseMode.EXCLUDE))) == ["c1"]


def test_employee_filter():
    checks = [_check("c1", employee_id="e1"), _check("c2", employee_id="e2")]
    assert _ids(apply_report_filters(checks, ReportFilters(employee_ids=("e2",)))) == ["c2"]
