"""Report models: pay breakdowns and the nested company report structure.

Every node carries the five pay buckets; ``total_amount`` is always derived
from them and is never read from a check's stored ``amount``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, computed_field
from pydantic.alias_generators import to_camel

from paydesk.models.records import Check, Company

ZERO = Decimal("0")

BUCKETS = ("hourly", "perdiem", "pto", "other_pay", "expense")


class PayBreakdown(BaseModel):
    """Pay computed for one check or one relationship slice."""

    model_config = {"frozen": True}

    hourly: Decimal = ZERO
    perdiem: Decimal = ZERO
    pto: Decimal = ZERO
    other_pay: Decimal = ZERO
    expense: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.hourly + self.perdiem + self.pto + self.other_pay + self.expense

    def __add__(self, other: PayBreakdown) -> PayBreakdown:
        return PayBreakdown(**{name: getattr(self, name) + getattr(other, name) for name in BUCKETS})


class ReportModel(BaseModel):
    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class PayTotals(ReportModel):
    hourly_amount: Decimal = ZERO
    perdiem_amount: Decimal = ZERO
    pto_amount: Decimal = ZERO
    other_pay_amount: Decimal = ZERO
    expenses_amount: Decimal = ZERO

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_amount(self) -> Decimal:
        return (
            self.hourly_amount + self.perdiem_amount + self.pto_amount
            + self.other_pay_amount + self.expenses_amount
        )

    @staticmethod
    def fields_from(pay: PayBreakdown) -> dict[str, Decimal]:
        return {
            "hourly_amount": pay.hourly,
            "perdiem_amount": pay.perdiem,
            "pto_amount": pay.pto,
            "other_pay_amount": pay.other_pay,
            "expenses_amount": pay.expense,
        }


class BreakdownCell(PayTotals):
    """Pay for one (division, client) pair within a company."""

    division_name: str
    client_id: Optional[str] = None
    client_name: str = ""
    total_checks: int = 0
    check_ids: list[str] = Field(default_factory=list)


class DivisionBreakdown(PayTotals):
    division_name: str
    total_checks: int = 0
    clients: list[BreakdownCell] = Field(default_factory=list)
    checks: list[Check] = Field(default_factory=list)


class ClientBreakdown(PayTotals):
    client_id: Optional[str] = None
    client_name: str = ""
    total_checks: int = 0
    divisions: list[BreakdownCell] = Field(default_factory=list)
    checks: list[Check] = Field(default_factory=list)


class TotalMismatch(ReportModel):
    """Stored check amount disagrees with the computed pay."""

    check_id: str
    stored_amount: Decimal
    computed_amount: Decimal
    difference: Decimal


class CompanyReport(PayTotals):
    company: Company
    total_checks: int = 0
    division_breakdown: list[DivisionBreakdown] = Field(default_factory=list)
    client_breakdown: list[ClientBreakdown] = Field(default_factory=list)
    checks: list[Check] = Field(default_factory=list)
    mismatches: list[TotalMismatch] = Field(default_factory=list)


class ClientDepartmentStats(PayTotals):
    """Flat client/division rollup across companies."""

    client_id: Optional[str] = None
    client_name: str = ""
    division_name: str = ""
    company_names: list[str] = Field(default_factory=list)
    total_checks: int = 0
    active: bool = True
    is_expense_row: bool = False


class EmployeeSummary(ReportModel):
    employee_id: str
    employee_name: str = ""
    company_name: str = ""
    total_checks: int = 0
    total_amount: Decimal = ZERO
    average_per_check: Decimal = ZERO


class ReportSnapshot(ReportModel):
    """Everything derived from one consistent read of the record sets."""

    reports: list[CompanyReport] = Field(default_factory=list)
    department_stats: list[ClientDepartmentStats] = Field(default_factory=list)
    employee_summary: list[EmployeeSummary] = Field(default_factory=list)
