"""Pay calculation for one check or one relationship slice of a check.

Relationship-level fields take priority over check-level fields field by
field: each value falls back to the check only when the relationship value
is absent (``None``). Zero is a real value and does not fall back.
"""

from __future__ import annotations

from decimal import Decimal
from typing import NamedTuple, Optional, TypeVar

from paydesk.models.records import WEEKDAYS, Check, OtherPayItem, PayType, RelationshipDetail
from paydesk.models.report import ZERO, PayBreakdown

OVERTIME_MULTIPLIER = Decimal("1.5")
HOLIDAY_MULTIPLIER = Decimal("2.0")

_T = TypeVar("_T")


class HourlyPay(NamedTuple):
    regular: Decimal
    overtime: Decimal
    holiday: Decimal

    @property
    def total(self) -> Decimal:
        return self.regular + self.overtime + self.holiday


def _pick(rel_value: Optional[_T], check_value: Optional[_T]) -> Optional[_T]:
    return rel_value if rel_value is not None else check_value


def _num(value: Optional[Decimal]) -> Decimal:
    return value if value is not None else ZERO


def effective_pay_type(check: Check, relationship: Optional[RelationshipDetail] = None) -> Optional[str]:
    if check.is_expense_check:
        return PayType.EXPENSE
    if relationship is not None and relationship.pay_type:
        return relationship.pay_type
    return check.pay_type


def pay_slices(check: Check) -> list[Optional[RelationshipDetail]]:
    """The units a check is split into for classification and pay.

    Expense checks are one slice so the amount is never counted twice.
    ``None`` stands for the check itself as its single implicit relationship.
    """
    if check.is_expense_check or not check.relationship_details:
        return [None]
    return list(check.relationship_details)


def hourly_pay(check: Check, relationship: Optional[RelationshipDetail] = None) -> HourlyPay:
    rel = relationship or RelationshipDetail()
    rate = _num(_pick(rel.pay_rate, check.pay_rate))
    hours = _num(_pick(rel.hours, check.hours))
    ot_hours = _num(_pick(rel.ot_hours, check.overtime_hours))
    holiday_hours = _num(_pick(rel.holiday_hours, check.holiday_hours))

    ot_rate = _pick(rel.ot_rate, check.overtime_rate)
    if ot_rate is None:
        ot_rate = rate * OVERTIME_MULTIPLIER
    holiday_rate = _pick(rel.holiday_rate, check.holiday_rate)
    if holiday_rate is None:
        holiday_rate = rate * HOLIDAY_MULTIPLIER

    return HourlyPay(
        regular=hours * rate,
        overtime=ot_hours * ot_rate,
        holiday=holiday_hours * holiday_rate,
    )


def perdiem_pay(check: Check, relationship: Optional[RelationshipDetail] = None) -> Decimal:
    rel = relationship or RelationshipDetail()
    if _pick(rel.perdiem_breakdown, check.perdiem_breakdown):
        return sum(
            (_num(_pick(rel.perdiem_day(day), check.perdiem_day(day))) for day in WEEKDAYS),
            ZERO,
        )
    return _num(_pick(rel.perdiem_amount, check.perdiem_amount))


def other_pay_total(items: Optional[list[OtherPayItem]]) -> Decimal:
    return sum((_num(item.amount) for item in items or []), ZERO)


def compute_pay(
    check: Check,
    relationship: Optional[RelationshipDetail] = None,
    *,
    holiday_as_pto: bool = False,
) -> PayBreakdown:
    """Compute the five pay buckets for a check or one of its relationships.

    Hourly-type slices get hourly pay, per-diem-type slices get per-diem and
    flat PTO, ``mixed`` or unspecified types get both. Other pay is always
    its own bucket. With ``holiday_as_pto`` the holiday portion of hourly
    pay is reported as PTO instead of hourly.
    """
    pay_type = effective_pay_type(check, relationship)
    if pay_type == PayType.EXPENSE:
        return PayBreakdown(expense=check.stored_amount)

    rel = relationship or RelationshipDetail()
    wants_hourly = pay_type != PayType.PERDIEM
    wants_perdiem = pay_type != PayType.HOURLY

    hourly = ZERO
    pto = ZERO
    if wants_hourly:
        parts = hourly_pay(check, relationship)
        if holiday_as_pto:
            hourly = parts.regular + parts.overtime
            pto += parts.holiday
        else:
            hourly = parts.total

    perdiem = ZERO
    if wants_perdiem:
        perdiem = perdiem_pay(check, relationship)
        pto += _num(_pick(rel.pto_amount, check.pto_amount))

    other = other_pay_total(_pick(rel.other_pay, check.other_pay))

    return PayBreakdown(hourly=hourly, perdiem=perdiem, pto=pto, other_pay=other)


def compute_check_pay(check: Check, *, holiday_as_pto: bool = False) -> PayBreakdown:
    """Pay summed over every slice of a check."""
    total = PayBreakdown()
    for rel in pay_slices(check):
        total = total + compute_pay(check, rel, holiday_as_pto=holiday_as_pto)
    return total
