"""Store records: checks, relationship details, clients, companies, employees.

Documents arrive from the store with camelCase field names; every model
accepts either the camelCase alias or the snake_case attribute name.
Numeric inputs are coerced leniently: anything that does not parse to a
finite number becomes ``None`` ("absent"), and absent is treated as zero
by the pay calculator. A ``null`` in a flag, text or list field falls back
to the field default instead of rejecting the document.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import StrEnum
from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    BeforeValidator,
    Field,
    ValidationError,
    ValidatorFunctionWrapHandler,
    WrapValidator,
)
from pydantic.alias_generators import to_camel


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            parsed = Decimal(text)
        except (InvalidOperation, ValueError):
            return None
    return parsed if parsed.is_finite() else None


def _to_flag(value: Any) -> bool | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "1"}
    return bool(value)


def _to_text(value: Any) -> Any:
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return str(value)
    return value


def _defaulting(default: Any, coerce=None):
    """Map ``None`` to ``default`` (copied for lists), else apply ``coerce``."""
    def validate(value: Any) -> Any:
        if value is None:
            return list(default) if isinstance(default, list) else default
        return coerce(value) if coerce is not None else value
    return validate


def _or_none(value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
    try:
        return handler(value)
    except ValidationError:
        return None


Amount = Annotated[Optional[Decimal], BeforeValidator(_to_decimal)]
Flag = Annotated[Optional[bool], BeforeValidator(_to_flag)]
Bool = Annotated[bool, BeforeValidator(_defaulting(False, _to_flag))]
ActiveFlag = Annotated[bool, BeforeValidator(_defaulting(True, _to_flag))]
Text = Annotated[str, BeforeValidator(_defaulting("", _to_text))]
OptionalText = Annotated[Optional[str], BeforeValidator(_to_text)]
IdList = Annotated[list[str], BeforeValidator(_defaulting([]))]
CheckNumber = Annotated[Optional[int], WrapValidator(_or_none)]
Timestamp = Annotated[Optional[datetime], WrapValidator(_or_none)]

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class PayType(StrEnum):
    HOURLY = "hourly"
    PERDIEM = "perdiem"
    MIXED = "mixed"
    EXPENSE = "expense"


class StoreModel(BaseModel):
    """Base for documents read from the store."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "ignore",
    }


class OtherPayItem(StoreModel):
    id: Text = ""
    description: Text = ""
    amount: Amount = None


class PerdiemFields(StoreModel):
    """Per-diem fields shared by checks and relationship details."""

    perdiem_amount: Amount = None
    perdiem_breakdown: Flag = None
    perdiem_monday: Amount = None
    perdiem_tuesday: Amount = None
    perdiem_wednesday: Amount = None
    perdiem_thursday: Amount = None
    perdiem_friday: Amount = None
    perdiem_saturday: Amount = None
    perdiem_sunday: Amount = None

    def perdiem_day(self, day: str) -> Decimal | None:
        return getattr(self, f"perdiem_{day}")


class RelationshipDetail(PerdiemFields):
    """Pay data for one client inside a multi-client check."""

    id: Text = ""
    client_id: OptionalText = None
    client_name: Text = ""
    division: OptionalText = None
    pay_type: OptionalText = None

    pay_rate: Amount = None
    hours: Amount = None
    ot_hours: Amount = None
    ot_rate: Amount = None
    holiday_hours: Amount = None
    holiday_rate: Amount = None
    pto_amount: Amount = None
    other_pay: Optional[list[OtherPayItem]] = None


class Check(PerdiemFields):
    """A single payroll payment. ``amount`` is the stored ground truth."""

    id: str
    company_id: Text = ""
    employee_id: OptionalText = None
    client_id: OptionalText = None
    relationship_details: Annotated[
        list[RelationshipDetail], BeforeValidator(_defaulting([]))
    ] = Field(default_factory=list)
    pay_type: OptionalText = None

    hours: Amount = None
    pay_rate: Amount = None
    overtime_hours: Amount = None
    overtime_rate: Amount = None
    holiday_hours: Amount = None
    holiday_rate: Amount = None
    pto_amount: Amount = None
    other_pay: Optional[list[OtherPayItem]] = None

    amount: Amount = None
    paid: Bool = False
    reviewed: Bool = False
    date: Timestamp = None

    is_expense: Bool = False
    expense_name: OptionalText = None
    expense_description: OptionalText = None

    check_number: CheckNumber = None
    created_by: OptionalText = None
    memo: OptionalText = None
    work_week: OptionalText = None
    week_key: OptionalText = None

    @property
    def is_expense_check(self) -> bool:
        return self.is_expense or self.pay_type == PayType.EXPENSE

    @property
    def stored_amount(self) -> Decimal:
        return self.amount if self.amount is not None else Decimal("0")

    def client_ids(self) -> list[str]:
        """Direct client id plus every relationship client id, in order."""
        ids: list[str] = []
        if self.client_id:
            ids.append(self.client_id)
        for rel in self.relationship_details:
            if rel.client_id and rel.client_id not in ids:
                ids.append(rel.client_id)
        return ids


class Client(StoreModel):
    id: str
    name: Text = ""
    division: OptionalText = None
    active: ActiveFlag = True
    company_ids: IdList = Field(default_factory=list)


class Company(StoreModel):
    id: str
    name: Text = ""
    active: ActiveFlag = True


class Employee(StoreModel):
    id: str
    name: Text = ""
    company_id: Text = ""
    client_id: OptionalText = None
    active: ActiveFlag = True
    position: OptionalText = None
