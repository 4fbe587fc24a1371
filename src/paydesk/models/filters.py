"""Caller-supplied visibility scope and report filter state."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field


class Role(StrEnum):
    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"


class ExpenseMode(StrEnum):
    ONLY = "only"
    EXCLUDE = "exclude"


class SecurityScope(BaseModel):
    """Who is asking and which clients (and companies) they may see.

    ``company_ids`` of ``None`` means no company restriction beyond the
    client visibility list.
    """

    model_config = {"frozen": True}

    role: str = Role.USER
    visible_client_ids: tuple[str, ...] = ()
    company_ids: Optional[tuple[str, ...]] = None


class ReportFilters(BaseModel):
    """Report-level filters applied after the security filter."""

    model_config = {"frozen": True}

    company_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    include_unpaid: bool = False
    include_unreviewed: bool = False
    include_inactive: bool = False
    expense_mode: Optional[ExpenseMode] = None
    employee_ids: tuple[str, ...] = Field(default_factory=tuple)
