"""Query models: store-level queries and caller-facing filter sets."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import BaseModel

from paydesk.core.exceptions import InvalidQueryError


class InFilter(BaseModel):
    """A "value is one of N" filter on a single field."""

    model_config = {"frozen": True}

    name: str
    values: tuple[Any, ...]


class DocumentQuery(BaseModel):
    """One query as sent to the store: equality filters plus at most one "in"."""

    model_config = {"frozen": True}

    equals: tuple[tuple[str, Any], ...] = ()
    field_in: Optional[InFilter] = None

    def matches(self, doc: Mapping[str, Any]) -> bool:
        """Evaluate the query against a plain document (memory backend, tests)."""
        for name, value in self.equals:
            if doc.get(name) != value:
                return False
        if self.field_in is not None:
            return doc.get(self.field_in.name) in self.field_in.values
        return True


class QueryFilters(BaseModel):
    """Caller filter set: an equality map plus at most one array filter.

    ``None`` values are dropped, matching how the UI passes unset filters.
    """

    model_config = {"frozen": True}

    equals: tuple[tuple[str, Any], ...] = ()
    in_field: Optional[str] = None
    in_values: tuple[Any, ...] = ()

    @classmethod
    def from_mapping(cls, filters: Mapping[str, Any] | None) -> QueryFilters:
        equals: list[tuple[str, Any]] = []
        in_field: str | None = None
        in_values: tuple[Any, ...] = ()
        for name, value in (filters or {}).items():
            if value is None:
                continue
            if isinstance(value, (list, tuple, set, frozenset)):
                if in_field is not None:
                    raise InvalidQueryError(
                        f"At most one array filter is supported, got {in_field!r} and {name!r}"
                    )
                in_field = name
                # sets have no stable order; sort so the chunk layout is reproducible
                in_values = tuple(sorted(value, key=repr)) if isinstance(value, (set, frozenset)) else tuple(value)
            else:
                equals.append((name, value))
        return cls(equals=tuple(sorted(equals, key=lambda kv: kv[0])),
                   in_field=in_field, in_values=in_values)

    @property
    def has_array(self) -> bool:
        return self.in_field is not None

    @property
    def is_empty_array(self) -> bool:
        """True when the array filter is present but selects nothing."""
        return self.in_field is not None and not self.in_values

    def to_query(self, values: tuple[Any, ...] | None = None) -> DocumentQuery:
        """Build a store query, optionally restricting the array filter to ``values``."""
        if self.in_field is None:
            return DocumentQuery(equals=self.equals)
        chunk = self.in_values if values is None else values
        return DocumentQuery(equals=self.equals, field_in=InFilter(name=self.in_field, values=chunk))
