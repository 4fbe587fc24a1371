"""Division classification for checks and their relationship slices."""

from __future__ import annotations

from typing import Mapping, Optional

from paydesk.models.records import Check, Client, RelationshipDetail

EXPENSES_DIVISION = "Expenses"
NO_DIVISION = "No Division"

# Data-entry ambiguity: checks split across these two clients roll up to Container.
CONTAINER = "Container"
PROJECTS = "Projects"


def has_container_projects_split(check: Check) -> bool:
    names = {rel.client_name for rel in check.relationship_details}
    return CONTAINER in names and PROJECTS in names


def classify(
    check: Check,
    relationship: Optional[RelationshipDetail],
    clients: Mapping[str, Client],
) -> str:
    """Return the division label for ``check`` (optionally one of its relationships).

    Rules in order: expense checks go to ``Expenses``; a Container/Projects
    split goes to ``Container``; an explicit relationship division wins;
    otherwise the client's configured division, or ``No Division``.
    """
    if check.is_expense_check:
        return EXPENSES_DIVISION

    if has_container_projects_split(check):
        return CONTAINER

    if relationship is not None and relationship.division:
        return relationship.division

    client_id = relationship.client_id if relationship is not None else check.client_id
    client = clients.get(client_id) if client_id else None
    if client is not None and client.division:
        return client.division
    return NO_DIVISION
