"""Tests for the client-visibility security filter."""

from __future__ import annotations

from paydesk.models.filters import Role, SecurityScope
from paydesk.models.records import Check, RelationshipDetail
from paydesk.reporting.security import filter_scope, filter_visible

CHECKS = [
    Check(id="c1", company_id="co-1", client_id="a"),
    Check(id="c2", company_id="co-1", relationship_details=[RelationshipDetail(client_id="b")]),
    Check(id="c3", company_id="co-2", client_id="c"),
    Check(id="c4", company_id="co-2"),
]


def _ids(checks):
    return [check.id for check in checks]


def test_admin_sees_everything():
    assert _ids(filter_visible(CHECKS, Role.ADMIN, [])) == ["c1", "c2", "c3", "c4"]


def test_direct_and_relationship_clients_count():
    assert _ids(filter_visible(CHECKS, Role.USER, ["a", "b"])) == ["c1", "c2"]


def test_empty_visibility_sees_nothing():
    assert filter_visible(CHECKS, Role.MANAGER, []) == []


def test_company_restriction():
    assert _ids(filter_visible(CHECKS, Role.USER, ["a", "c"], company_ids=["co-2"])) == ["c3"]


def test_custom_admin_role():
    assert len(filter_visible(CHECKS, "root", [], admin_role="root")) == 4
    assert filter_visible(CHECKS, Role.ADMIN, [], admin_role="root") == []


def test_output_is_subset_of_input():
    visible = filter_visible(CHECKS, Role.USER, ["a", "b", "c"])
    assert all(check in CHECKS for check in visible)


def test_scope_wrapper():
    scope = SecurityScope(role=Role.USER, visible_client_ids=("c",))
    assert _ids(filter_scope(CHECKS, scope)) == ["c3"]
