"""Tests for the FastAPI report endpoints."""

from __future__ import annotations

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from paydesk.api.app import create_app
from paydesk.core.config import AppSettings
from paydesk.core.exceptions import StoreError
from paydesk.services.report_service import ReportService
from tests.fakes import seeded_store


@pytest.fixture
def store():
    return seeded_store()


@pytest.fixture
def client(store):
    app = create_app(ReportService(AppSettings(), store))
    with TestClient(app) as test_client:
        yield test_client


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_ready(self, client):
        assert client.get("/ready").json() == {"status": "ready"}


class TestReports:
    def test_admin_reports(self, client):
        resp = client.get("/reports", params={"role": "admin"})
        assert resp.status_code == 200
        body = resp.json()
        assert [report["company"]["id"] for report in body] == ["co-1", "co-2"]
        assert Decimal(body[0]["totalAmount"]) == Decimal("1164.5")
        assert "divisionBreakdown" in body[0]

    def test_visibility_from_query_params(self, client):
        resp = client.get("/reports", params={"role": "user", "visible_client_ids": ["cl-3"]})
        assert [report["company"]["id"] for report in resp.json()] == ["co-2"]

    def test_user_without_clients_sees_nothing(self, client):
        assert client.get("/reports").json() == []

    def test_date_range(self, client):
        params = {"role": "admin", "start_date": "2024-03-10T00:00:00", "end_date": "2024-03-31T00:00:00"}
        body = client.get("/reports", params=params).json()
        assert sorted(check["id"] for report in body for check in report["checks"]) == ["chk-1003", "chk-1004"]

    def test_department_stats(self, client):
        body = client.get("/reports/departments", params={"role": "admin"}).json()
        assert body[-1]["isExpenseRow"] is True
        assert body[0]["clientName"] == "Harbor Freight Yard"

    def test_employee_summary_by_company(self, client):
        body = client.get("/reports/employees", params={"role": "admin", "company_id": "co-2"}).json()
        assert [row["employeeName"] for row in body] == ["Rory Patel"]

    def test_store_failure_is_bad_gateway(self, client, store):
        store.fail_fetch(StoreError("dynamo down"))
        assert client.get("/reports", params={"role": "admin"}).status_code == 502
