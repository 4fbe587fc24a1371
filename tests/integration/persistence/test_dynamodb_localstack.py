"""Integration tests for DynamoDBDocumentStore and reports against LocalStack."""

from __future__ import annotations

from decimal import Decimal

import pytest

from paydesk.core.config import AppSettings
from paydesk.models.filters import Role, SecurityScope
from paydesk.models.query import QueryFilters
from paydesk.persistence.dynamodb_backend import DynamoDBDocumentStore
from paydesk.services.report_service import ReportService
from tests.integration.conftest import LOCALSTACK_URL, skip_no_localstack


@skip_no_localstack
class TestDynamoDBIntegration:
    @pytest.fixture
    def store(self, seeded_tables):
        return DynamoDBDocumentStore(
            table_suffix=seeded_tables,
            region="us-east-1",
            endpoint_url=LOCALSTACK_URL,
        )

    def test_checks_from_seed(self, store):
        checks = store.scan("checks", QueryFilters().to_query())
        assert {doc["id"] for doc in checks} >= {"chk-1001", "chk-1002", "chk-1003", "chk-1004"}

    def test_in_filter_on_company(self, store):
        query = QueryFilters.from_mapping({"companyId": ["co-2"]}).to_query()
        checks = store.scan("checks", query)
        assert [doc["id"] for doc in checks] == ["chk-1003"]

    async def test_admin_snapshot_totals(self, store):
        service = ReportService(AppSettings(), store)
        snapshot = await service.snapshot(SecurityScope(role=Role.ADMIN))
        totals = {report.company.id: report.total_amount for report in snapshot.reports}
        assert totals["co-1"] == Decimal("950") + Decimal("125") + Decimal("89.5")
        assert totals["co-2"] == Decimal("380")
