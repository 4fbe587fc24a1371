"""Tests for DynamoDB seed script."""

from __future__ import annotations

import sys
from pathlib import Path

import boto3
import pytest
from moto import mock_aws

# Make scripts/ importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent / "scripts"))

from seed_dynamodb import COLLECTIONS, create_tables, seed_sample_data  # noqa: E402


@pytest.fixture
def ddb():
    with mock_aws():
        yield boto3.resource("dynamodb", region_name="us-east-1")


class TestCreateTables:
    def test_creates_one_table_per_collection(self, ddb):
        create_tables(ddb, suffix="-test")
        client = boto3.client("dynamodb", region_name="us-east-1")
        tables = client.list_tables()["TableNames"]
        assert len(tables) == len(COLLECTIONS)
        assert "paydesk-checks-test" in tables

    def test_idempotent_skips_existing(self, ddb):
        create_tables(ddb, suffix="-test")
        create_tables(ddb, suffix="-test")  # should not raise
        client = boto3.client("dynamodb", region_name="us-east-1")
        assert len(client.list_tables()["TableNames"]) == len(COLLECTIONS)


class TestSeedSampleData:
    def test_seeds_every_collection(self, ddb):
        create_tables(ddb, suffix="-test")
        counts = seed_sample_data(ddb, suffix="-test")
        for collection, count in counts.items():
            assert ddb.Table(f"paydesk-{collection}-test").scan()["Count"] == count
        assert counts["checks"] == 4

    def test_fractional_amounts_stored_as_decimal(self, ddb):
        create_tables(ddb, suffix="-test")
        seed_sample_data(ddb, suffix="-test")
        item = ddb.Table("paydesk-checks-test").get_item(Key={"id": "chk-1004"})["Item"]
        assert str(item["amount"]) == "89.5"
