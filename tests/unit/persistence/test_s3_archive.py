"""Unit tests for S3ReportArchive using moto."""

from __future__ import annotations

import boto3
import pytest
from moto import mock_aws

from paydesk.core.exceptions import ArchiveError
from paydesk.persistence.s3_backend import S3ReportArchive

BUCKET = "test-paydesk-reports"


@pytest.fixture
def archive():
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket=BUCKET)
        yield S3ReportArchive(bucket=BUCKET, region="us-east-1", prefix="reports/")


class TestSave:
    def test_save_returns_prefixed_key(self, archive):
        assert archive.save("2024-03.json", b"[]") == "reports/2024-03.json"

    def test_save_sets_json_content_type(self, archive):
        key = archive.save("a.json", b"{}")
        head = boto3.client("s3", region_name="us-east-1").head_object(Bucket=BUCKET, Key=key)
        assert head["ContentType"] == "application/json"


class TestLoad:
    def test_load_returns_bytes(self, archive):
        key = archive.save("a.json", b'{"reports": []}')
        assert archive.load(key) == b'{"reports": []}'

    def test_load_missing_key_raises(self, archive):
        with pytest.raises(ArchiveError):
            archive.load("reports/missing.json")


class TestListReports:
    def test_lists_only_report_prefix(self, archive):
        archive.save("b.json", b"1")
        archive.save("a.json", b"2")
        boto3.client("s3", region_name="us-east-1").put_object(Bucket=BUCKET, Key="other/c.json", Body=b"3")
        assert archive.list_reports() == ["reports/a.json", "reports/b.json"]

    def test_empty_archive(self, archive):
        assert archive.list_reports() == []

    def test_missing_bucket_raises(self):
        with mock_aws():
            with pytest.raises(ArchiveError):
                S3ReportArchive(bucket="nope", region="us-east-1").list_reports()
