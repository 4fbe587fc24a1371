"""S3 report archive implementing IReportArchive."""

from __future__ import annotations

import boto3
from botocore.exceptions import ClientError

from paydesk.core.exceptions import ArchiveError


class S3ReportArchive:
    """Production IReportArchive backed by S3; keys are ``{prefix}{name}``."""

    def __init__(self, bucket: str, region: str = "us-east-1",
                 endpoint_url: str | None = None, prefix: str = "reports/") -> None:
        self._bucket = bucket
        self._prefix = prefix
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._client = boto3.client("s3", **kwargs)

    def save(self, name: str, data: bytes) -> str:
        key = f"{self._prefix}{name}"
        try:
            self._client.put_object(
                Bucket=self._bucket, Key=key, Body=data, ContentType="application/json",
            )
            return key
        except ClientError as exc:
            raise ArchiveError(f"S3 write failed for {key!r}: {exc}") from exc

    def load(self, key: str) -> bytes:
        try:
            resp = self._client.get_object(Bucket=self._bucket, Key=key)
            return resp["Body"].read()
        except ClientError as exc:
            raise ArchiveError(f"S3 read failed for {key!r}: {exc}") from exc

    def list_reports(self) -> list[str]:
        try:
            keys: list[str] = []
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self._bucket, Prefix=self._prefix):
                for obj in page.get("Contents", []):
                    keys.append(obj["Key"])
            return sorted(keys)
        except ClientError as exc:
            raise ArchiveError(f"S3 list failed for prefix={self._prefix!r}: {exc}") from exc
