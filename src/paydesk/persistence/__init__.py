"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from paydesk.core.config import AppSettings
from paydesk.persistence.dynamodb_backend import DynamoDBDocumentStore
from paydesk.persistence.redis_backend import RedisChangeFeed
from paydesk.persistence.s3_backend import S3ReportArchive


def create_persistence(settings: AppSettings | None = None):
    """Create wired-up persistence backends from application settings.

    Returns:
        Tuple of (document_store, change_feed, archive).
    """
    if settings is None:
        settings = AppSettings()

    change_feed = RedisChangeFeed(
        host=settings.redis.host,
        port=settings.redis.port,
        db=settings.redis.db,
        channel_prefix=settings.redis.channel_prefix,
    )

    document_store = DynamoDBDocumentStore(
        table_prefix=settings.dynamodb.table_prefix,
        table_suffix=settings.dynamodb.table_suffix,
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
        change_feed=change_feed,
    )

    archive = S3ReportArchive(
        bucket=settings.s3.bucket,
        region=settings.s3.region,
        endpoint_url=settings.s3.endpoint_url,
        prefix=settings.s3.report_prefix,
    )

    return document_store, change_feed, archive
