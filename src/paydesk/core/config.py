"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from decimal import Decimal
from typing import Literal

from pydantic_settings import BaseSettings


class QueryConfig(BaseSettings):
    """Live query configuration."""

    model_config = {"env_prefix": "PAYDESK_QUERY_"}

    chunk_size: int = 10  # store cap on values in a single "in" filter
    admin_role: str = "admin"


class ReportConfig(BaseSettings):
    """Report aggregation configuration."""

    model_config = {"env_prefix": "PAYDESK_REPORT_"}

    reconcile_tolerance: Decimal = Decimal("0.01")
    holiday_as_pto: bool = False


class DynamoDBConfig(BaseSettings):
    """DynamoDB document store configuration."""

    model_config = {"env_prefix": "PAYDESK_DYNAMO_"}

    table_prefix: str = "paydesk-"
    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class RedisConfig(BaseSettings):
    """Redis change feed configuration."""

    model_config = {"env_prefix": "PAYDESK_REDIS_"}

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    channel_prefix: str = "paydesk:changes:"


class S3Config(BaseSettings):
    """S3 report archive configuration."""

    model_config = {"env_prefix": "PAYDESK_S3_"}

    bucket: str = "paydesk-reports"
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override
    report_prefix: str = "reports/"


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "PAYDESK_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"

    query: QueryConfig = QueryConfig()
    report: ReportConfig = ReportConfig()
    dynamodb: DynamoDBConfig = DynamoDBConfig()
    redis: RedisConfig = RedisConfig()
    s3: S3Config = S3Config()
