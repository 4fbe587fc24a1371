"""Create the Paydesk document tables and seed them with sample records.

Usage:
    python scripts/seed_dynamodb.py --endpoint-url http://localhost:4566
"""

from __future__ import annotations

import argparse
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import boto3

COLLECTIONS = ("companies", "clients", "employees", "checks")

SEED_PATH = Path(__file__).resolve().parent.parent / "config" / "sample_data.json"


def table_name(collection: str, prefix: str = "paydesk-", suffix: str = "") -> str:
    return f"{prefix}{collection}{suffix}"


def create_tables(ddb: Any, prefix: str = "paydesk-", suffix: str = "") -> None:
    """Create one table per collection, hash key ``id``. Skips existing tables."""
    client = ddb.meta.client
    existing = client.list_tables().get("TableNames", [])

    for collection in COLLECTIONS:
        name = table_name(collection, prefix, suffix)
        if name in existing:
            print(f"  Table {name} already exists, skipping")
            continue
        client.create_table(
            TableName=name,
            KeySchema=[{"AttributeName": "id", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "id", "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
        print(f"  Created table {name}")


def _json_to_dynamodb(obj: Any) -> Any:
    """Convert JSON-parsed floats to Decimal for DynamoDB."""
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _json_to_dynamodb(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_json_to_dynamodb(i) for i in obj]
    return obj


def seed_sample_data(ddb: Any, prefix: str = "paydesk-", suffix: str = "",
                     seed_path: Path = SEED_PATH) -> dict[str, int]:
    """Load the sample JSON into the tables. Returns documents written per collection."""
    data = json.loads(seed_path.read_text())
    counts: dict[str, int] = {}
    for collection in COLLECTIONS:
        docs = data.get(collection, [])
        tbl = ddb.Table(table_name(collection, prefix, suffix))
        with tbl.batch_writer() as batch:
            for doc in docs:
                batch.put_item(Item=_json_to_dynamodb(doc))
        counts[collection] = len(docs)
        print(f"  Seeded {len(docs)} {collection}")
    return counts


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed DynamoDB tables for Paydesk")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-prefix", default="paydesk-", help="Table name prefix")
    parser.add_argument("--table-suffix", default="", help="Table name suffix (e.g. -dev)")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    ddb = boto3.resource("dynamodb", **kwargs)

    print("Creating tables...")
    create_tables(ddb, prefix=args.table_prefix, suffix=args.table_suffix)

    print("Seeding data...")
    seed_sample_data(ddb, prefix=args.table_prefix, suffix=args.table_suffix)

    print("Done!")


if __name__ == "__main__":
    main()
