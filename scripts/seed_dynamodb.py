"""Create Herald DynamoDB tables and seed a few demo jobs.

Usage:
    python scripts/seed_dynamodb.py --endpoint-url http://localhost:4566
"""

from __future__ import annotations

import argparse
from typing import Any

import boto3

from herald.models.filters import FilterChild, FilterGroup
from herald.models.job import Job, StepDefinition, StepType
from herald.persistence.dynamodb_backend import EXECUTION_DETAILS_TABLE, JOBS_TABLE

TABLE_DEFINITIONS: list[dict[str, Any]] = [
    {"name": JOBS_TABLE},
    {"name": EXECUTION_DETAILS_TABLE},
]

DEMO_ORGANIZATION = "org-demo"
DEMO_ENVIRONMENT = "env-demo"


def create_tables(ddb: Any, suffix: str = "") -> None:
    """Create the jobs and execution-details tables. Skips if a table already exists."""
    client = ddb.meta.client
    existing = client.list_tables().get("TableNames", [])

    for defn in TABLE_DEFINITIONS:
        table_name = f"{defn['name']}{suffix}"
        if table_name in existing:
            print(f"  Table {table_name} already exists, skipping")
            continue
        client.create_table(
            TableName=table_name,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        print(f"  Created table {table_name}")


def demo_jobs() -> list[Job]:
    """One pending job per step type, plus a filtered SMS job."""
    jobs = [
        Job(
            id=f"job-{step_type}",
            organization_id=DEMO_ORGANIZATION,
            environment_id=DEMO_ENVIRONMENT,
            subscriber_id="demo-subscriber",
            internal_subscriber_id="sub-1",
            template_id="tpl-welcome",
            type=step_type,
            payload={"name": "Ada"},
        )
        for step_type in StepType
        if step_type is not StepType.TRIGGER
    ]
    jobs.append(
        Job(
            id="job-sms-en-only",
            organization_id=DEMO_ORGANIZATION,
            environment_id=DEMO_ENVIRONMENT,
            subscriber_id="demo-subscriber",
            internal_subscriber_id="sub-1",
            template_id="tpl-welcome",
            type=StepType.SMS,
            step=StepDefinition(
                name="sms-en",
                filters=[FilterGroup(children=[FilterChild(on="subscriber", field="locale", value="en")])],
            ),
        )
    )
    return jobs


def seed_demo_jobs(ddb: Any, suffix: str = "") -> int:
    tbl = ddb.Table(f"{JOBS_TABLE}{suffix}")
    jobs = demo_jobs()
    with tbl.batch_writer() as batch:
        for job in jobs:
            batch.put_item(Item={
                "PK": f"ORG#{job.organization_id}",
                "SK": f"JOB#{job.id}",
                "status": str(job.status),
                "type": str(job.type),
                "body": job.model_dump_json(),
            })
    print(f"  Seeded {len(jobs)} demo jobs")
    return len(jobs)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed DynamoDB tables for Herald")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-suffix", default="", help="Table name suffix (e.g. -dev)")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    ddb = boto3.resource("dynamodb", **kwargs)

    print("Creating tables...")
    create_tables(ddb, suffix=args.table_suffix)

    print("Seeding data...")
    seed_demo_jobs(ddb, suffix=args.table_suffix)

    print("Done!")


if __name__ == "__main__":
    main()
