"""DynamoDB backends for jobs (IJobStore) and execution details (IExecutionDetailStore)."""

from __future__ import annotations

import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError

from herald.core.exceptions import IllegalStatusTransitionError, LookupFailure
from herald.models.execution import ExecutionDetail
from herald.models.job import Job, JobStatus, allowed_sources

logger = logging.getLogger(__name__)

JOBS_TABLE = "herald-jobs"
EXECUTION_DETAILS_TABLE = "herald-execution-details"


def _resource(region: str, endpoint_url: str | None):
    kwargs: dict = {"region_name": region}
    if endpoint_url:
        kwargs["endpoint_url"] = endpoint_url
    return boto3.resource("dynamodb", **kwargs)


def _is_conditional_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


class DynamoDBJobStore:
    """Production IJobStore.

    Items live under PK=ORG#{organizationId}, SK=JOB#{jobId}. The job document
    is stored as JSON in `body`; `status` is a top-level attribute so status
    writes can be conditional on the current value.
    """

    def __init__(self, table_suffix: str = "", region: str = "us-east-1",
                 endpoint_url: str | None = None) -> None:
        self._ddb = _resource(region, endpoint_url)
        self._table = self._ddb.Table(f"{JOBS_TABLE}{table_suffix}")

    @staticmethod
    def _key(organization_id: str, job_id: str) -> dict[str, str]:
        return {"PK": f"ORG#{organization_id}", "SK": f"JOB#{job_id}"}

    def get(self, organization_id: str, job_id: str) -> Optional[Job]:
        try:
            resp = self._table.get_item(Key=self._key(organization_id, job_id))
        except ClientError as exc:
            raise LookupFailure(f"DynamoDB get failed for job {job_id!r}: {exc}") from exc
        item = resp.get("Item")
        if item is None:
            return None
        job = Job.model_validate_json(item["body"])
        return job.model_copy(update={"status": JobStatus(item["status"])})

    def save(self, job: Job) -> None:
        item: dict[str, Any] = {
            **self._key(job.organization_id, job.id),
            "status": str(job.status),
            "type": str(job.type),
            "body": job.model_dump_json(),
        }
        try:
            self._table.put_item(Item=item)
        except ClientError as exc:
            raise LookupFailure(f"DynamoDB put failed for job {job.id!r}: {exc}") from exc

    def update_status(self, organization_id: str, job_id: str, status: JobStatus) -> None:
        sources = sorted(allowed_sources(status))
        values: dict[str, str] = {":target": str(status)}
        clauses = []
        for i, source in enumerate(sources):
            values[f":s{i}"] = str(source)
            clauses.append(f"#s = :s{i}")

        try:
            self._table.update_item(
                Key=self._key(organization_id, job_id),
                UpdateExpression="SET #s = :target",
                ConditionExpression=f"attribute_exists(PK) AND ({' OR '.join(clauses)})",
                ExpressionAttributeNames={"#s": "status"},
                ExpressionAttributeValues=values,
            )
        except ClientError as exc:
            if not _is_conditional_failure(exc):
                raise LookupFailure(f"DynamoDB status update failed for job {job_id!r}: {exc}") from exc
            current = self.get(organization_id, job_id)
            if current is None:
                raise LookupFailure(f"Job {job_id} not found in organization {organization_id}") from exc
            raise IllegalStatusTransitionError(job_id, current.status, status) from exc
        logger.debug("job %s status set to %s", job_id, status)


class DynamoDBExecutionDetailStore:
    """Production IExecutionDetailStore; items are written once and never updated."""

    def __init__(self, table_suffix: str = "", region: str = "us-east-1",
                 endpoint_url: str | None = None) -> None:
        self._ddb = _resource(region, endpoint_url)
        self._table = self._ddb.Table(f"{EXECUTION_DETAILS_TABLE}{table_suffix}")

    def add(self, detail: ExecutionDetail) -> None:
        item = {
            "PK": f"JOB#{detail.job_id}",
            "SK": f"DETAIL#{detail.created_at.isoformat()}#{detail.id}",
            "detail": str(detail.detail),
            "status": str(detail.status),
            "environmentId": detail.environment_id,
            "body": detail.model_dump_json(),
        }
        try:
            self._table.put_item(Item=item, ConditionExpression="attribute_not_exists(PK)")
        except ClientError as exc:
            raise LookupFailure(
                f"DynamoDB put failed for execution detail {detail.id!r}: {exc}"
            ) from exc

    def list_for_job(self, job_id: str) -> list[ExecutionDetail]:
        """All records for `job_id` in creation order, following query pages."""
        query: dict[str, Any] = {
            "KeyConditionExpression": "PK = :pk",
            "ExpressionAttributeValues": {":pk": f"JOB#{job_id}"},
        }
        items: list[dict[str, Any]] = []
        while True:
            try:
                resp = self._table.query(**query)
            except ClientError as exc:
                raise LookupFailure(f"DynamoDB query failed for job {job_id!r}: {exc}") from exc
            items.extend(resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                break
            query["ExclusiveStartKey"] = last_key
        return [ExecutionDetail.model_validate_json(item["body"]) for item in items]
