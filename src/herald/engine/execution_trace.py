"""ExecutionTrace: appends immutable audit records for dispatch decisions."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from herald.core.protocols import IExecutionDetailStore
from herald.models.execution import DetailKind, DetailSource, DetailStatus, ExecutionDetail
from herald.models.job import Job

logger = logging.getLogger(__name__)


def serialize_raw(raw: Any) -> Optional[str]:
    """Serialize a diagnostic payload; strings pass through untouched."""
    if raw is None or isinstance(raw, str):
        return raw
    if hasattr(raw, "model_dump"):
        raw = raw.model_dump(mode="json")
    return json.dumps(raw, default=str)


def details_from_job(job: Job) -> dict[str, Any]:
    return {
        "job_id": job.id,
        "organization_id": job.organization_id,
        "environment_id": job.environment_id,
        "subscriber_id": job.internal_subscriber_id,
        "template_id": job.template_id,
        "notification_id": job.notification_id,
        "transaction_id": job.transaction_id,
        "provider_id": job.provider_id,
        "channel": str(job.type),
    }


class ExecutionTrace:
    """Builds ExecutionDetail records from a job and appends them to a store.

    Appends are fire-and-forget for the dispatcher: a failing store is logged
    and `None` is returned, unless `raise_on_failure` is set.
    """

    def __init__(self, store: IExecutionDetailStore, raise_on_failure: bool = False) -> None:
        self._store = store
        self._raise_on_failure = raise_on_failure

    def append(
        self,
        job: Job,
        detail: DetailKind,
        source: DetailSource = DetailSource.INTERNAL,
        status: DetailStatus = DetailStatus.SUCCESS,
        is_test: bool = False,
        is_retry: bool = False,
        raw: Any = None,
    ) -> Optional[ExecutionDetail]:
        record = ExecutionDetail(
            **details_from_job(job),
            detail=detail,
            source=source,
            status=status,
            is_test=is_test,
            is_retry=is_retry,
            raw=serialize_raw(raw),
        )
        try:
            self._store.add(record)
        except Exception:
            logger.exception(
                "failed to append execution detail",
                extra={"job_id": job.id, "detail": str(detail)},
            )
            if self._raise_on_failure:
                raise
            return None
        return record
