"""Execution detail (audit trail) and dispatch outcome models."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from herald.models.filters import FilterResult


class DetailKind(StrEnum):
    START_SENDING = "Start sending message"
    START_DIGESTING = "Start digesting"
    FILTER_STEPS = "Step was filtered based on steps filters"
    STEP_FILTERED_BY_PREFERENCES = "Step filtered by subscriber preferences"


class DetailSource(StrEnum):
    INTERNAL = "Internal"
    EXTERNAL = "External"


class DetailStatus(StrEnum):
    PENDING = "Pending"
    SUCCESS = "Success"
    FAILED = "Failed"


def _now() -> datetime:
    return datetime.now(tz=UTC)


class ExecutionDetail(BaseModel):
    """Immutable audit record explaining a dispatch decision."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    job_id: str
    organization_id: str
    environment_id: str
    subscriber_id: str
    template_id: str
    notification_id: str = ""
    transaction_id: str = ""
    provider_id: Optional[str] = None
    channel: str
    detail: DetailKind
    source: DetailSource
    status: DetailStatus
    is_test: bool = False
    is_retry: bool = False
    raw: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)


class DispatchOutcome(StrEnum):
    DISPATCHED = "DISPATCHED"
    CANCELED = "CANCELED"
    UNROUTABLE = "UNROUTABLE"
    ALREADY_TERMINAL = "ALREADY_TERMINAL"


class DispatchResult(BaseModel):
    """What the dispatcher decided for one job evaluation."""

    job_id: str
    outcome: DispatchOutcome
    filter_result: Optional[FilterResult] = None
    preferred: Optional[bool] = None
