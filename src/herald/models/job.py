"""Job, step type, and job status models."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field

from herald.models.filters import FilterGroup


class StepType(StrEnum):
    IN_APP = "in_app"
    EMAIL = "email"
    SMS = "sms"
    CHAT = "chat"
    PUSH = "push"
    DIGEST = "digest"
    DELAY = "delay"
    TRIGGER = "trigger"


CHANNEL_STEP_TYPES: frozenset[StepType] = frozenset({
    StepType.IN_APP,
    StepType.EMAIL,
    StepType.SMS,
    StepType.PUSH,
    StepType.CHAT,
})


def is_action_step(step_type: StepType) -> bool:
    """True for step types that are not channel sends (digest, delay, trigger)."""
    return step_type not in CHANNEL_STEP_TYPES


class JobStatus(StrEnum):
    PENDING = "pending"
    CANCELED = "canceled"
    COMPLETED = "completed"
    FAILED = "failed"
    MERGED = "merged"


TERMINAL_STATUSES: frozenset[JobStatus] = frozenset({
    JobStatus.CANCELED,
    JobStatus.COMPLETED,
    JobStatus.MERGED,
})

# Same-status writes are always allowed and are no-ops.
ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({
        JobStatus.CANCELED, JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.MERGED,
    }),
    JobStatus.FAILED: frozenset({JobStatus.PENDING, JobStatus.CANCELED, JobStatus.COMPLETED}),
    JobStatus.CANCELED: frozenset(),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.MERGED: frozenset(),
}


def can_transition(current: JobStatus, target: JobStatus) -> bool:
    return current == target or target in ALLOWED_TRANSITIONS[current]


def allowed_sources(target: JobStatus) -> frozenset[JobStatus]:
    """Statuses a job may currently hold for a write of `target` to succeed."""
    return frozenset(s for s in JobStatus if can_transition(s, target))


class DigestConfig(BaseModel):
    """Digest settings carried on a digest job; the window itself is run elsewhere."""

    type: str = "regular"  # regular or backoff
    amount: Optional[int] = None
    unit: Optional[str] = None  # seconds, minutes, hours, days
    digest_key: Optional[str] = None
    events: list[dict[str, Any]] = Field(default_factory=list)


class StepDefinition(BaseModel):
    """Workflow step definition the job was created from."""

    id: str = ""
    name: str = ""
    template_id: Optional[str] = None
    active: bool = True
    filters: list[FilterGroup] = Field(default_factory=list)

    def references(self, *sources: str) -> bool:
        """True if any filter child reads from one of `sources`."""
        return any(child.on in sources for group in self.filters for child in group.children)


class Job(BaseModel):
    """One queued execution of a single workflow step for one subscriber."""

    id: str
    organization_id: str
    environment_id: str
    subscriber_id: str  # external identifier, as used by the API
    internal_subscriber_id: str
    template_id: str
    type: StepType
    notification_id: str = ""
    transaction_id: str = ""
    provider_id: Optional[str] = None
    step: StepDefinition = Field(default_factory=StepDefinition)
    payload: dict[str, Any] = Field(default_factory=dict)
    digest: Optional[DigestConfig] = None
    delay: Optional[int] = None  # milliseconds
    status: JobStatus = JobStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
