"""Protocol interfaces for all Herald collaborators.

The dispatch engine talks to storage, preference aggregation, channel senders
and analytics only through these Protocols: structural typing, no
inheritance required, easy to test with isinstance().
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from herald.models.execution import ExecutionDetail
    from herald.models.job import Job, JobStatus
    from herald.models.subscriber import (
        NotificationTemplate,
        Preference,
        Subscriber,
        SubscriberPreference,
    )


# ---------------------------------------------------------------------------
# Persistence: Cache Backend
# ---------------------------------------------------------------------------

@runtime_checkable
class ICacheBackend(Protocol):
    """Redis-compatible cache interface."""

    def get(self, key: str) -> str | None: ...

    def setex(self, key: str, ttl: int, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


# ---------------------------------------------------------------------------
# Entity lookups
# ---------------------------------------------------------------------------

@runtime_checkable
class ISubscriberLookup(Protocol):
    """Subscriber repository. Returns None when the subscriber does not exist."""

    def find_by_subscriber_id(self, environment_id: str, subscriber_id: str) -> Optional[Subscriber]: ...

    def find_by_id(self, environment_id: str, internal_id: str) -> Optional[Subscriber]: ...


@runtime_checkable
class ITemplateLookup(Protocol):
    """Notification template repository. Returns None when not found."""

    def find_by_id(self, template_id: str, environment_id: str) -> Optional[NotificationTemplate]: ...


@runtime_checkable
class ISubscriberPreferenceStore(Protocol):
    """Stored subscriber preference overrides (global and per template)."""

    def find(self, environment_id: str, subscriber_id: str) -> list[SubscriberPreference]: ...


@runtime_checkable
class IWebhookDataSource(Protocol):
    """Supplies the data `webhook` filters are evaluated against."""

    def fetch(self, job: Job) -> dict[str, Any]: ...


# ---------------------------------------------------------------------------
# Preference aggregation
# ---------------------------------------------------------------------------

@runtime_checkable
class IPreferenceAggregator(Protocol):
    """Computes the effective preference of a subscriber for a template."""

    async def get_preference(
        self,
        organization_id: str,
        subscriber_id: str,
        environment_id: str,
        template: NotificationTemplate,
        subscriber: Subscriber,
    ) -> Preference: ...


# ---------------------------------------------------------------------------
# Jobs and execution details
# ---------------------------------------------------------------------------

@runtime_checkable
class IJobStore(Protocol):
    """Job persistence. Status writes must respect monotonic ordering."""

    def get(self, organization_id: str, job_id: str) -> Optional[Job]: ...

    def save(self, job: Job) -> None: ...

    def update_status(self, organization_id: str, job_id: str, status: JobStatus) -> None: ...


@runtime_checkable
class IExecutionDetailStore(Protocol):
    """Append-only store for execution details."""

    def add(self, detail: ExecutionDetail) -> None: ...

    def list_for_job(self, job_id: str) -> list[ExecutionDetail]: ...


# ---------------------------------------------------------------------------
# Outbound: channel handlers and analytics
# ---------------------------------------------------------------------------

@runtime_checkable
class IChannelHandler(Protocol):
    """Executes a job for one step type (channel send, digest, or delay)."""

    async def execute(self, job: Job) -> Any: ...


@runtime_checkable
class IAnalyticsSink(Protocol):
    """Best-effort analytics event sink."""

    def track(self, event: str, user_id: Optional[str], properties: dict[str, Any]) -> None: ...
