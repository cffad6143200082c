"""In-memory backends for unit tests and local runs — dict-backed fakes."""

from __future__ import annotations

import threading
from typing import Any, Optional

from herald.core.exceptions import IllegalStatusTransitionError, LookupFailure
from herald.models.execution import ExecutionDetail
from herald.models.job import Job, JobStatus, can_transition
from herald.models.subscriber import NotificationTemplate, Subscriber, SubscriberPreference


class MemoryCacheBackend:
    """Dict-backed ICacheBackend, safe for concurrent use."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._store.get(key)

    def setex(self, key: str, ttl: int, value: str) -> None:
        with self._lock:
            self._store[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def ping(self) -> bool:
        return True


class MemorySubscriberStore:
    """Dict-backed ISubscriberLookup; counts lookups so tests can assert on caching."""

    def __init__(self) -> None:
        self._subscribers: dict[str, Subscriber] = {}
        self.lookups = 0

    def add(self, subscriber: Subscriber) -> None:
        self._subscribers[subscriber.id] = subscriber

    def find_by_subscriber_id(self, environment_id: str, subscriber_id: str) -> Optional[Subscriber]:
        self.lookups += 1
        for subscriber in self._subscribers.values():
            if subscriber.environment_id == environment_id and subscriber.subscriber_id == subscriber_id:
                return subscriber
        return None

    def find_by_id(self, environment_id: str, internal_id: str) -> Optional[Subscriber]:
        self.lookups += 1
        subscriber = self._subscribers.get(internal_id)
        if subscriber is None or subscriber.environment_id != environment_id:
            return None
        return subscriber


class MemoryTemplateStore:
    """Dict-backed ITemplateLookup."""

    def __init__(self) -> None:
        self._templates: dict[str, NotificationTemplate] = {}
        self.lookups = 0

    def add(self, template: NotificationTemplate) -> None:
        self._templates[template.id] = template

    def find_by_id(self, template_id: str, environment_id: str) -> Optional[NotificationTemplate]:
        self.lookups += 1
        template = self._templates.get(template_id)
        if template is None or template.environment_id != environment_id:
            return None
        return template


class MemoryPreferenceStore:
    """Dict-backed ISubscriberPreferenceStore."""

    def __init__(self) -> None:
        self._prefs: dict[tuple[str, str], list[SubscriberPreference]] = {}

    def add(self, pref: SubscriberPreference) -> None:
        self._prefs.setdefault((pref.environment_id, pref.subscriber_id), []).append(pref)

    def find(self, environment_id: str, subscriber_id: str) -> list[SubscriberPreference]:
        return list(self._prefs.get((environment_id, subscriber_id), []))


class MemoryJobStore:
    """Dict-backed IJobStore enforcing monotonic status changes."""

    def __init__(self) -> None:
        self._jobs: dict[tuple[str, str], Job] = {}
        self._lock = threading.Lock()
        self.status_updates: list[tuple[str, str, JobStatus]] = []

    def get(self, organization_id: str, job_id: str) -> Optional[Job]:
        return self._jobs.get((organization_id, job_id))

    def save(self, job: Job) -> None:
        self._jobs[(job.organization_id, job.id)] = job

    def update_status(self, organization_id: str, job_id: str, status: JobStatus) -> None:
        with self._lock:
            self.status_updates.append((organization_id, job_id, status))
            job = self._jobs.get((organization_id, job_id))
            if job is None:
                raise LookupFailure(f"Job {job_id} not found in organization {organization_id}")
            if job.status == status:
                return
            if not can_transition(job.status, status):
                raise IllegalStatusTransitionError(job_id, job.status, status)
            self._jobs[(organization_id, job_id)] = job.model_copy(update={"status": status})


class MemoryExecutionDetailStore:
    """List-backed IExecutionDetailStore."""

    def __init__(self) -> None:
        self._details: list[ExecutionDetail] = []
        self._lock = threading.Lock()

    def add(self, detail: ExecutionDetail) -> None:
        with self._lock:
            self._details.append(detail)

    def list_for_job(self, job_id: str) -> list[ExecutionDetail]:
        return sorted(
            (d for d in self._details if d.job_id == job_id), key=lambda d: d.created_at
        )

    @property
    def all(self) -> list[ExecutionDetail]:
        return list(self._details)


class MemoryAnalyticsSink:
    """Records tracked events instead of sending them."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Optional[str], dict[str, Any]]] = []

    def track(self, event: str, user_id: Optional[str], properties: dict[str, Any]) -> None:
        self.events.append((event, user_id, properties))
