"""Shared test doubles — memory backends plus recording handlers."""

from __future__ import annotations

from typing import Any

from herald.models.job import Job
from herald.models.subscriber import NotificationTemplate, Preference, Subscriber
from herald.persistence.memory_backend import (
    MemoryAnalyticsSink,
    MemoryCacheBackend,
    MemoryExecutionDetailStore,
    MemoryJobStore,
    MemoryPreferenceStore,
    MemorySubscriberStore,
    MemoryTemplateStore,
)


class RecordingHandler:
    """IChannelHandler that remembers which jobs it was asked to execute."""

    def __init__(self) -> None:
        self.executed: list[Job] = []

    async def execute(self, job: Job) -> Any:
        self.executed.append(job)
        return {"job_id": job.id}


class StaticPreferenceAggregator:
    """IPreferenceAggregator returning a fixed preference and counting calls."""

    def __init__(self, preference: Preference | None = None) -> None:
        self.preference = preference or Preference(enabled=True, channels={})
        self.calls = 0

    async def get_preference(
        self,
        organization_id: str,
        subscriber_id: str,
        environment_id: str,
        template: NotificationTemplate,
        subscriber: Subscriber,
    ) -> Preference:
        self.calls += 1
        return self.preference


class FailingDetailStore:
    """IExecutionDetailStore whose writes always fail."""

    def add(self, detail):
        raise RuntimeError("detail store unavailable")

    def list_for_job(self, job_id):
        return []


__all__ = [
    "FailingDetailStore",
    "MemoryAnalyticsSink",
    "MemoryCacheBackend",
    "MemoryExecutionDetailStore",
    "MemoryJobStore",
    "MemoryPreferenceStore",
    "MemorySubscriberStore",
    "MemoryTemplateStore",
    "RecordingHandler",
    "StaticPreferenceAggregator",
]
