"""Fixtures wiring a StepDispatcher to in-memory collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from herald.core.config import AppSettings
from herald.engine import EntityCache, ExecutionTrace, FilterMatcher, PreferenceResolver, build_dispatcher
from herald.engine.step_dispatcher import StepDispatcher
from herald.models.job import Job, StepType
from herald.models.subscriber import NotificationTemplate, Preference, Subscriber
from tests.fakes import (
    MemoryAnalyticsSink,
    MemoryCacheBackend,
    MemoryExecutionDetailStore,
    MemoryJobStore,
    MemorySubscriberStore,
    MemoryTemplateStore,
    RecordingHandler,
    StaticPreferenceAggregator,
)
from tests.fakes.jobs import ENV, ORG

ROUTED_TYPES = [
    StepType.SMS,
    StepType.EMAIL,
    StepType.IN_APP,
    StepType.CHAT,
    StepType.PUSH,
    StepType.DIGEST,
    StepType.DELAY,
]


@dataclass
class World:
    subscribers: MemorySubscriberStore
    templates: MemoryTemplateStore
    cache_backend: MemoryCacheBackend
    details: MemoryExecutionDetailStore
    jobs: MemoryJobStore
    analytics: MemoryAnalyticsSink
    aggregator: StaticPreferenceAggregator
    handlers: dict[StepType, RecordingHandler] = field(default_factory=dict)
    settings: AppSettings = field(default_factory=AppSettings)

    def dispatcher(self) -> StepDispatcher:
        return build_dispatcher(
            cache_backend=self.cache_backend,
            subscribers=self.subscribers,
            templates=self.templates,
            aggregator=self.aggregator,
            details=self.details,
            jobs=self.jobs,
            handlers=self.handlers,
            analytics=self.analytics,
            settings=self.settings,
        )

    def cache(self) -> EntityCache:
        return EntityCache(self.cache_backend, self.subscribers, self.templates)

    def trace(self) -> ExecutionTrace:
        return ExecutionTrace(self.details)

    def matcher(self) -> FilterMatcher:
        return FilterMatcher(self.cache())

    def resolver(self) -> PreferenceResolver:
        return PreferenceResolver(self.cache(), self.subscribers, self.aggregator, self.trace())

    def add_job(self, job: Job) -> Job:
        self.jobs.save(job)
        return job

    def detail_kinds(self, job_id: str) -> list[str]:
        return [str(d.detail) for d in self.details.list_for_job(job_id)]


@pytest.fixture
def subscriber() -> Subscriber:
    return Subscriber(
        id="sub-1",
        subscriber_id="ext-1",
        environment_id=ENV,
        organization_id=ORG,
        first_name="Ada",
        email="ada@example.com",
        locale="en",
        data={"plan": "pro", "seats": 12},
    )


@pytest.fixture
def template() -> NotificationTemplate:
    return NotificationTemplate(id="tpl-1", environment_id=ENV, organization_id=ORG, name="Welcome")


@pytest.fixture
def world(subscriber, template) -> World:
    subscribers = MemorySubscriberStore()
    subscribers.add(subscriber)
    templates = MemoryTemplateStore()
    templates.add(template)
    return World(
        subscribers=subscribers,
        templates=templates,
        cache_backend=MemoryCacheBackend(),
        details=MemoryExecutionDetailStore(),
        jobs=MemoryJobStore(),
        analytics=MemoryAnalyticsSink(),
        aggregator=StaticPreferenceAggregator(
            Preference(enabled=True, channels={str(t): True for t in ROUTED_TYPES[:5]})
        ),
        handlers={step_type: RecordingHandler() for step_type in ROUTED_TYPES},
    )
