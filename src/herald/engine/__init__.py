"""Step dispatch decision engine, wired by explicit construction."""

from __future__ import annotations

from typing import Mapping, Optional

from herald.core.config import AppSettings
from herald.core.protocols import (
    IAnalyticsSink,
    ICacheBackend,
    IChannelHandler,
    IExecutionDetailStore,
    IJobStore,
    IPreferenceAggregator,
    ISubscriberLookup,
    ITemplateLookup,
    IWebhookDataSource,
)
from herald.engine.entity_cache import EntityCache
from herald.engine.execution_trace import ExecutionTrace
from herald.engine.filter_matcher import FilterMatcher
from herald.engine.preference_resolver import PreferenceResolver
from herald.engine.step_dispatcher import StepDispatcher
from herald.models.job import StepType


def build_dispatcher(
    *,
    cache_backend: ICacheBackend,
    subscribers: ISubscriberLookup,
    templates: ITemplateLookup,
    aggregator: IPreferenceAggregator,
    details: IExecutionDetailStore,
    jobs: IJobStore,
    handlers: Mapping[StepType, IChannelHandler],
    analytics: IAnalyticsSink,
    webhook_source: Optional[IWebhookDataSource] = None,
    settings: AppSettings | None = None,
) -> StepDispatcher:
    """Assemble a StepDispatcher and its components from collaborators."""
    if settings is None:
        settings = AppSettings()

    cache = EntityCache(
        cache_backend,
        subscribers,
        templates,
        ttl=settings.cache.entity_ttl,
        enabled=settings.cache.enabled,
    )
    trace = ExecutionTrace(details, raise_on_failure=settings.dispatch.raise_on_trace_failure)

    return StepDispatcher(
        filter_matcher=FilterMatcher(cache, webhook_source=webhook_source),
        preference_resolver=PreferenceResolver(cache, subscribers, aggregator, trace),
        trace=trace,
        jobs=jobs,
        handlers=handlers,
        analytics=analytics,
        config=settings.dispatch,
    )


__all__ = [
    "EntityCache",
    "ExecutionTrace",
    "FilterMatcher",
    "PreferenceResolver",
    "StepDispatcher",
    "build_dispatcher",
]
