"""PreferenceResolver: decides whether a job's channel is enabled for its subscriber."""

from __future__ import annotations

import asyncio
import logging

from herald.core.exceptions import SubscriberNotFoundError, TemplateNotFoundError
from herald.core.protocols import IPreferenceAggregator, ISubscriberLookup
from herald.engine.entity_cache import EntityCache
from herald.engine.execution_trace import ExecutionTrace
from herald.models.execution import DetailKind, DetailSource, DetailStatus
from herald.models.job import Job, is_action_step
from herald.models.subscriber import NotificationTemplate, Preference, Subscriber

logger = logging.getLogger(__name__)


def step_preferred(preference: Preference, job: Job) -> bool:
    """Template-level switch AND an explicit true entry for the job's channel."""
    channel_preferred = preference.channels.get(str(job.type)) is True
    return preference.enabled and channel_preferred


class PreferenceResolver:
    """Merges the aggregated preference with the template's `critical` override.

    Action steps are never gated. For channel steps a "filtered by
    preference" record is appended whenever the subscriber's preference
    blocks the step, before the critical override is applied, so critical
    sends still leave that record behind.
    """

    def __init__(
        self,
        cache: EntityCache,
        subscribers: ISubscriberLookup,
        aggregator: IPreferenceAggregator,
        trace: ExecutionTrace,
    ) -> None:
        self._cache = cache
        self._subscribers = subscribers
        self._aggregator = aggregator
        self._trace = trace

    async def resolve(self, job: Job) -> bool:
        """Load the template and subscriber for `job`, then resolve."""
        template = await asyncio.to_thread(self._cache.get_template, job.environment_id, job.template_id)
        if template is None:
            raise TemplateNotFoundError(job.template_id, job.environment_id)

        subscriber = await asyncio.to_thread(
            self._subscribers.find_by_id, job.environment_id, job.internal_subscriber_id
        )
        if subscriber is None:
            raise SubscriberNotFoundError(job.internal_subscriber_id, job.environment_id)

        return await self.resolve_channel_enabled(job, template, subscriber)

    async def resolve_channel_enabled(
        self, job: Job, template: NotificationTemplate, subscriber: Subscriber
    ) -> bool:
        if is_action_step(job.type):
            return True

        preference = await self._aggregator.get_preference(
            job.organization_id,
            subscriber.subscriber_id,
            job.environment_id,
            template,
            subscriber,
        )
        preferred = step_preferred(preference, job)

        if not preferred:
            await asyncio.to_thread(
                self._trace.append,
                job,
                DetailKind.STEP_FILTERED_BY_PREFERENCES,
                source=DetailSource.INTERNAL,
                status=DetailStatus.SUCCESS,
                raw=preference,
            )
            if template.critical:
                logger.info(
                    "critical template %s overrides subscriber preference for job %s",
                    template.id, job.id,
                )

        return preferred or template.critical
