"""StepDispatcher: decides run/skip for a job and routes it to its step handler.

    EVALUATING -> CANCELED      filters failed or channel not preferred
    EVALUATING -> DISPATCHING   start record written (except DELAY), handler awaited

Both the filter and the preference check always run, because each can leave
its own trace record. Dispatch to a handler happens at most once per call.
The terminal-status guard reads the job store, not the caller's snapshot, so a
redelivered copy of a job that was already canceled is not evaluated again.
Two concurrent calls for the same job are independent evaluations; callers
that need exactly-once must serialize per job id upstream.

Stores, lookups and the cache are synchronous; the dispatcher runs them in a
worker thread with `asyncio.to_thread` so they never block the event loop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Optional

from herald.core.config import DispatchConfig
from herald.core.exceptions import UnroutableStepTypeError
from herald.core.protocols import IAnalyticsSink, IChannelHandler, IJobStore
from herald.engine.execution_trace import ExecutionTrace
from herald.engine.filter_matcher import FilterMatcher
from herald.engine.preference_resolver import PreferenceResolver
from herald.models.execution import (
    DetailKind,
    DetailSource,
    DetailStatus,
    DispatchOutcome,
    DispatchResult,
)
from herald.models.filters import FilterResult
from herald.models.job import Job, JobStatus, StepType

logger = logging.getLogger(__name__)


class StepDispatcher:
    """Composes filter matching, preference resolution, tracing and routing."""

    def __init__(
        self,
        *,
        filter_matcher: FilterMatcher,
        preference_resolver: PreferenceResolver,
        trace: ExecutionTrace,
        jobs: IJobStore,
        handlers: Mapping[StepType, IChannelHandler],
        analytics: IAnalyticsSink,
        config: Optional[DispatchConfig] = None,
    ) -> None:
        self._filter = filter_matcher
        self._preferences = preference_resolver
        self._trace = trace
        self._jobs = jobs
        self._handlers = dict(handlers)
        self._analytics = analytics
        self._config = config or DispatchConfig()

    def register(self, step_type: StepType, handler: IChannelHandler) -> None:
        self._handlers[step_type] = handler

    async def execute(self, job: Job, user_id: Optional[str] = None) -> DispatchResult:
        current = await asyncio.to_thread(self._jobs.get, job.organization_id, job.id) or job
        if current.is_terminal:
            logger.info("job %s already %s, not re-evaluating", job.id, current.status)
            return DispatchResult(job_id=job.id, outcome=DispatchOutcome.ALREADY_TERMINAL)

        should_run = await asyncio.to_thread(self._run_filters, job)
        preferred = await self._preferences.resolve(job)

        if not job.payload.get(self._config.onboarding_marker):
            self._track(job, user_id, should_run, preferred)

        if not should_run.passed or not preferred:
            await asyncio.to_thread(
                self._jobs.update_status, job.organization_id, job.id, JobStatus.CANCELED
            )
            logger.info(
                "job %s canceled",
                job.id,
                extra={"filter_passed": should_run.passed, "preferred": preferred},
            )
            return DispatchResult(
                job_id=job.id,
                outcome=DispatchOutcome.CANCELED,
                filter_result=should_run,
                preferred=preferred,
            )

        handler = self._handlers.get(job.type)
        if handler is None:
            if self._config.strict_routing:
                raise UnroutableStepTypeError(job.id, str(job.type))
            logger.warning("no handler registered for step type %s, skipping job %s", job.type, job.id)
            return DispatchResult(
                job_id=job.id,
                outcome=DispatchOutcome.UNROUTABLE,
                filter_result=should_run,
                preferred=preferred,
            )

        if job.type is not StepType.DELAY:
            await asyncio.to_thread(
                self._trace.append,
                job,
                DetailKind.START_DIGESTING if job.type is StepType.DIGEST else DetailKind.START_SENDING,
                source=DetailSource.INTERNAL,
                status=DetailStatus.PENDING,
            )

        await handler.execute(job)
        return DispatchResult(
            job_id=job.id,
            outcome=DispatchOutcome.DISPATCHED,
            filter_result=should_run,
            preferred=preferred,
        )

    def _run_filters(self, job: Job) -> FilterResult:
        context = self._filter.build_context(job)
        result = self._filter.filter(job, context)
        if not result.passed:
            self._trace.append(
                job,
                DetailKind.FILTER_STEPS,
                source=DetailSource.INTERNAL,
                status=DetailStatus.SUCCESS,
                raw={
                    "payload": context.model_dump(mode="json", include={"subscriber", "payload"}),
                    "filters": [group.model_dump(mode="json") for group in job.step.filters],
                },
            )
        return result

    def _track(self, job: Job, user_id: Optional[str], should_run: FilterResult, preferred: bool) -> None:
        summary = FilterMatcher.sum_filters(should_run.conditions)
        properties: dict[str, Any] = {
            "_template": job.template_id,
            "_organization": job.organization_id,
            "_environment": job.environment_id,
            "_subscriber": job.internal_subscriber_id,
            "provider": job.provider_id,
            "delay": job.delay,
            "jobType": str(job.type),
            "digestType": job.digest.type if job.digest else None,
            "digestEventsCount": len(job.digest.events) if job.digest else None,
            "digestUnit": job.digest.unit if job.digest else None,
            "digestAmount": job.digest.amount if job.digest else None,
            "filterPassed": should_run.passed,
            "preferencesPassed": preferred,
            "stepFilters": len(summary.step_filters),
            "failedFilters": len(summary.failed_filters),
            "passedFilters": len(summary.passed_filters),
            "source": job.payload.get("__source") or "api",
        }
        try:
            self._analytics.track(self._config.analytics_event, user_id, properties)
        except Exception:
            logger.warning("analytics tracking failed for job %s", job.id, exc_info=True)
