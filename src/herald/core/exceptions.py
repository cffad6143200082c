"""Herald exception hierarchy."""

from __future__ import annotations


class HeraldError(Exception):
    """Base exception for all Herald errors."""


class NotFoundError(HeraldError):
    """An entity required for the step evaluation does not exist."""


class SubscriberNotFoundError(NotFoundError):
    """Subscriber missing in the job's environment."""

    def __init__(self, subscriber_id: str, environment_id: str) -> None:
        self.subscriber_id = subscriber_id
        self.environment_id = environment_id
        super().__init__(f"Subscriber not found with id {subscriber_id}")


class TemplateNotFoundError(NotFoundError):
    """Notification template missing in the job's environment."""

    def __init__(self, template_id: str, environment_id: str) -> None:
        self.template_id = template_id
        self.environment_id = environment_id
        super().__init__(f"Notification template {template_id} is not found")


class LookupFailure(HeraldError):
    """Backing store or aggregation collaborator errored."""


class CacheError(HeraldError):
    """Redis cache operation failed."""


class UnroutableStepTypeError(HeraldError):
    """No channel handler is registered for the job's step type."""

    def __init__(self, job_id: str, step_type: str) -> None:
        self.job_id = job_id
        self.step_type = step_type
        super().__init__(f"No handler registered for step type {step_type!r} (job {job_id})")


class IllegalStatusTransitionError(HeraldError):
    """Job status change would violate monotonic ordering."""

    def __init__(self, job_id: str, current: str, target: str) -> None:
        self.job_id = job_id
        self.current = current
        self.target = target
        super().__init__(f"Job {job_id} cannot move from {current} to {target}")
