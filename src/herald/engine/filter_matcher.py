"""FilterMatcher: evaluates a step's filter tree against subscriber and payload data.

Groups are independent; a group passes when all of its children pass (or any,
for an OR group) and the step passes when every group passes. An operand
that cannot be resolved makes its condition false; evaluation never raises
for bad data.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field

from herald.core.protocols import IWebhookDataSource
from herald.engine.entity_cache import EntityCache
from herald.models.filters import (
    ConditionResult,
    FilterChild,
    FilterOperator,
    FilterResult,
    FilterSource,
    FilterSummary,
    GroupOperator,
    GroupResult,
    TimeOperator,
)
from herald.models.job import Job
from herald.models.subscriber import Subscriber

logger = logging.getLogger(__name__)

_MISSING = object()

SUBSCRIBER_SOURCES = (FilterSource.SUBSCRIBER, FilterSource.IS_ONLINE, FilterSource.IS_ONLINE_IN_LAST)
ONLINE_SOURCES = (FilterSource.IS_ONLINE, FilterSource.IS_ONLINE_IN_LAST)

_TIME_UNITS = {
    TimeOperator.MINUTES: timedelta(minutes=1),
    TimeOperator.HOURS: timedelta(hours=1),
    TimeOperator.DAYS: timedelta(days=1),
}


class FilterContext(BaseModel):
    """Data a filter tree is evaluated against."""

    subscriber: Optional[Subscriber] = None
    payload: dict[str, Any] = Field(default_factory=dict)
    webhook: dict[str, Any] = Field(default_factory=dict)


def resolve_path(source: Any, path: str) -> Any:
    """Walk a dotted path through dicts and lists; `_MISSING` when absent."""
    current = source
    for part in path.split(".") if path else []:
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return _MISSING
    return current


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).strip()


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple, set)):
        return list(value)
    if isinstance(value, str):
        return [item.strip() for item in value.split(",")]
    return [value]


def _equals(actual: Any, expected: Any) -> bool:
    # bools only equal bools: 0 is not false, 1 is not true
    if isinstance(actual, bool) != isinstance(expected, bool):
        return _as_text(actual) == _as_text(expected)
    return actual == expected or _as_text(actual) == _as_text(expected)


def _in(actual: Any, expected: Any) -> bool:
    candidates = {_as_text(item) for item in _as_list(expected)}
    if isinstance(actual, list):
        return any(_as_text(item) in candidates for item in actual)
    return _as_text(actual) in candidates


def _between(actual: Any, expected: Any) -> Optional[bool]:
    bounds = _as_list(expected)
    if len(bounds) != 2:
        return None
    low, high, number = _as_number(bounds[0]), _as_number(bounds[1]), _as_number(actual)
    if low is None or high is None or number is None:
        return None
    return low <= number <= high


def _compare_numbers(actual: Any, expected: Any, operator: FilterOperator) -> bool:
    left, right = _as_number(actual), _as_number(expected)
    if left is None or right is None:
        return False
    if operator is FilterOperator.LARGER:
        return left > right
    if operator is FilterOperator.SMALLER:
        return left < right
    if operator is FilterOperator.LARGER_EQUAL:
        return left >= right
    return left <= right


def apply_operator(operator: FilterOperator, actual: Any, expected: Any) -> bool:
    """Compare a resolved operand against the filter value."""
    if actual is _MISSING:
        return False
    if operator is FilterOperator.IS_DEFINED:
        return actual is not None
    if actual is None:
        return False
    if operator is FilterOperator.EQUAL:
        return _equals(actual, expected)
    if operator is FilterOperator.NOT_EQUAL:
        return not _equals(actual, expected)
    if operator in (
        FilterOperator.LARGER,
        FilterOperator.SMALLER,
        FilterOperator.LARGER_EQUAL,
        FilterOperator.SMALLER_EQUAL,
    ):
        return _compare_numbers(actual, expected, operator)
    if operator is FilterOperator.IN:
        return _in(actual, expected)
    if operator is FilterOperator.NOT_IN:
        return not _in(actual, expected)
    if operator is FilterOperator.BETWEEN:
        return _between(actual, expected) is True
    if operator is FilterOperator.NOT_BETWEEN:
        return _between(actual, expected) is False
    if operator is FilterOperator.LIKE:
        return _as_text(expected) in _as_text(actual)
    if operator is FilterOperator.NOT_LIKE:
        return _as_text(expected) not in _as_text(actual)
    return False


class FilterMatcher:
    """Evaluates step filters; fetches the subscriber only when a filter needs it."""

    def __init__(self, cache: EntityCache, webhook_source: Optional[IWebhookDataSource] = None) -> None:
        self._cache = cache
        self._webhook_source = webhook_source

    def build_context(self, job: Job) -> FilterContext:
        subscriber = None
        if job.step.references(*SUBSCRIBER_SOURCES):
            subscriber = self._cache.get_subscriber(job.environment_id, job.subscriber_id)

        webhook: dict[str, Any] = {}
        if self._webhook_source is not None and job.step.references(FilterSource.WEBHOOK):
            webhook = self._webhook_source.fetch(job) or {}

        return FilterContext(subscriber=subscriber, payload=job.payload, webhook=webhook)

    def filter(self, job: Job, context: FilterContext) -> FilterResult:
        groups: list[GroupResult] = []
        for group in job.step.filters:
            children = [self._evaluate(child, context) for child in group.children]
            if group.value is GroupOperator.OR and children:
                passed = any(c.passed for c in children)
            else:
                passed = all(c.passed for c in children)
            groups.append(GroupResult(passed=passed, children=children))

        passed = all(g.passed for g in groups)
        if not passed:
            logger.debug("job %s did not pass step filters", job.id)
        return FilterResult(passed=passed, conditions=groups)

    # ---- per-condition evaluation ----

    def _evaluate(self, child: FilterChild, context: FilterContext) -> ConditionResult:
        if child.on == FilterSource.IS_ONLINE:
            actual, passed = self._is_online(child, context.subscriber)
        elif child.on == FilterSource.IS_ONLINE_IN_LAST:
            actual, passed = self._is_online_in_last(child, context.subscriber)
        else:
            actual = self._operand(child, context)
            passed = apply_operator(child.operator, actual, child.value)

        return ConditionResult(
            filter=str(child.on),
            field=child.field,
            expected=child.value,
            actual=None if actual is _MISSING else actual,
            operator=str(child.operator),
            passed=passed,
        )

    @staticmethod
    def _operand(child: FilterChild, context: FilterContext) -> Any:
        if child.on == FilterSource.SUBSCRIBER:
            if context.subscriber is None:
                return _MISSING
            attributes = context.subscriber.model_dump()
            value = resolve_path(attributes, child.field)
            if value is _MISSING:
                value = resolve_path(attributes.get("data") or {}, child.field)
            return value
        if child.on == FilterSource.PAYLOAD:
            return resolve_path(context.payload, child.field)
        if child.on == FilterSource.WEBHOOK:
            return resolve_path(context.webhook, child.field)
        return _MISSING

    @staticmethod
    def _is_online(child: FilterChild, subscriber: Optional[Subscriber]) -> tuple[Any, bool]:
        if subscriber is None or subscriber.is_online is None:
            return _MISSING, False
        expected = _as_text(child.value).lower() == "true"
        return subscriber.is_online, subscriber.is_online == expected

    @staticmethod
    def _is_online_in_last(child: FilterChild, subscriber: Optional[Subscriber]) -> tuple[Any, bool]:
        if subscriber is None:
            return _MISSING, False
        if subscriber.is_online:
            return True, True
        amount = _as_number(child.value)
        unit = _TIME_UNITS.get(child.time_operator or TimeOperator.MINUTES)
        if subscriber.last_online_at is None or amount is None:
            return _MISSING, False

        last_seen = subscriber.last_online_at
        if last_seen.tzinfo is None:
            last_seen = last_seen.replace(tzinfo=UTC)
        elapsed = datetime.now(tz=UTC) - last_seen
        return last_seen.isoformat(), elapsed <= unit * amount

    # ---- reporting ----

    @staticmethod
    def sum_filters(conditions: Iterable[GroupResult]) -> FilterSummary:
        """Tally filter sources by outcome. Has no bearing on the verdict."""
        summary = FilterSummary()
        for group in conditions:
            for condition in group.children:
                kind = "online" if condition.filter in ONLINE_SOURCES else (condition.filter or "payload").lower()
                summary.step_filters.append(kind)
                if condition.passed:
                    summary.passed_filters.append(kind)
                else:
                    summary.failed_filters.append(kind)
        return summary
