"""Tests for FilterMatcher evaluation, lazy subscriber loading, and summaries."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from herald.engine.filter_matcher import FilterContext, FilterMatcher
from herald.models.filters import GroupResult
from herald.models.job import StepType
from tests.fakes.jobs import condition, group, make_job, subscriber_filter


def evaluate(world, job, **context):
    matcher = world.matcher()
    return matcher.filter(job, FilterContext(**context))


class TestGroups:
    def test_empty_filter_list_passes(self, world):
        result = evaluate(world, make_job(filters=[]))
        assert result.passed is True
        assert result.conditions == []

    def test_empty_group_passes(self, world):
        result = evaluate(world, make_job(filters=[group()]))
        assert result.passed is True

    def test_all_children_must_pass_within_group(self, world):
        job = make_job(filters=[group(
            condition("payload", "kind", "invoice"),
            condition("payload", "amount", 100, "LARGER"),
        )])
        result = evaluate(world, job, payload={"kind": "invoice", "amount": 50})
        assert result.passed is False
        assert [c.passed for c in result.conditions[0].children] == [True, False]

    def test_all_groups_must_pass(self, world):
        job = make_job(filters=[
            group(condition("payload", "kind", "invoice")),
            group(condition("payload", "region", "eu")),
        ])
        result = evaluate(world, job, payload={"kind": "invoice", "region": "us"})
        assert result.passed is False
        assert [g.passed for g in result.conditions] == [True, False]

    def test_or_group_needs_one_child(self, world):
        job = make_job(filters=[group(
            condition("payload", "region", "eu"),
            condition("payload", "region", "us"),
            value="OR",
        )])
        assert evaluate(world, job, payload={"region": "us"}).passed is True
        assert evaluate(world, job, payload={"region": "apac"}).passed is False


class TestOperandResolution:
    def test_nested_payload_path(self, world):
        job = make_job(filters=[group(condition("payload", "order.items.0.sku", "A-1"))])
        result = evaluate(world, job, payload={"order": {"items": [{"sku": "A-1"}]}})
        assert result.passed is True

    def test_missing_payload_path_is_false_not_error(self, world):
        job = make_job(filters=[group(condition("payload", "order.total", 10, "LARGER"))])
        result = evaluate(world, job, payload={"order": "not-a-dict"})
        assert result.passed is False
        assert result.conditions[0].children[0].actual is None

    def test_subscriber_top_level_attribute(self, world, subscriber):
        job = make_job(filters=subscriber_filter("locale", "en"))
        assert evaluate(world, job, subscriber=subscriber).passed is True

    def test_subscriber_custom_data_attribute(self, world, subscriber):
        job = make_job(filters=subscriber_filter("plan", "pro"))
        assert evaluate(world, job, subscriber=subscriber).passed is True

    def test_missing_subscriber_fails_condition(self, world):
        job = make_job(filters=subscriber_filter("locale", "en"))
        assert evaluate(world, job, subscriber=None).passed is False

    def test_unknown_source_fails_condition(self, world):
        job = make_job(filters=[group(condition("previousStep", "seen", True))])
        assert evaluate(world, job, payload={"seen": True}).passed is False

    def test_webhook_source_reads_context(self, world):
        job = make_job(filters=[group(condition("webhook", "status", "ok"))])
        assert evaluate(world, job, webhook={"status": "ok"}).passed is True


class TestOperators:
    @pytest.mark.parametrize(
        ("operator", "value", "actual", "expected"),
        [
            ("EQUAL", "5", 5, True),
            ("EQUAL", "true", True, True),
            ("EQUAL", False, 0, False),
            ("EQUAL", True, 1, False),
            ("EQUAL", False, False, True),
            ("NOT_EQUAL", False, 0, True),
            ("NOT_EQUAL", "a", "b", True),
            ("LARGER", 10, 11, True),
            ("SMALLER", 10, "9", True),
            ("LARGER_EQUAL", 10, 10, True),
            ("SMALLER_EQUAL", 10, 11, False),
            ("LARGER", 10, "ten", False),
            ("IN", ["eu", "us"], "us", True),
            ("IN", "eu, us", "us", True),
            ("NOT_IN", ["eu"], "us", True),
            ("BETWEEN", [1, 5], 3, True),
            ("BETWEEN", [1, 5], 7, False),
            ("NOT_BETWEEN", [1, 5], 7, True),
            ("NOT_BETWEEN", [1, 5], "x", False),
            ("LIKE", "gmail", "ada@gmail.com", True),
            ("NOT_LIKE", "gmail", "ada@example.com", True),
            ("IS_DEFINED", None, 0, True),
        ],
    )
    def test_operator(self, world, operator, value, actual, expected):
        job = make_job(filters=[group(condition("payload", "field", value, operator))])
        assert evaluate(world, job, payload={"field": actual}).passed is expected

    def test_is_defined_fails_for_missing_field(self, world):
        job = make_job(filters=[group(condition("payload", "field", None, "IS_DEFINED"))])
        assert evaluate(world, job, payload={}).passed is False

    def test_not_equal_fails_for_missing_field(self, world):
        job = make_job(filters=[group(condition("payload", "field", "x", "NOT_EQUAL"))])
        assert evaluate(world, job, payload={}).passed is False


class TestOnlineFilters:
    def test_is_online(self, world, subscriber):
        online = subscriber.model_copy(update={"is_online": True})
        job = make_job(filters=[group(condition("isOnline", "", "true"))])
        assert evaluate(world, job, subscriber=online).passed is True
        assert evaluate(world, job, subscriber=subscriber).passed is False

    def test_is_online_in_last(self, world, subscriber):
        recent = subscriber.model_copy(update={
            "is_online": False,
            "last_online_at": datetime.now(tz=UTC) - timedelta(minutes=3),
        })
        within = make_job(filters=[group(condition("isOnlineInLast", "", 5, time_operator="minutes"))])
        outside = make_job(filters=[group(condition("isOnlineInLast", "", 1, time_operator="minutes"))])
        assert evaluate(world, within, subscriber=recent).passed is True
        assert evaluate(world, outside, subscriber=recent).passed is False


class TestBuildContext:
    def test_subscriber_not_fetched_without_subscriber_filters(self, world):
        job = make_job(filters=[group(condition("payload", "kind", "x"))], payload={"kind": "x"})
        context = world.matcher().build_context(job)
        assert context.subscriber is None
        assert world.subscribers.lookups == 0
        assert context.payload == {"kind": "x"}

    def test_subscriber_fetched_through_cache(self, world):
        job = make_job(filters=subscriber_filter("locale", "en"))
        matcher = world.matcher()
        first = matcher.build_context(job)
        second = matcher.build_context(job)
        assert first.subscriber is not None and first.subscriber.locale == "en"
        assert second.subscriber == first.subscriber
        assert world.subscribers.lookups == 1

    def test_webhook_source_only_called_for_webhook_filters(self, world):
        calls = []

        class Source:
            def fetch(self, job):
                calls.append(job.id)
                return {"status": "ok"}

        matcher = FilterMatcher(world.cache(), webhook_source=Source())
        matcher.build_context(make_job(filters=[group(condition("payload", "a", 1))]))
        context = matcher.build_context(make_job(filters=[group(condition("webhook", "status", "ok"))]))
        assert calls == [f"job-{StepType.SMS}"]
        assert context.webhook == {"status": "ok"}


class TestSumFilters:
    def test_counts_by_outcome(self, world, subscriber):
        job = make_job(filters=[
            group(condition("payload", "kind", "x"), condition("subscriber", "locale", "fr")),
            group(condition("isOnline", "", "true")),
        ])
        result = evaluate(world, job, payload={"kind": "x"}, subscriber=subscriber)
        summary = FilterMatcher.sum_filters(result.conditions)
        assert summary.step_filters == ["payload", "subscriber", "online"]
        assert summary.passed_filters == ["payload"]
        assert summary.failed_filters == ["subscriber", "online"]

    def test_empty_conditions(self):
        summary = FilterMatcher.sum_filters([GroupResult(passed=True)])
        assert summary.step_filters == []
