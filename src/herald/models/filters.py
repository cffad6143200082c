"""Step filter tree and filter evaluation result models."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field


class FilterSource(StrEnum):
    SUBSCRIBER = "subscriber"
    PAYLOAD = "payload"
    WEBHOOK = "webhook"
    IS_ONLINE = "isOnline"
    IS_ONLINE_IN_LAST = "isOnlineInLast"


class FilterOperator(StrEnum):
    EQUAL = "EQUAL"
    NOT_EQUAL = "NOT_EQUAL"
    LARGER = "LARGER"
    SMALLER = "SMALLER"
    LARGER_EQUAL = "LARGER_EQUAL"
    SMALLER_EQUAL = "SMALLER_EQUAL"
    IN = "IN"
    NOT_IN = "NOT_IN"
    BETWEEN = "BETWEEN"
    NOT_BETWEEN = "NOT_BETWEEN"
    LIKE = "LIKE"
    NOT_LIKE = "NOT_LIKE"
    IS_DEFINED = "IS_DEFINED"


class GroupOperator(StrEnum):
    AND = "AND"
    OR = "OR"


class TimeOperator(StrEnum):
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"


class FilterChild(BaseModel):
    """A single comparison inside a filter group."""

    on: str = FilterSource.PAYLOAD
    field: str = ""
    value: Any = None
    operator: FilterOperator = FilterOperator.EQUAL
    time_operator: Optional[TimeOperator] = None  # isOnlineInLast only


class FilterGroup(BaseModel):
    """Children combined with AND unless the group says otherwise."""

    type: str = "GROUP"
    value: GroupOperator = GroupOperator.AND
    children: list[FilterChild] = Field(default_factory=list)


class ConditionResult(BaseModel):
    filter: str
    field: str = ""
    expected: Any = None
    actual: Any = None
    operator: str = ""
    passed: bool = False


class GroupResult(BaseModel):
    passed: bool
    children: list[ConditionResult] = Field(default_factory=list)


class FilterResult(BaseModel):
    """Verdict of a step filter evaluation with per-condition diagnostics."""

    passed: bool
    conditions: list[GroupResult] = Field(default_factory=list)


class FilterSummary(BaseModel):
    """Filter sources used on a step, split by outcome. Reporting only."""

    step_filters: list[str] = Field(default_factory=list)
    failed_filters: list[str] = Field(default_factory=list)
    passed_filters: list[str] = Field(default_factory=list)
