"""Subscriber, notification template, and preference models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field


class Subscriber(BaseModel):
    """Subscriber identity and attributes referenced by filters."""

    id: str  # internal id
    subscriber_id: str  # external id supplied by the API caller
    environment_id: str
    organization_id: str = ""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    locale: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)
    is_online: Optional[bool] = None
    last_online_at: Optional[datetime] = None


class NotificationTemplate(BaseModel):
    """Workflow template; `critical` templates bypass subscriber preferences."""

    id: str
    environment_id: str
    organization_id: str = ""
    name: str = ""
    critical: bool = False
    active: bool = True
    preference_settings: dict[str, bool] = Field(default_factory=dict)
    steps: list[dict[str, Any]] = Field(default_factory=list)


class Preference(BaseModel):
    """Effective per-template preference for one subscriber."""

    enabled: bool = True
    channels: dict[str, bool] = Field(default_factory=dict)


class PreferenceLevel(StrEnum):
    GLOBAL = "global"
    TEMPLATE = "template"


class PreferenceOverrideSource(StrEnum):
    TEMPLATE = "template"
    SUBSCRIBER = "subscriber"


class SubscriberPreference(BaseModel):
    """A stored subscriber preference, either global or for one template."""

    subscriber_id: str  # internal id
    environment_id: str
    level: PreferenceLevel = PreferenceLevel.TEMPLATE
    template_id: Optional[str] = None
    enabled: Optional[bool] = None
    channels: dict[str, bool] = Field(default_factory=dict)


class PreferenceOverride(BaseModel):
    channel: str
    source: PreferenceOverrideSource


class ResolvedPreference(BaseModel):
    """Aggregated preference plus where each channel value came from."""

    preference: Preference
    overrides: list[PreferenceOverride] = Field(default_factory=list)
