"""Default preference aggregation: template defaults overlaid by subscriber overrides."""

from __future__ import annotations

from herald.core.protocols import ISubscriberPreferenceStore
from herald.models.job import CHANNEL_STEP_TYPES
from herald.models.subscriber import (
    NotificationTemplate,
    Preference,
    PreferenceLevel,
    PreferenceOverride,
    PreferenceOverrideSource,
    ResolvedPreference,
    Subscriber,
    SubscriberPreference,
)


class PreferenceAggregator:
    """IPreferenceAggregator backed by stored subscriber preferences.

    Precedence, lowest first: every channel enabled, the template's
    preference settings, the subscriber's global preference, then the
    subscriber's preference for this template.
    """

    def __init__(self, store: ISubscriberPreferenceStore) -> None:
        self._store = store

    async def get_preference(
        self,
        organization_id: str,
        subscriber_id: str,
        environment_id: str,
        template: NotificationTemplate,
        subscriber: Subscriber,
    ) -> Preference:
        return self.resolve(environment_id, template, subscriber).preference

    def resolve(
        self, environment_id: str, template: NotificationTemplate, subscriber: Subscriber
    ) -> ResolvedPreference:
        stored = self._store.find(environment_id, subscriber.id)
        global_pref = _pick(stored, PreferenceLevel.GLOBAL)
        template_pref = _pick(stored, PreferenceLevel.TEMPLATE, template.id)

        channels = {str(channel): True for channel in CHANNEL_STEP_TYPES}
        channels.update(template.preference_settings)
        sources = {channel: PreferenceOverrideSource.TEMPLATE for channel in channels}

        for override in (global_pref, template_pref):
            if override is None:
                continue
            for channel, value in override.channels.items():
                channels[channel] = value
                sources[channel] = PreferenceOverrideSource.SUBSCRIBER

        enabled = True
        if template_pref is not None and template_pref.enabled is not None:
            enabled = template_pref.enabled
        elif global_pref is not None and global_pref.enabled is not None:
            enabled = global_pref.enabled

        return ResolvedPreference(
            preference=Preference(enabled=enabled, channels=channels),
            overrides=[
                PreferenceOverride(channel=channel, source=source)
                for channel, source in sorted(sources.items())
            ],
        )


def _pick(
    stored: list[SubscriberPreference], level: PreferenceLevel, template_id: str | None = None
) -> SubscriberPreference | None:
    for pref in stored:
        if pref.level == level and (level is PreferenceLevel.GLOBAL or pref.template_id == template_id):
            return pref
    return None
