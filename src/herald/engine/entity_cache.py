"""Read-through cache in front of subscriber and template lookups."""

from __future__ import annotations

import logging
from typing import Optional, TypeVar

from pydantic import BaseModel

from herald.core.protocols import ICacheBackend, ISubscriberLookup, ITemplateLookup
from herald.models.subscriber import NotificationTemplate, Subscriber

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _require_scope(environment_id: str) -> None:
    if not environment_id:
        raise ValueError("cache keys must be scoped to an environment")


def build_subscriber_key(environment_id: str, subscriber_id: str) -> str:
    _require_scope(environment_id)
    return f"subscriber:e={environment_id}:s={subscriber_id}"


def build_template_key(environment_id: str, template_id: str) -> str:
    _require_scope(environment_id)
    return f"notification_template:e={environment_id}:i={template_id}"


class EntityCache:
    """Caches JSON snapshots of entities in an ICacheBackend.

    Misses delegate to the backing lookup. A lookup that finds nothing is not
    cached, so an entity created afterwards is visible on the next read.
    Invalidation is driven by whoever mutates the entity; reads between a
    mutation and its invalidation may be stale.
    """

    def __init__(
        self,
        backend: ICacheBackend,
        subscribers: ISubscriberLookup,
        templates: ITemplateLookup,
        ttl: int = 3600,
        enabled: bool = True,
    ) -> None:
        self._backend = backend
        self._subscribers = subscribers
        self._templates = templates
        self._ttl = ttl
        self._enabled = enabled

    # ---- raw key/value access ----

    def get(self, key: str, model: type[M]) -> tuple[Optional[M], bool]:
        if not self._enabled:
            return None, False
        cached = self._backend.get(key)
        if cached is None:
            return None, False
        return model.model_validate_json(cached), True

    def put(self, key: str, value: BaseModel) -> None:
        if not self._enabled:
            return
        self._backend.setex(key, self._ttl, value.model_dump_json())

    def invalidate(self, key: str) -> None:
        self._backend.delete(key)

    # ---- read-through lookups ----

    def get_subscriber(self, environment_id: str, subscriber_id: str) -> Optional[Subscriber]:
        key = build_subscriber_key(environment_id, subscriber_id)
        subscriber, found = self.get(key, Subscriber)
        if found:
            return subscriber

        subscriber = self._subscribers.find_by_subscriber_id(environment_id, subscriber_id)
        if subscriber is not None:
            self.put(key, subscriber)
        else:
            logger.debug("subscriber %s not found in environment %s", subscriber_id, environment_id)
        return subscriber

    def get_template(self, environment_id: str, template_id: str) -> Optional[NotificationTemplate]:
        key = build_template_key(environment_id, template_id)
        template, found = self.get(key, NotificationTemplate)
        if found:
            return template

        template = self._templates.find_by_id(template_id, environment_id)
        if template is not None:
            self.put(key, template)
        return template

    def invalidate_subscriber(self, environment_id: str, subscriber_id: str) -> None:
        self.invalidate(build_subscriber_key(environment_id, subscriber_id))

    def invalidate_template(self, environment_id: str, template_id: str) -> None:
        self.invalidate(build_template_key(environment_id, template_id))
