"""Re-export persistence protocols from core for convenience."""

from __future__ import annotations

from herald.core.protocols import (
    ICacheBackend,
    IExecutionDetailStore,
    IJobStore,
    ISubscriberLookup,
    ISubscriberPreferenceStore,
    ITemplateLookup,
)

__all__ = [
    "ICacheBackend",
    "IExecutionDetailStore",
    "IJobStore",
    "ISubscriberLookup",
    "ISubscriberPreferenceStore",
    "ITemplateLookup",
]
