"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from herald.core.config import AppSettings
from herald.persistence.dynamodb_backend import DynamoDBExecutionDetailStore, DynamoDBJobStore
from herald.persistence.memory_backend import (
    MemoryCacheBackend,
    MemoryExecutionDetailStore,
    MemoryJobStore,
)
from herald.persistence.redis_backend import RedisCacheBackend


def create_persistence(settings: AppSettings | None = None):
    """Create wired-up persistence backends from application settings.

    Returns:
        Tuple of (job_store, execution_detail_store, cache).
    """
    if settings is None:
        settings = AppSettings()

    if settings.persistence == "memory":
        return MemoryJobStore(), MemoryExecutionDetailStore(), MemoryCacheBackend()

    cache = RedisCacheBackend(
        host=settings.redis.host,
        port=settings.redis.port,
        db=settings.redis.db,
        decode_responses=settings.redis.decode_responses,
    )

    job_store = DynamoDBJobStore(
        table_suffix=settings.dynamodb.table_suffix,
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
    )

    detail_store = DynamoDBExecutionDetailStore(
        table_suffix=settings.dynamodb.table_suffix,
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
    )

    return job_store, detail_store, cache
