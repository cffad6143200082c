"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class RedisConfig(BaseSettings):
    """Redis entity cache configuration."""

    model_config = {"env_prefix": "HERALD_REDIS_"}

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    decode_responses: bool = True


class DynamoDBConfig(BaseSettings):
    """DynamoDB job and execution detail storage."""

    model_config = {"env_prefix": "HERALD_DYNAMO_"}

    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class CacheConfig(BaseSettings):
    """Entity cache behaviour."""

    model_config = {"env_prefix": "HERALD_CACHE_"}

    enabled: bool = True
    entity_ttl: int = 3600  # seconds; entities are invalidated on write anyway


class DispatchConfig(BaseSettings):
    """Step dispatcher switches."""

    model_config = {"env_prefix": "HERALD_DISPATCH_"}

    strict_routing: bool = False
    raise_on_trace_failure: bool = False
    onboarding_marker: str = "$on_boarding_trigger"
    analytics_event: str = "Process Workflow Step - [Triggers]"


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "HERALD_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"
    persistence: Literal["memory", "aws"] = "memory"

    redis: RedisConfig = RedisConfig()
    dynamodb: DynamoDBConfig = DynamoDBConfig()
    cache: CacheConfig = CacheConfig()
    dispatch: DispatchConfig = DispatchConfig()
