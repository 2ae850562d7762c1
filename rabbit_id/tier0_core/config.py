"""
rabbit_id.tier0_core.config
────────────────────────────
Typed configuration with env layering. Reads from .env → environment
variables. All fields are typed via Pydantic; invalid values fail when the
config is first loaded, never on the id hot path.

Minimal stack: pydantic-settings + python-dotenv
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rabbit_id.tier0_core.errors import ConfigurationError
from rabbit_id.tier0_core.layout import BASE_EPOCH_MS, MAX_DATACENTER_ID, MAX_WORKER_ID

ClockBackwardsPolicy = Literal["raise", "wait", "reset"]


class RabbitIdConfig(BaseSettings):
    """
    Typed generator configuration. All env vars are prefixed with RABBIT_.
    Leave RABBIT_DATACENTER_ID / RABBIT_WORKER_ID unset to derive them from
    the host's network identity and process id.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ── Machine identity ──────────────────────────────────────────────────────
    datacenter_id: int | None = Field(default=None, alias="RABBIT_DATACENTER_ID")
    worker_id: int | None = Field(default=None, alias="RABBIT_WORKER_ID")

    # ── Layout ────────────────────────────────────────────────────────────────
    epoch_ms: int = Field(default=BASE_EPOCH_MS, alias="RABBIT_EPOCH_MS")

    # ── Clock regression ──────────────────────────────────────────────────────
    clock_backwards: ClockBackwardsPolicy = Field(
        default="raise", alias="RABBIT_CLOCK_BACKWARDS"
    )
    max_backwards_ms: int = Field(default=5, alias="RABBIT_MAX_BACKWARDS_MS")

    # ── Logging ───────────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", alias="RABBIT_LOG_LEVEL")
    log_format: str = Field(default="json", alias="RABBIT_LOG_FORMAT")

    # ── Metrics ───────────────────────────────────────────────────────────────
    metrics_enabled: bool = Field(default=True, alias="RABBIT_METRICS_ENABLED")
    metrics_port: int = Field(default=8001, alias="RABBIT_METRICS_PORT")

    @field_validator("datacenter_id")
    @classmethod
    def validate_datacenter_id(cls, v: int | None) -> int | None:
        if v is not None and not 0 <= v <= MAX_DATACENTER_ID:
            raise ValueError(f"datacenter_id must be between 0 and {MAX_DATACENTER_ID}, got {v}")
        return v

    @field_validator("worker_id")
    @classmethod
    def validate_worker_id(cls, v: int | None) -> int | None:
        if v is not None and not 0 <= v <= MAX_WORKER_ID:
            raise ValueError(f"worker_id must be between 0 and {MAX_WORKER_ID}, got {v}")
        return v

    @field_validator("epoch_ms", "max_backwards_ms")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"must be non-negative, got {v}")
        return v

    @field_validator("clock_backwards", mode="before")
    @classmethod
    def normalize_policy(cls, v: object) -> object:
        return v.lower() if isinstance(v, str) else v


@lru_cache(maxsize=1)
def get_config() -> RabbitIdConfig:
    """
    Return the singleton config. Cached after first call.
    Call _reset_config() in tests to pick up new env vars.
    Invalid values raise ConfigurationError.
    """
    try:
        return RabbitIdConfig()
    except ValidationError as exc:
        raise ConfigurationError("Invalid rabbit_id configuration.", str(exc)) from exc


def _reset_config() -> None:
    """For tests — clear the config cache."""
    get_config.cache_clear()


__all__ = ["RabbitIdConfig", "ClockBackwardsPolicy", "get_config"]
