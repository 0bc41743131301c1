"""Policy engine configuration helpers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional
import logging
import os

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass(frozen=True)
class PolicyConfig:
    """Settings read once at process start."""

    limits_file: Optional[str]
    log_level: str
    warn_on_unknown_tier: bool

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)


def _to_bool(value: Optional[str], *, default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return default


def _to_log_level(value: Optional[str], *, default: str) -> str:
    if value is None or not value.strip():
        return default
    level = value.strip().upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"Expected one of {sorted(_LOG_LEVELS)}, got {value!r}")
    return level


def load_policy_config(env: Optional[Mapping[str, str]] = None) -> PolicyConfig:
    """Load :class:`PolicyConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    limits_file = (env_mapping.get("PLAN_POLICY_LIMITS_FILE") or "").strip() or None
    log_level = _to_log_level(env_mapping.get("PLAN_POLICY_LOG_LEVEL"), default="WARNING")
    warn_on_unknown_tier = _to_bool(env_mapping.get("PLAN_POLICY_WARN_UNKNOWN_TIER"), default=True)

    return PolicyConfig(
        limits_file=limits_file,
        log_level=log_level,
        warn_on_unknown_tier=warn_on_unknown_tier,
    )
