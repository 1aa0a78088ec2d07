from __future__ import annotations
import logging
import os
from dataclasses import dataclass

import structlog


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class TargetConfig:
    base_year: int = 2025
    unknown_strategy: str = "block"  # block|ignore
    unit_yuan: float = 10000.0  # CSV targets are expressed in 万 yuan


def get_target_config() -> TargetConfig:
    strategy = os.getenv("GOAL_UNKNOWN_STRATEGY", "block").strip().lower()
    if strategy not in {"block", "ignore"}:
        strategy = "block"
    return TargetConfig(
        base_year=int(os.getenv("GOAL_BASE_YEAR", "2025")),
        unknown_strategy=strategy,
        unit_yuan=float(os.getenv("TARGET_UNIT_YUAN", "10000")),
    )


@dataclass(frozen=True)
class CacheConfig:
    enabled: bool = True


def get_cache_config() -> CacheConfig:
    return CacheConfig(enabled=_env_bool("KPI_CACHE_ENABLED", True))


@dataclass(frozen=True)
class TrendConfig:
    weeks: int = 12


def get_trend_config() -> TrendConfig:
    return TrendConfig(weeks=int(os.getenv("KPI_TREND_WEEKS", "12")))


@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"
    json_output: bool = False


def get_log_config() -> LogConfig:
    return LogConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        json_output=os.getenv("LOG_FORMAT", "console").lower() == "json",
    )


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Configure structlog once for the process."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    renderer = structlog.processors.JSONRenderer(ensure_ascii=False) if json_output else structlog.dev.ConsoleRenderer(colors=False)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        cache_logger_on_first_use=False,
    )
