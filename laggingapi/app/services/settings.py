"""
Runtime configuration for the lagging indicator engine.
Values come from environment variables (optionally seeded from a .env file by main.py).
"""
from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Mapping, Optional, TypeVar

from .errors import InvalidParameter

T = TypeVar("T")

ENV_PREFIX = "LAGGING_"

DEFAULT_DATABASE_URL = "sqlite:///lagging.db"
DEFAULT_RATE_CONSTANT = 200_000.0
DEFAULT_SEVERITY_CONSTANT = 1_000.0
DEFAULT_INDIRECT_DAMAGE_MULTIPLIER = 4.0
DEFAULT_FATALITY_LOST_DAYS = 7_500
DEFAULT_LOST_DAY_FALLBACK_CAP = 180


def _positive_float(raw: str) -> float:
    value = float(raw)
    if not (math.isfinite(value) and value > 0):
        raise ValueError("must be a finite number greater than 0")
    return value


@dataclass(frozen=True)
class LaggingSettings:
    """Policy constants and operational knobs.

    The rate, severity and damage constants are product decisions; they live
    here so that every call site reads the same value.
    """

    database_url: str = DEFAULT_DATABASE_URL
    rate_constant: float = DEFAULT_RATE_CONSTANT
    severity_constant: float = DEFAULT_SEVERITY_CONSTANT
    indirect_damage_multiplier: float = DEFAULT_INDIRECT_DAMAGE_MULTIPLIER
    fatality_lost_days: int = DEFAULT_FATALITY_LOST_DAYS
    # None disables the cap on the running lost-day estimate
    lost_day_fallback_cap: Optional[int] = DEFAULT_LOST_DAY_FALLBACK_CAP
    summary_cache_ttl: float = 300.0
    investigation_cache_ttl: float = 60.0
    fetch_timeout: float = 30.0
    max_range_years: int = 50
    completed_investigation_statuses: FrozenSet[str] = field(
        default_factory=lambda: frozenset({"completed"})
    )
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LaggingSettings":
        env = os.environ if environ is None else environ
        defaults = cls()

        def read(name: str, parse: Callable[[str], T], default: T) -> T:
            raw = env.get(ENV_PREFIX + name)
            if raw is None or not str(raw).strip():
                return default
            try:
                return parse(str(raw).strip())
            except ValueError as e:
                raise InvalidParameter(f"{ENV_PREFIX}{name}={raw!r} is not valid: {e}") from e

        cap = read("LOST_DAY_FALLBACK_CAP", int, defaults.lost_day_fallback_cap)
        statuses = read(
            "COMPLETED_INVESTIGATION_STATUSES",
            lambda s: frozenset(p.strip().lower() for p in s.split(",") if p.strip()),
            defaults.completed_investigation_statuses,
        )
        return cls(
            database_url=read("DATABASE_URL", str, defaults.database_url),
            rate_constant=read("RATE_CONSTANT", _positive_float, defaults.rate_constant),
            severity_constant=read("SEVERITY_CONSTANT", _positive_float, defaults.severity_constant),
            indirect_damage_multiplier=read(
                "INDIRECT_DAMAGE_MULTIPLIER", float, defaults.indirect_damage_multiplier
            ),
            fatality_lost_days=read("FATALITY_LOST_DAYS", int, defaults.fatality_lost_days),
            lost_day_fallback_cap=cap if cap and cap > 0 else None,
            summary_cache_ttl=read("SUMMARY_CACHE_TTL", float, defaults.summary_cache_ttl),
            investigation_cache_ttl=read(
                "INVESTIGATION_CACHE_TTL", float, defaults.investigation_cache_ttl
            ),
            fetch_timeout=read("FETCH_TIMEOUT", float, defaults.fetch_timeout),
            max_range_years=read("MAX_RANGE_YEARS", int, defaults.max_range_years),
            completed_investigation_statuses=statuses,
            log_level=read("LOG_LEVEL", lambda s: s.upper(), defaults.log_level),
        )
