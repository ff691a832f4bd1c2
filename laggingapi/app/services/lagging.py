"""
Lagging indicator summaries: orchestrates fetch -> classify -> calculate -> cache.

This service is the only entry point the HTTP layer uses. Range requests are served
by calling the single-year path once per year, so a year inside a range always
matches the point summary for that year.
"""
from __future__ import annotations

import asyncio
import logging
import re
from datetime import MAXYEAR, date
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..models.schemas import (
    CountBreakdown,
    DashboardSummary,
    HoursBreakdown,
    LaggingSummary,
    PropertyDamageSummary,
    RateBreakdown,
)
from . import metrics
from .classifier import classify_year
from .data_cache import ResultCache, make_cache_key
from .errors import InvalidParameter
from .records import Split
from .settings import LaggingSettings
from .source_data import SourceDataFetcher

logger = logging.getLogger(__name__)

SUMMARY_CACHE_NAME = "lagging_summary"
INVESTIGATION_CACHE_NAME = "investigation_batch"

# the year range query needs Y+1-01-01 as its upper bound
MAX_YEAR = MAXYEAR - 1
_YEAR_DIGITS = re.compile(r"[0-9]{1,8}")


def _counts(split: Split) -> CountBreakdown:
    return CountBreakdown(total=int(split.total), employee=int(split.employee), contractor=int(split.contractor))


def _rates(split: Split) -> RateBreakdown:
    return RateBreakdown(total=split.total, employee=split.employee, contractor=split.contractor)


def validate_year(year: Any) -> int:
    """Accept a positive integer up to MAX_YEAR, or its ASCII decimal string form."""
    if isinstance(year, bool):
        raise InvalidParameter(f"year must be a positive integer, got {year!r}")
    if isinstance(year, str):
        text = year.strip()
        if not _YEAR_DIGITS.fullmatch(text):
            raise InvalidParameter(f"year must be a positive integer, got {year!r}")
        year = int(text)
    if not isinstance(year, int) or year <= 0:
        raise InvalidParameter(f"year must be a positive integer, got {year!r}")
    if year > MAX_YEAR:
        raise InvalidParameter(f"year must not exceed {MAX_YEAR}, got {year}")
    return year


class LaggingSummaryService:
    def __init__(
        self,
        fetcher: SourceDataFetcher,
        cache: ResultCache,
        settings: Optional[LaggingSettings] = None,
        today: Callable[[], date] = date.today,
    ):
        self.fetcher = fetcher
        self.cache = cache
        self.settings = settings or LaggingSettings()
        self.today = today

    # ---------- Cache access (never fatal) ----------

    def _cache_get(self, key: str) -> Optional[Any]:
        try:
            return self.cache.get(key)
        except Exception:
            logger.warning("Cache lookup failed for %s; recomputing", key, exc_info=True)
            return None

    def _cache_set(self, key: str, value: Any, ttl: float) -> None:
        try:
            self.cache.set(key, value, ttl)
        except Exception:
            logger.warning("Cache store failed for %s", key, exc_info=True)

    # ---------- Summaries ----------

    async def get_summary(self, year: Any) -> LaggingSummary:
        year = validate_year(year)
        key = make_cache_key(SUMMARY_CACHE_NAME, {"year": year})
        cached = self._cache_get(key)
        if cached is not None:
            logger.info("Cache hit for lagging summary %s", year)
            return cached.model_copy(deep=True)

        logger.info("Calculating lagging summary for %s", year)
        summary = await self._compute_summary(year)
        self._cache_set(key, summary, self.settings.summary_cache_ttl)
        # callers get their own copy; the cached instance is never handed out
        return summary.model_copy(deep=True)

    async def _compute_summary(self, year: int) -> LaggingSummary:
        accidents, labor_hours = await asyncio.gather(
            self.fetcher.fetch_accidents(year),
            self.fetcher.fetch_labor_hours(year),
        )
        accident_ids = [a.accident_id for a in accidents]
        victims, damages, investigation_victims = await asyncio.gather(
            self.fetcher.fetch_victims(accident_ids),
            self.fetcher.fetch_property_damage(accident_ids),
            self.fetcher.fetch_investigation_victims(accident_ids),
        )
        logger.info(
            "Year %s: %d accidents, %d victims, %d damage rows, %d labor-hour rows, %d investigated victims",
            year, len(accidents), len(victims), len(damages), len(labor_hours), len(investigation_victims),
        )
        return self.build_summary(year, accidents, victims, damages, labor_hours, investigation_victims)

    def build_summary(
        self, year: int, accidents, victims, damages, labor_hours, investigation_victims=()
    ) -> LaggingSummary:
        """Pure assembly from already-fetched records."""
        s = self.settings
        classified = classify_year(
            accidents, victims, damages, indirect_multiplier=s.indirect_damage_multiplier, year=year
        )
        hours = metrics.total_labor_hours(labor_hours)
        lost_days = metrics.total_lost_days(
            classified.victims,
            self.today(),
            fatality_days=s.fatality_lost_days,
            fallback_cap=s.lost_day_fallback_cap,
            investigation_dates={(r.accident_id, r.victim_id): r for r in investigation_victims},
        )
        damage = classified.property_damage

        return LaggingSummary(
            year=year,
            accident_count=_counts(classified.accident_count),
            site_accident_counts=classified.site_accident_counts,
            victim_count=_counts(classified.victim_count),
            injury_type_counts=classified.injury_type_counts,
            property_damage=PropertyDamageSummary(
                direct=damage.direct, indirect=damage.indirect, total=damage.total, by_type=damage.by_type
            ),
            working_hours=HoursBreakdown(total=hours.total, employee=hours.employee, contractor=hours.contractor),
            lost_days=_counts(lost_days),
            ltir_accident_counts=_counts(classified.ltir_accident_counts),
            trir_accident_counts=_counts(classified.trir_accident_counts),
            ltir=_rates(metrics.rates(classified.ltir_accident_counts, hours, s.rate_constant)),
            trir=_rates(metrics.rates(classified.trir_accident_counts, hours, s.rate_constant)),
            severity_rate=_rates(metrics.severity_rates(lost_days, hours, s.severity_constant)),
        )

    async def get_summaries(self, start_year: Any, end_year: Any) -> List[LaggingSummary]:
        start, end = validate_year(start_year), validate_year(end_year)
        if start > end:
            raise InvalidParameter(f"startYear {start} is after endYear {end}")
        if end - start + 1 > self.settings.max_range_years:
            raise InvalidParameter(
                f"range {start}-{end} exceeds {self.settings.max_range_years} years"
            )
        return [await self.get_summary(year) for year in range(start, end + 1)]

    async def get_dashboard(self, year: Any) -> DashboardSummary:
        summary = await self.get_summary(year)
        return DashboardSummary(
            year=summary.year,
            accident_count=summary.accident_count.total,
            employee_accident_count=summary.accident_count.employee,
            contractor_accident_count=summary.accident_count.contractor,
            victim_count=summary.victim_count.total,
            employee_victim_count=summary.victim_count.employee,
            contractor_victim_count=summary.victim_count.contractor,
            direct_damage_amount=summary.property_damage.direct,
            indirect_damage_amount=summary.property_damage.indirect,
            ltir=summary.ltir.total,
            trir=summary.trir.total,
            severity_rate=summary.severity_rate.total,
            total_lost_days=summary.lost_days.total,
        )

    # ---------- Investigation status ----------

    async def get_investigation_status(self, accident_ids: Iterable[str]) -> Dict[str, bool]:
        """Map each accident id to whether it has a completed investigation."""
        if isinstance(accident_ids, (str, bytes)):
            raise InvalidParameter("accidentIds must be an array of strings")
        ids = list(accident_ids)
        if any(not isinstance(i, str) for i in ids):
            raise InvalidParameter("accidentIds must contain only strings")
        ids = sorted(set(ids))
        if not ids:
            return {}

        key = make_cache_key(INVESTIGATION_CACHE_NAME, {"accident_ids": ids})
        cached = self._cache_get(key)
        if cached is not None:
            return dict(cached)

        completed = self.settings.completed_investigation_statuses
        status = {accident_id: False for accident_id in ids}
        for record in await self.fetcher.fetch_investigations(ids):
            if record.status is not None and record.status.strip().lower() in completed:
                status[record.accident_id] = True
        self._cache_set(key, status, self.settings.investigation_cache_ttl)
        return dict(status)

    # ---------- Cache control ----------

    def clear_cache(self) -> None:
        try:
            self.cache.clear()
        except Exception:
            logger.warning("Cache clear failed", exc_info=True)
            return
        logger.info("Lagging cache cleared")

    def cache_stats(self) -> Dict[str, Any]:
        return self.cache.stats()
