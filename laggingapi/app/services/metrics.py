"""Pure arithmetic for lost days and the derived injury rates."""

from __future__ import annotations

import logging
import math
from datetime import date, datetime
from typing import Iterable, Mapping, Optional, Sequence, Tuple

from .classifier import ClassifiedVictim
from .records import DateLike, InvestigationVictimRecord, LaborHoursRecord, Severity, Split
from .settings import DEFAULT_RATE_CONSTANT, DEFAULT_SEVERITY_CONSTANT

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86_400


def _finite(value) -> float:
    try:
        x = float(value)
    except (TypeError, ValueError):
        return 0.0
    return x if math.isfinite(x) else 0.0


def rate(count: float, hours: float, constant: float = DEFAULT_RATE_CONSTANT) -> float:
    """Accidents per ``constant`` labor hours. Zero hours yields 0, never NaN or an error."""
    count, hours = _finite(count), _finite(hours)
    if hours <= 0:
        return 0.0
    return _finite(count / hours * constant)


def severity(lost_days: float, hours: float, constant: float = DEFAULT_SEVERITY_CONSTANT) -> float:
    """Lost days per ``constant`` labor hours. Zero hours yields 0."""
    lost_days, hours = _finite(lost_days), _finite(hours)
    if hours <= 0:
        return 0.0
    return _finite(lost_days / hours * constant)


def rates(counts: Split, hours: Split, constant: float = DEFAULT_RATE_CONSTANT) -> Split:
    return Split(
        total=rate(counts.total, hours.total, constant),
        employee=rate(counts.employee, hours.employee, constant),
        contractor=rate(counts.contractor, hours.contractor, constant),
    )


def severity_rates(lost_days: Split, hours: Split, constant: float = DEFAULT_SEVERITY_CONSTANT) -> Split:
    return Split(
        total=severity(lost_days.total, hours.total, constant),
        employee=severity(lost_days.employee, hours.employee, constant),
        contractor=severity(lost_days.contractor, hours.contractor, constant),
    )


def _as_datetime(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    return datetime(value.year, value.month, value.day)


def days_between(start: DateLike, end: DateLike) -> int:
    """Whole days from start to end, rounded up. Negative spans count as 0."""
    seconds = (_as_datetime(end) - _as_datetime(start)).total_seconds()
    if seconds <= 0:
        return 0
    return math.ceil(seconds / SECONDS_PER_DAY)


def victim_lost_days(
    item: ClassifiedVictim,
    today: date,
    *,
    fatality_days: int,
    fallback_cap: Optional[int],
    investigation: Optional[InvestigationVictimRecord] = None,
) -> int:
    """Lost days for one victim.

    Dates confirmed by the investigation take precedence over the ones on the
    victim record, each date independently.
    """
    if item.severity == Severity.DEATH:
        return fatality_days

    victim = item.victim
    start, end = victim.absence_start, victim.expected_return
    if investigation is not None:
        start = investigation.absence_start or start
        end = investigation.expected_return or end
    if start is not None and end is not None:
        if _as_datetime(end) < _as_datetime(start):
            logger.warning(
                "Victim %s: expected return precedes absence start; counting 0 lost days",
                victim.victim_id,
            )
        return days_between(start, end)

    # Running estimate while the absence dates are still unknown
    occurred_at = item.accident.occurred_at
    if occurred_at is None:
        return 0
    days = days_between(occurred_at, today)
    if fallback_cap is not None:
        days = min(days, fallback_cap)
    return days


def total_lost_days(
    victims: Iterable[ClassifiedVictim],
    today: date,
    *,
    fatality_days: int,
    fallback_cap: Optional[int],
    investigation_dates: Optional[Mapping[Tuple[str, int], InvestigationVictimRecord]] = None,
) -> Split:
    investigation_dates = investigation_dates or {}
    employee = contractor = 0
    for item in victims:
        days = victim_lost_days(
            item,
            today,
            fatality_days=fatality_days,
            fallback_cap=fallback_cap,
            investigation=investigation_dates.get((item.victim.accident_id, item.victim.victim_id)),
        )
        if item.is_contractor:
            contractor += days
        else:
            employee += days
    return Split.of(employee, contractor)


def total_labor_hours(records: Sequence[LaborHoursRecord]) -> Split:
    return Split(
        total=sum(_finite(r.effective_total_hours) for r in records),
        employee=sum(_finite(r.employee_hours) for r in records),
        contractor=sum(_finite(r.contractor_hours) for r in records),
    )
