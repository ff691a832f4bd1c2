import math
from datetime import date, datetime

import pytest

from laggingapi.app.services.classifier import ClassifiedVictim
from laggingapi.app.services.metrics import (
    days_between,
    rate,
    rates,
    severity,
    severity_rates,
    total_labor_hours,
    total_lost_days,
    victim_lost_days,
)
from laggingapi.app.services.records import (
    AccidentRecord,
    InvestigationVictimRecord,
    LaborHoursRecord,
    Severity,
    Split,
    VictimRecord,
)

TODAY = date(2025, 6, 30)


def _item(severity: Severity, occurred_at=datetime(2025, 6, 1), start=None, end=None, contractor=False):
    accident = AccidentRecord("A", occurred_at=occurred_at, is_contractor=contractor)
    victim = VictimRecord(1, "A", severity.value, absence_start=start, expected_return=end)
    return ClassifiedVictim(victim, accident, severity, contractor)


@pytest.mark.parametrize("count", [0, 1, 7, 1_000_000])
def test_rate_is_zero_for_zero_hours(count) -> None:
    assert rate(count, 0) == 0


@pytest.mark.parametrize("days", [0, 1, 7_500, 123_456])
def test_severity_is_zero_for_zero_hours(days) -> None:
    assert severity(days, 0) == 0


def test_rate_and_severity_formulas() -> None:
    assert rate(1, 400_000) == pytest.approx(0.5)
    assert rate(3, 1_000_000, constant=1_000_000) == pytest.approx(3.0)
    assert severity(10, 500_000) == pytest.approx(0.02)


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), None, "x", -100])
def test_non_finite_or_negative_hours_yield_zero(bad) -> None:
    assert rate(5, bad) == 0
    assert severity(5, bad) == 0


def test_results_are_always_finite() -> None:
    assert math.isfinite(rate(float("inf"), 10))
    assert math.isfinite(severity(float("nan"), 10))


def test_split_rates() -> None:
    result = rates(Split(1, 1, 0), Split(500_000, 400_000, 100_000))

    assert result.total == pytest.approx(0.4)
    assert result.employee == pytest.approx(0.5)
    assert result.contractor == 0

    sev = severity_rates(Split(10, 10, 0), Split(0, 0, 0))
    assert sev == Split(0.0, 0.0, 0.0)


def test_days_between_rounds_up_and_clamps() -> None:
    assert days_between(date(2025, 3, 10), date(2025, 3, 20)) == 10
    assert days_between(datetime(2025, 3, 10, 8), datetime(2025, 3, 11, 9)) == 2
    assert days_between(date(2025, 3, 20), date(2025, 3, 10)) == 0


def test_death_uses_fixed_lost_days() -> None:
    days = victim_lost_days(_item(Severity.DEATH), TODAY, fatality_days=7_500, fallback_cap=180)

    assert days == 7_500


def test_lost_days_from_absence_dates() -> None:
    item = _item(Severity.SERIOUS, start=date(2025, 6, 2), end=date(2025, 7, 2))

    assert victim_lost_days(item, TODAY, fatality_days=7_500, fallback_cap=180) == 30


def test_investigation_dates_take_precedence() -> None:
    item = _item(Severity.SERIOUS, start=date(2025, 6, 2), end=date(2025, 7, 2))
    investigation = InvestigationVictimRecord("A", 1, absence_start=datetime(2025, 6, 5), expected_return=datetime(2025, 6, 15))

    days = victim_lost_days(item, TODAY, fatality_days=7_500, fallback_cap=180, investigation=investigation)

    assert days == 10


def test_investigation_dates_replace_the_running_estimate() -> None:
    # the report has no dates; without the investigation this would be today - accident date
    item = _item(Severity.MINOR, occurred_at=datetime(2025, 1, 1))
    investigation = InvestigationVictimRecord("A", 1, absence_start=date(2025, 1, 2), expected_return=date(2025, 1, 9))

    assert victim_lost_days(item, TODAY, fatality_days=7_500, fallback_cap=180) == 180
    assert victim_lost_days(item, TODAY, fatality_days=7_500, fallback_cap=180, investigation=investigation) == 7


def test_missing_investigation_date_falls_back_per_field() -> None:
    item = _item(Severity.MINOR, start=date(2025, 6, 1), end=date(2025, 6, 21))
    investigation = InvestigationVictimRecord("A", 1, absence_start=None, expected_return=date(2025, 6, 11))

    assert victim_lost_days(item, TODAY, fatality_days=7_500, fallback_cap=180, investigation=investigation) == 10


def test_lost_days_fallback_uses_accident_date() -> None:
    item = _item(Severity.MINOR, occurred_at=datetime(2025, 6, 1))

    assert victim_lost_days(item, TODAY, fatality_days=7_500, fallback_cap=180) == 29


def test_lost_days_fallback_is_capped() -> None:
    item = _item(Severity.MINOR, occurred_at=datetime(2024, 1, 1), start=date(2024, 1, 1))

    assert victim_lost_days(item, TODAY, fatality_days=7_500, fallback_cap=180) == 180
    assert victim_lost_days(item, TODAY, fatality_days=7_500, fallback_cap=None) == 546


def test_lost_days_without_any_date_is_zero() -> None:
    item = _item(Severity.MINOR, occurred_at=None)

    assert victim_lost_days(item, TODAY, fatality_days=7_500, fallback_cap=180) == 0


def test_total_lost_days_splits_by_victim_relation() -> None:
    victims = [
        _item(Severity.DEATH, contractor=True),
        _item(Severity.SERIOUS, start=date(2025, 6, 1), end=date(2025, 6, 11)),
    ]

    result = total_lost_days(victims, TODAY, fatality_days=7_500, fallback_cap=180)

    assert result == Split(total=7_510, employee=10, contractor=7_500)


def test_total_labor_hours_sums_rows_and_derives_missing_totals() -> None:
    records = [
        LaborHoursRecord("HHH", 2025, employee_hours=400_000, contractor_on_site_hours=60_000,
                         contractor_off_site_hours=40_000, total_hours=500_000),
        LaborHoursRecord("HHH", 2025, site_id="AA", employee_hours=1_000, contractor_on_site_hours=500),
    ]

    hours = total_labor_hours(records)

    assert hours == Split(total=501_500, employee=401_000, contractor=100_500)


def test_total_lost_days_matches_investigations_by_accident_and_victim() -> None:
    victims = [_item(Severity.MINOR, occurred_at=datetime(2025, 6, 1))]
    dates = {
        ("A", 1): InvestigationVictimRecord("A", 1, absence_start=date(2025, 6, 1), expected_return=date(2025, 6, 4)),
        ("B", 1): InvestigationVictimRecord("B", 1, absence_start=date(2025, 1, 1), expected_return=date(2025, 6, 1)),
    }

    result = total_lost_days(victims, TODAY, fatality_days=7_500, fallback_cap=180, investigation_dates=dates)

    assert result == Split(total=3, employee=3, contractor=0)
