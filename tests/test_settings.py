import pytest

from laggingapi.app.services.errors import InvalidParameter
from laggingapi.app.services.settings import LaggingSettings


def test_defaults_without_environment() -> None:
    settings = LaggingSettings.from_env({})

    assert settings == LaggingSettings()
    assert settings.rate_constant == 200_000
    assert settings.severity_constant == 1_000
    assert settings.indirect_damage_multiplier == 4
    assert settings.fatality_lost_days == 7_500
    assert settings.lost_day_fallback_cap == 180


def test_values_are_read_from_prefixed_variables() -> None:
    settings = LaggingSettings.from_env({
        "LAGGING_DATABASE_URL": "postgresql://db/safety",
        "LAGGING_RATE_CONSTANT": "1000000",
        "LAGGING_SUMMARY_CACHE_TTL": "30",
        "LAGGING_COMPLETED_INVESTIGATION_STATUSES": "Completed, closed ,",
        "LAGGING_LOG_LEVEL": "debug",
        "RATE_CONSTANT": "1",
    })

    assert settings.database_url == "postgresql://db/safety"
    assert settings.rate_constant == 1_000_000
    assert settings.summary_cache_ttl == 30
    assert settings.completed_investigation_statuses == frozenset({"completed", "closed"})
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("raw", ["0", "-5"])
def test_non_positive_fallback_cap_disables_it(raw) -> None:
    assert LaggingSettings.from_env({"LAGGING_LOST_DAY_FALLBACK_CAP": raw}).lost_day_fallback_cap is None


def test_blank_values_fall_back_to_defaults() -> None:
    assert LaggingSettings.from_env({"LAGGING_FETCH_TIMEOUT": "  "}).fetch_timeout == 30


def test_unparseable_value_is_rejected() -> None:
    with pytest.raises(InvalidParameter, match="LAGGING_MAX_RANGE_YEARS"):
        LaggingSettings.from_env({"LAGGING_MAX_RANGE_YEARS": "many"})


@pytest.mark.parametrize("name", ["LAGGING_RATE_CONSTANT", "LAGGING_SEVERITY_CONSTANT"])
@pytest.mark.parametrize("raw", ["0", "-200000", "nan", "inf"])
def test_rate_constants_must_be_positive(name, raw) -> None:
    with pytest.raises(InvalidParameter, match=name):
        LaggingSettings.from_env({name: raw})
