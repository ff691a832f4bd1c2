from datetime import date, datetime
from typing import Dict, List

import pandas as pd
import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from laggingapi.app.services.data_cache import ResultCache
from laggingapi.app.services.lagging import LaggingSummaryService
from laggingapi.app.services.settings import LaggingSettings
from laggingapi.app.services.source_data import SourceDataFetcher

FIXED_TODAY = date(2026, 1, 15)

_SCHEMA = [
    """
    CREATE TABLE occurrence_report (
        accident_id VARCHAR(50) PRIMARY KEY,
        global_accident_no VARCHAR(50),
        acci_time DATETIME,
        site_name VARCHAR(100),
        accident_type_level1 VARCHAR(20),
        is_contractor BOOLEAN
    )
    """,
    """
    CREATE TABLE victims (
        victim_id INTEGER PRIMARY KEY,
        accident_id VARCHAR(50) NOT NULL,
        name VARCHAR(100),
        age INTEGER,
        belong VARCHAR(100),
        duty VARCHAR(100),
        injury_type VARCHAR(100),
        ppe_worn VARCHAR(100),
        first_aid TEXT
    )
    """,
    """
    CREATE TABLE investigation_victims (
        victim_id INTEGER PRIMARY KEY,
        accident_id VARCHAR(50) NOT NULL,
        name VARCHAR(50),
        injury_type VARCHAR(100),
        absence_start_date VARCHAR(20),
        return_expected_date VARCHAR(20)
    )
    """,
    """
    CREATE TABLE property_damage (
        damage_id INTEGER PRIMARY KEY,
        accident_id VARCHAR(50) NOT NULL,
        damage_type VARCHAR(255),
        estimated_cost INTEGER
    )
    """,
    """
    CREATE TABLE annual_working_hours (
        id INTEGER PRIMARY KEY,
        company_id VARCHAR(128) NOT NULL,
        site_id VARCHAR(128),
        year INTEGER NOT NULL,
        employee_hours INTEGER NOT NULL DEFAULT 0,
        partner_on_hours INTEGER NOT NULL DEFAULT 0,
        partner_off_hours INTEGER NOT NULL DEFAULT 0,
        total_hours INTEGER NOT NULL DEFAULT 0,
        is_closed BOOLEAN NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE investigation_report (
        accident_id VARCHAR(50) PRIMARY KEY,
        investigation_status VARCHAR(50)
    )
    """,
]

# Year 2025 example: one human accident with a serious employee victim and one
# property accident (contractor) with 1,000,000 of direct damage. The absence dates
# live on the investigation victim, as in the upstream store.
EXAMPLE_ROWS: Dict[str, List[dict]] = {
    "occurrence_report": [
        {"accident_id": "A", "global_accident_no": "HHH-AA-2025-001", "acci_time": datetime(2025, 3, 10, 9, 30),
         "site_name": "Plant A", "accident_type_level1": "human", "is_contractor": False},
        {"accident_id": "B", "global_accident_no": "HHH-BB-2025-002", "acci_time": datetime(2025, 7, 2, 14, 0),
         "site_name": "Plant B", "accident_type_level1": "property", "is_contractor": True},
    ],
    "victims": [
        {"victim_id": 1, "accident_id": "A", "name": "Kim", "belong": "Plant A", "injury_type": "serious"},
    ],
    "investigation_victims": [
        {"victim_id": 1, "accident_id": "A", "injury_type": "serious",
         "absence_start_date": "2025-03-10", "return_expected_date": "2025-03-20"},
    ],
    "property_damage": [
        {"damage_id": 1, "accident_id": "B", "damage_type": "equipment", "estimated_cost": 1_000_000},
    ],
    "annual_working_hours": [
        {"id": 1, "company_id": "HHH", "site_id": None, "year": 2025, "employee_hours": 400_000,
         "partner_on_hours": 60_000, "partner_off_hours": 40_000, "total_hours": 500_000, "is_closed": True},
    ],
    "investigation_report": [
        {"accident_id": "A", "investigation_status": "completed"},
        {"accident_id": "B", "investigation_status": "draft"},
    ],
}


def seed(engine, table: str, rows: List[dict]) -> None:
    if rows:
        pd.DataFrame(rows).to_sql(table, engine, if_exists="append", index=False)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    with eng.begin() as conn:
        for ddl in _SCHEMA:
            conn.execute(text(ddl))
    yield eng
    eng.dispose()


@pytest.fixture
def example_engine(engine):
    for table, rows in EXAMPLE_ROWS.items():
        seed(engine, table, rows)
    return engine


@pytest.fixture
def settings() -> LaggingSettings:
    return LaggingSettings(database_url="sqlite://")


@pytest.fixture
def fetcher(example_engine) -> SourceDataFetcher:
    return SourceDataFetcher(example_engine, timeout=5.0)


@pytest.fixture
def service(fetcher, settings) -> LaggingSummaryService:
    return LaggingSummaryService(fetcher, ResultCache(default_ttl=300), settings, today=lambda: FIXED_TODAY)
