"""
Read-only access to the accident, victim, property-damage, labor-hour and investigation tables.

Queries go through SQLAlchemy ``text()`` with bound parameters and are read with
``pandas.read_sql``; every frame is converted into frozen record objects before it
leaves this module. Year scoping uses the accident timestamp: an accident belongs to
year Y when ``acci_time`` falls in [Y-01-01, Y+1-01-01).
"""
from __future__ import annotations

import asyncio
import logging
from datetime import MAXYEAR, MINYEAR, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd
from sqlalchemy import bindparam, create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.types import DateTime

from .errors import InvalidParameter, SourceTimeout, SourceUnavailable
from .json_utils import to_native_value
from .records import (
    AccidentRecord,
    InvestigationRecord,
    InvestigationVictimRecord,
    LaborHoursRecord,
    PropertyDamageRecord,
    VictimRecord,
)

logger = logging.getLogger(__name__)

# Large IN lists are split to stay under driver parameter limits
ID_CHUNK_SIZE = 500

_ACCIDENTS_SQL = text(
    """
    SELECT accident_id, global_accident_no, acci_time, site_name,
           accident_type_level1, is_contractor
    FROM occurrence_report
    WHERE acci_time >= :start AND acci_time < :end
    ORDER BY accident_id
    """
).bindparams(bindparam("start", type_=DateTime()), bindparam("end", type_=DateTime()))

_VICTIMS_SQL = text(
    """
    SELECT victim_id, accident_id, injury_type
    FROM victims
    WHERE accident_id IN :ids
    ORDER BY accident_id, victim_id
    """
).bindparams(bindparam("ids", expanding=True))

_INVESTIGATION_VICTIMS_SQL = text(
    """
    SELECT accident_id, victim_id, absence_start_date, return_expected_date
    FROM investigation_victims
    WHERE accident_id IN :ids
    ORDER BY accident_id, victim_id
    """
).bindparams(bindparam("ids", expanding=True))

_PROPERTY_DAMAGE_SQL = text(
    """
    SELECT damage_id, accident_id, damage_type, estimated_cost
    FROM property_damage
    WHERE accident_id IN :ids
    ORDER BY accident_id, damage_id
    """
).bindparams(bindparam("ids", expanding=True))

_LABOR_HOURS_SQL = text(
    """
    SELECT company_id, site_id, year, employee_hours, partner_on_hours,
           partner_off_hours, total_hours, is_closed
    FROM annual_working_hours
    WHERE year = :year
    ORDER BY company_id, site_id
    """
)

_INVESTIGATIONS_SQL = text(
    """
    SELECT accident_id, investigation_status
    FROM investigation_report
    WHERE accident_id IN :ids
    ORDER BY accident_id
    """
).bindparams(bindparam("ids", expanding=True))


def _coerce_datetime_columns(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    df = df.copy()
    for col in cols:
        if col in df.columns:
            df[col] = pd.to_datetime(df[col], errors="coerce")
    return df


def _rows(df: pd.DataFrame) -> List[Dict[str, Any]]:
    return [
        {key: to_native_value(value) for key, value in row.items()}
        for row in df.to_dict(orient="records")
    ]


def _as_bool(value: Any, default: Optional[bool] = False) -> Optional[bool]:
    if value is None:
        return default
    if isinstance(value, str):
        v = value.strip().lower()
        if v in ("true", "t", "1", "yes", "y"):
            return True
        if v in ("false", "f", "0", "no", "n"):
            return False
        return default
    return bool(value)


def _as_float(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _chunks(ids: Sequence[str], size: int = ID_CHUNK_SIZE) -> Iterable[List[str]]:
    for start in range(0, len(ids), size):
        yield list(ids[start:start + size])


def _unique_ids(accident_ids: Iterable[str]) -> List[str]:
    return sorted({str(i) for i in accident_ids if i is not None})


class SourceDataFetcher:
    """Stateless reader over the external record store."""

    def __init__(self, engine: Engine, timeout: float = 30.0):
        self.engine = engine
        self.timeout = timeout

    @classmethod
    def from_url(cls, database_url: str, timeout: float = 30.0) -> "SourceDataFetcher":
        return cls(create_engine(database_url, pool_pre_ping=True), timeout=timeout)

    # ---------- Query plumbing ----------

    def _read(self, source: str, statement, params: Dict[str, Any]) -> pd.DataFrame:
        try:
            with self.engine.connect() as conn:
                return pd.read_sql(statement, conn, params=params)
        except (SQLAlchemyError, pd.errors.DatabaseError) as e:
            logger.error("Failed to read %s: %s", source, e)
            raise SourceUnavailable(source, str(e)) from e

    async def _query(self, source: str, statement, params: Dict[str, Any]) -> pd.DataFrame:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._read, source, statement, params),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error("Timed out reading %s after %ss", source, self.timeout)
            raise SourceTimeout(source, self.timeout) from e

    async def _query_by_ids(self, source: str, statement, accident_ids: Iterable[str]) -> pd.DataFrame:
        ids = _unique_ids(accident_ids)
        if not ids:
            return pd.DataFrame()
        frames = [await self._query(source, statement, {"ids": chunk}) for chunk in _chunks(ids)]
        return pd.concat(frames, ignore_index=True) if len(frames) > 1 else frames[0]

    # ---------- Fetch operations ----------

    async def fetch_accidents(self, year: int) -> List[AccidentRecord]:
        if not MINYEAR <= year < MAXYEAR:
            raise InvalidParameter(f"year must be between {MINYEAR} and {MAXYEAR - 1}, got {year}")
        params = {"start": datetime(year, 1, 1), "end": datetime(year + 1, 1, 1)}
        df = await self._query("occurrence_report", _ACCIDENTS_SQL, params)
        df = _coerce_datetime_columns(df, ["acci_time"])
        return [
            AccidentRecord(
                accident_id=str(row["accident_id"]),
                code=row.get("global_accident_no"),
                occurred_at=row.get("acci_time"),
                site_name=row.get("site_name"),
                category=row.get("accident_type_level1"),
                is_contractor=bool(_as_bool(row.get("is_contractor"), False)),
            )
            for row in _rows(df)
        ]

    async def fetch_victims(self, accident_ids: Iterable[str]) -> List[VictimRecord]:
        """Occurrence-report victims. The table carries no employment flag or absence
        dates, so both are left unset and resolved from the accident and the
        investigation respectively."""
        df = await self._query_by_ids("victims", _VICTIMS_SQL, accident_ids)
        return [
            VictimRecord(
                victim_id=int(row["victim_id"]),
                accident_id=str(row["accident_id"]),
                severity=row.get("injury_type"),
            )
            for row in _rows(df)
        ]

    async def fetch_investigation_victims(self, accident_ids: Iterable[str]) -> List[InvestigationVictimRecord]:
        df = await self._query_by_ids("investigation_victims", _INVESTIGATION_VICTIMS_SQL, accident_ids)
        # stored as free-text dates; unparseable values become None
        df = _coerce_datetime_columns(df, ["absence_start_date", "return_expected_date"])
        return [
            InvestigationVictimRecord(
                accident_id=str(row["accident_id"]),
                victim_id=int(row["victim_id"]),
                absence_start=row.get("absence_start_date"),
                expected_return=row.get("return_expected_date"),
            )
            for row in _rows(df)
        ]

    async def fetch_property_damage(self, accident_ids: Iterable[str]) -> List[PropertyDamageRecord]:
        df = await self._query_by_ids("property_damage", _PROPERTY_DAMAGE_SQL, accident_ids)
        return [
            PropertyDamageRecord(
                damage_id=int(row["damage_id"]),
                accident_id=str(row["accident_id"]),
                damage_type=row.get("damage_type"),
                estimated_cost=_as_float(row.get("estimated_cost")),
            )
            for row in _rows(df)
        ]

    async def fetch_labor_hours(self, year: int) -> List[LaborHoursRecord]:
        df = await self._query("annual_working_hours", _LABOR_HOURS_SQL, {"year": year})
        return [
            LaborHoursRecord(
                company_id=str(row["company_id"]),
                year=int(row["year"]),
                site_id=None if row.get("site_id") is None else str(row["site_id"]),
                employee_hours=_as_float(row.get("employee_hours")),
                contractor_on_site_hours=_as_float(row.get("partner_on_hours")),
                contractor_off_site_hours=_as_float(row.get("partner_off_hours")),
                total_hours=_as_float(row.get("total_hours")),
                is_closed=bool(_as_bool(row.get("is_closed"), False)),
            )
            for row in _rows(df)
        ]

    async def fetch_investigations(self, accident_ids: Iterable[str]) -> List[InvestigationRecord]:
        df = await self._query_by_ids("investigation_report", _INVESTIGATIONS_SQL, accident_ids)
        return [
            InvestigationRecord(
                accident_id=str(row["accident_id"]),
                status=row.get("investigation_status"),
            )
            for row in _rows(df)
        ]
