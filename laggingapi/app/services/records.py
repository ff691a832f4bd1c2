"""Read-only snapshots of the records the engine consumes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union

DateLike = Union[date, datetime]


class AccidentCategory(str, Enum):
    HUMAN = "human"
    PROPERTY = "property"
    COMBINED = "combined"


class Severity(str, Enum):
    DEATH = "death"
    SERIOUS = "serious"
    MINOR = "minor"
    OTHER = "other"
    HOSPITAL_TREATMENT = "hospital-treatment"
    FIRST_AID = "first-aid"
    # blank or unrecognized label; counted but outside every indicator family
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class AccidentRecord:
    accident_id: str
    code: Optional[str] = None
    occurred_at: Optional[datetime] = None
    site_name: Optional[str] = None
    category: Optional[str] = None  # raw label, normalized by the classifier
    is_contractor: bool = False


@dataclass(frozen=True)
class VictimRecord:
    victim_id: int
    accident_id: str
    severity: Optional[str] = None  # raw label, normalized by the classifier
    absence_start: Optional[DateLike] = None
    expected_return: Optional[DateLike] = None
    is_contractor: Optional[bool] = None  # None means "inherit from the accident"


@dataclass(frozen=True)
class InvestigationVictimRecord:
    """Absence dates confirmed by the follow-up investigation for one victim."""

    accident_id: str
    victim_id: int
    absence_start: Optional[DateLike] = None
    expected_return: Optional[DateLike] = None


@dataclass(frozen=True)
class PropertyDamageRecord:
    damage_id: int
    accident_id: str
    damage_type: Optional[str] = None
    estimated_cost: float = 0.0


@dataclass(frozen=True)
class LaborHoursRecord:
    company_id: str
    year: int
    site_id: Optional[str] = None
    employee_hours: float = 0.0
    contractor_on_site_hours: float = 0.0
    contractor_off_site_hours: float = 0.0
    total_hours: float = 0.0
    is_closed: bool = False

    @property
    def contractor_hours(self) -> float:
        return self.contractor_on_site_hours + self.contractor_off_site_hours

    @property
    def effective_total_hours(self) -> float:
        # rows entered before the total column was auto-computed carry 0
        if self.total_hours and self.total_hours > 0:
            return self.total_hours
        return self.employee_hours + self.contractor_hours


@dataclass(frozen=True)
class InvestigationRecord:
    accident_id: str
    status: Optional[str] = None


@dataclass(frozen=True)
class Split:
    """A quantity broken out by employment relation."""

    total: float = 0
    employee: float = 0
    contractor: float = 0

    @classmethod
    def of(cls, employee: float, contractor: float) -> "Split":
        return cls(total=employee + contractor, employee=employee, contractor=contractor)
