from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---------- Breakdowns ----------
class CountBreakdown(_Frozen):
    total: int = 0
    employee: int = 0
    contractor: int = 0


class HoursBreakdown(_Frozen):
    total: float = 0.0
    employee: float = 0.0
    contractor: float = Field(0.0, description="On-site plus off-site contractor hours")


class RateBreakdown(_Frozen):
    total: float = 0.0
    employee: float = 0.0
    contractor: float = 0.0


class PropertyDamageSummary(_Frozen):
    direct: float = 0.0
    indirect: float = Field(0.0, description="Direct damage times the configured indirect multiplier")
    total: float = 0.0
    by_type: Dict[str, float] = Field(default_factory=dict, description="Direct damage per damage type")


# ---------- Lagging summary ----------
class LaggingSummary(_Frozen):
    year: int
    accident_count: CountBreakdown = Field(
        ...,
        description="All accidents of the year; employee/contractor split uses the accident-level flag",
    )
    site_accident_counts: Dict[str, int] = Field(
        default_factory=dict,
        description="Accidents per site code; malformed accident codes are counted under 'unclassified'",
    )
    victim_count: CountBreakdown = Field(
        ...,
        description="Victims of human and combined accidents, split by their own employment flag, "
        "or the accident's flag when the victim has none",
    )
    injury_type_counts: Dict[str, int] = Field(
        default_factory=dict,
        description="Victims per severity; blank or unrecognized labels are counted under 'unknown'",
    )
    property_damage: PropertyDamageSummary
    working_hours: HoursBreakdown
    lost_days: CountBreakdown = Field(
        ...,
        description="Lost days split like victim_count; investigation dates win over report dates, "
        "and open absences use a capped running estimate",
    )
    ltir_accident_counts: CountBreakdown = Field(
        ...,
        description="Accidents with any lost-time victim; split by the accident-level flag, so a mixed "
        "employee/contractor accident is attributed entirely to one side",
    )
    trir_accident_counts: CountBreakdown = Field(
        ..., description="Accidents with any recordable victim; split by the accident-level flag"
    )
    ltir: RateBreakdown
    trir: RateBreakdown
    severity_rate: RateBreakdown


class DashboardSummary(_Frozen):
    year: int
    accident_count: int
    employee_accident_count: int
    contractor_accident_count: int
    victim_count: int
    employee_victim_count: int
    contractor_victim_count: int
    direct_damage_amount: float
    indirect_damage_amount: float
    ltir: float
    trir: float
    severity_rate: float
    total_lost_days: int


# ---------- Misc responses ----------
class PlotlyFigureResponse(BaseModel):
    figure: Dict[str, Any]


class MessageResponse(BaseModel):
    message: str


class CacheStatsResponse(BaseModel):
    hits: int
    misses: int
    hit_rate: float
    cached_items: int


class InvestigationBatchRequest(BaseModel):
    accident_ids: List[str] = Field(..., alias="accidentIds")
