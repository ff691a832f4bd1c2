"""
Taxonomy rules: which accidents and victims count toward each indicator family.

Families are decided per accident: an accident is lost-time countable when any of
its victims has a lost-time severity, and recordable when any victim has a
recordable severity. First-aid-only accidents count toward neither, and neither do
victims whose injury label is blank or unrecognized. Victims of property-only
accidents are left out of every victim statistic.
"""
from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence

from .accident_code import ParsedCode, UNCLASSIFIED_SITE, parse_accident_code
from .records import (
    AccidentCategory,
    AccidentRecord,
    PropertyDamageRecord,
    Severity,
    Split,
    VictimRecord,
)

logger = logging.getLogger(__name__)

LOST_TIME_SEVERITIES: FrozenSet[Severity] = frozenset(
    {Severity.DEATH, Severity.SERIOUS, Severity.MINOR, Severity.OTHER}
)
RECORDABLE_SEVERITIES: FrozenSet[Severity] = LOST_TIME_SEVERITIES | {Severity.HOSPITAL_TREATMENT}
DAMAGE_CATEGORIES: FrozenSet[AccidentCategory] = frozenset(
    {AccidentCategory.PROPERTY, AccidentCategory.COMBINED}
)
# Victims, families and lost days come only from accidents that can injure someone
VICTIM_CATEGORIES: FrozenSet[AccidentCategory] = frozenset(
    {AccidentCategory.HUMAN, AccidentCategory.COMBINED}
)

UNSPECIFIED_DAMAGE_TYPE = "unspecified"

_CATEGORY_ALIASES: Dict[str, AccidentCategory] = {
    "human": AccidentCategory.HUMAN,
    "인적": AccidentCategory.HUMAN,
    "property": AccidentCategory.PROPERTY,
    "material": AccidentCategory.PROPERTY,
    "물적": AccidentCategory.PROPERTY,
    "combined": AccidentCategory.COMBINED,
    "complex": AccidentCategory.COMBINED,
    "복합": AccidentCategory.COMBINED,
}

_SEVERITY_ALIASES: Dict[str, Severity] = {
    "death": Severity.DEATH,
    "fatality": Severity.DEATH,
    "serious": Severity.SERIOUS,
    "minor": Severity.MINOR,
    "other": Severity.OTHER,
    "hospital-treatment": Severity.HOSPITAL_TREATMENT,
    "hospital": Severity.HOSPITAL_TREATMENT,
    "first-aid": Severity.FIRST_AID,
}

# Stored Korean labels sometimes carry extra text ("중상(골절)"), so they match by substring.
# Order matters: the most severe label wins.
_SEVERITY_KEYWORDS = (
    ("사망", Severity.DEATH),
    ("중상", Severity.SERIOUS),
    ("경상", Severity.MINOR),
    ("병원치료", Severity.HOSPITAL_TREATMENT),
    ("응급처치", Severity.FIRST_AID),
    ("기타", Severity.OTHER),
)


def _label_key(label: str) -> str:
    return label.strip().lower().replace("_", "-").replace(" ", "-")


def normalize_category(label: Optional[str]) -> AccidentCategory:
    if isinstance(label, AccidentCategory):
        return label
    if label is None or not str(label).strip():
        logger.warning("Accident without category; treating it as human")
        return AccidentCategory.HUMAN
    category = _CATEGORY_ALIASES.get(_label_key(str(label)))
    if category is None:
        logger.warning("Unrecognized accident category %r; treating it as human", label)
        return AccidentCategory.HUMAN
    return category


def normalize_severity(label: Optional[str]) -> Severity:
    """Map a stored injury label to a Severity. Blank and unknown labels map to UNKNOWN."""
    if isinstance(label, Severity):
        return label
    if label is None or not str(label).strip():
        logger.warning("Victim without injury type; counting it as unknown")
        return Severity.UNKNOWN
    text = str(label)
    severity = _SEVERITY_ALIASES.get(_label_key(text))
    if severity is not None:
        return severity
    for keyword, severity in _SEVERITY_KEYWORDS:
        if keyword in text:
            return severity
    logger.warning("Unrecognized injury type %r; counting it as unknown", label)
    return Severity.UNKNOWN


@dataclass(frozen=True)
class ClassifiedVictim:
    victim: VictimRecord
    accident: AccidentRecord
    severity: Severity
    is_contractor: bool


@dataclass(frozen=True)
class PropertyDamageTotals:
    direct: float = 0.0
    indirect: float = 0.0
    total: float = 0.0
    by_type: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class ClassifiedYear:
    accident_count: Split
    site_accident_counts: Dict[str, int]
    victim_count: Split
    injury_type_counts: Dict[str, int]
    ltir_accident_counts: Split
    trir_accident_counts: Split
    property_damage: PropertyDamageTotals
    victims: List[ClassifiedVictim]


def _split_ids(ids: Iterable[str], contractor_by_id: Dict[str, bool]) -> Split:
    employee = contractor = 0
    for accident_id in ids:
        if contractor_by_id[accident_id]:
            contractor += 1
        else:
            employee += 1
    return Split.of(employee, contractor)


def count_sites(accidents: Sequence[AccidentRecord], year: Optional[int] = None) -> Dict[str, int]:
    """Count accidents per site code; malformed codes fall into the unclassified bucket."""
    counts: Counter = Counter()
    for accident in accidents:
        parsed = parse_accident_code(accident.code)
        if isinstance(parsed, ParsedCode):
            counts[parsed.site] += 1
            occurred_year = accident.occurred_at.year if accident.occurred_at else None
            if year is not None and occurred_year is not None and parsed.year != occurred_year:
                logger.warning(
                    "Accident %s: code year %s differs from occurrence year %s",
                    accident.accident_id, parsed.year, occurred_year,
                )
        else:
            logger.warning("Accident %s: %s", accident.accident_id, parsed.to_error())
            counts[UNCLASSIFIED_SITE] += 1
    return dict(sorted(counts.items()))


def total_property_damage(
    accidents: Sequence[AccidentRecord],
    damages: Sequence[PropertyDamageRecord],
    indirect_multiplier: float,
) -> PropertyDamageTotals:
    eligible = {
        a.accident_id for a in accidents if normalize_category(a.category) in DAMAGE_CATEGORIES
    }
    by_type: Dict[str, float] = defaultdict(float)
    direct = 0.0
    for damage in damages:
        if damage.accident_id not in eligible:
            continue
        cost = damage.estimated_cost or 0.0
        direct += cost
        by_type[damage.damage_type or UNSPECIFIED_DAMAGE_TYPE] += cost
    indirect = direct * indirect_multiplier
    return PropertyDamageTotals(
        direct=direct,
        indirect=indirect,
        total=direct + indirect,
        by_type=dict(sorted(by_type.items())),
    )


def classify_year(
    accidents: Sequence[AccidentRecord],
    victims: Sequence[VictimRecord],
    damages: Sequence[PropertyDamageRecord],
    *,
    indirect_multiplier: float,
    year: Optional[int] = None,
) -> ClassifiedYear:
    """Partition one year's records into the counts every indicator is built from."""
    by_id = {a.accident_id: a for a in accidents}
    contractor_by_id = {a.accident_id: a.is_contractor for a in accidents}
    injury_ids = {a.accident_id for a in accidents if normalize_category(a.category) in VICTIM_CATEGORIES}

    classified: List[ClassifiedVictim] = []
    lost_time_ids = set()
    recordable_ids = set()
    injury_counts = {s.value: 0 for s in Severity}
    victim_employee = victim_contractor = 0

    for victim in victims:
        accident = by_id.get(victim.accident_id)
        if accident is None:
            logger.debug("Victim %s references unknown accident %s", victim.victim_id, victim.accident_id)
            continue
        if accident.accident_id not in injury_ids:
            logger.debug("Victim %s belongs to property-only accident %s", victim.victim_id, accident.accident_id)
            continue
        severity = normalize_severity(victim.severity)
        is_contractor = accident.is_contractor if victim.is_contractor is None else victim.is_contractor
        classified.append(ClassifiedVictim(victim, accident, severity, is_contractor))

        injury_counts[severity.value] += 1
        if is_contractor:
            victim_contractor += 1
        else:
            victim_employee += 1
        if severity in LOST_TIME_SEVERITIES:
            lost_time_ids.add(accident.accident_id)
        if severity in RECORDABLE_SEVERITIES:
            recordable_ids.add(accident.accident_id)

    return ClassifiedYear(
        accident_count=_split_ids(by_id, contractor_by_id),
        site_accident_counts=count_sites(accidents, year),
        victim_count=Split.of(victim_employee, victim_contractor),
        injury_type_counts=injury_counts,
        ltir_accident_counts=_split_ids(lost_time_ids, contractor_by_id),
        trir_accident_counts=_split_ids(recordable_ids, contractor_by_id),
        property_damage=total_property_damage(accidents, damages, indirect_multiplier),
        victims=classified,
    )
