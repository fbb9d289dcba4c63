"""
Aggregate statistics over the final export record set.
Shared by the JSON and text-report renderers.
"""

from typing import Dict, List

import pandas as pd

from trekhub.booking_export.enrichment import NONE_REPORTED, round_half_up
from trekhub.booking_export.schema import (
    ExportRecord,
    ExportSummary,
    HealthConcerns,
    LogisticsCounts,
)

# summary field -> record column grouped and counted
BREAKDOWNS = {
    "status_breakdown": "status",
    "region_breakdown": "trek_region",
    "experience_breakdown": "experience_level",
    "risk_assessment_breakdown": "risk_assessment",
    "season_breakdown": "season_type",
    "group_size_breakdown": "group_size",
}

_COLUMNS = [
    "total_amount",
    "participants",
    "medical_conditions",
    "current_medications",
    "recent_illnesses",
    "needs_transportation",
    "gear_rental",
    "porter_services",
    *BREAKDOWNS.values(),
]


def records_frame(records: List[ExportRecord]) -> pd.DataFrame:
    """One row per record, summary columns only. Empty input keeps the columns."""
    return pd.DataFrame(
        [r.model_dump(include=set(_COLUMNS)) for r in records],
        columns=_COLUMNS,
    )


def _breakdown(series: pd.Series) -> Dict[str, int]:
    return {str(k): int(v) for k, v in series.value_counts(sort=False).items()}


def _count(mask: pd.Series) -> int:
    return int(mask.sum())


def average_group_size(total_participants: int, total_bookings: int) -> float:
    """Participants per booking to one decimal; 0 for an empty export."""
    if not total_bookings:
        return 0.0
    return round_half_up(total_participants / total_bookings * 10) / 10


def compute_summary(records: List[ExportRecord]) -> ExportSummary:
    df = records_frame(records)
    total = len(df)
    participants = int(df["participants"].sum()) if total else 0

    return ExportSummary(
        total_bookings=total,
        total_revenue=float(df["total_amount"].sum()) if total else 0.0,
        total_participants=participants,
        average_group_size=average_group_size(participants, total),
        **{field: _breakdown(df[column]) for field, column in BREAKDOWNS.items()},
        health_concerns=HealthConcerns(
            with_medical_conditions=_count(df["medical_conditions"] != NONE_REPORTED),
            with_medications=_count(df["current_medications"] != NONE_REPORTED),
            with_recent_illness=_count(df["recent_illnesses"] != NONE_REPORTED),
            high_risk=_count(df["risk_assessment"] == "High"),
        ),
        logistics=LogisticsCounts(
            need_transportation=_count(df["needs_transportation"] == "Yes"),
            need_gear_rental=_count(df["gear_rental"] == "Yes"),
            need_porter_services=_count(df["porter_services"] == "Yes"),
        ),
    )
