"""
Cohort filters applied after enrichment (guide-facing subsets of an export).
"""

from typing import Callable, Dict, List, Union

from trekhub.booking_export.enrichment import NONE_REPORTED
from trekhub.booking_export.schema import CohortFilter, ExportRecord

Predicate = Callable[[ExportRecord], bool]


def _has_medical_concern(r: ExportRecord) -> bool:
    return any(
        value != NONE_REPORTED
        for value in (r.medical_conditions, r.current_medications, r.recent_illnesses)
    )


COHORT_PREDICATES: Dict[CohortFilter, Predicate] = {
    CohortFilter.HIGH_RISK: lambda r: r.risk_assessment == "High",
    CohortFilter.MEDICAL_CONCERNS: _has_medical_concern,
    CohortFilter.FIRST_TIME: lambda r: r.experience_level in ("Beginner", "Not Specified"),
    CohortFilter.EXPERIENCED: lambda r: r.experience_level in ("Advanced", "Intermediate"),
}


def apply_cohort_filter(
    records: List[ExportRecord],
    cohort: Union[CohortFilter, str] = CohortFilter.ALL,
) -> List[ExportRecord]:
    """Keep the records in `cohort`, preserving order. ALL returns a copy of the list."""
    predicate = COHORT_PREDICATES.get(CohortFilter(cohort))
    if predicate is None:
        return list(records)
    return [r for r in records if predicate(r)]
