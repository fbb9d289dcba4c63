"""
Booking classification: season, experience level, risk assessment, group size.
Rule tables are ordered; the first matching rule wins.
"""

from datetime import date, datetime
from typing import List, Optional, Tuple, Union

RISK_LEVELS = ["Low", "Medium", "High"]

# (first month, last month, season); anything else is Winter
SEASON_TABLE = [(3, 5, "Spring"), (6, 8, "Monsoon"), (9, 11, "Post-Monsoon")]

# (keywords, level), matched case-insensitively as substrings
EXPERIENCE_RULES: List[Tuple[Tuple[str, ...], str]] = [
    (("beginner", "first"), "Beginner"),
    (("intermediate", "some"), "Intermediate"),
    (("advanced", "expert"), "Advanced"),
]

NOT_SPECIFIED = "Not Specified"

# Free-text health answers that mean "nothing to declare"
NO_CONDITION_MARKERS = {"", "none", "none reported"}

# (max participants inclusive, label); larger groups are Large Group
GROUP_SIZE_TABLE = [(1, "Solo"), (4, "Small Group")]

ADULT_AGE_RANGE = (18, 60)


def season_for(value: Optional[Union[date, datetime]]) -> str:
    """Map a date to its trekking season; None means the date was unusable."""
    if value is None:
        return "Unknown"
    for first, last, season in SEASON_TABLE:
        if first <= value.month <= last:
            return season
    return "Winter"


def experience_level(experience: Optional[str]) -> str:
    """Classify free-text trekking experience. Unmatched text passes through."""
    if not experience or not experience.strip():
        return NOT_SPECIFIED
    text = experience.lower()
    for keywords, level in EXPERIENCE_RULES:
        if any(k in text for k in keywords):
            return level
    return experience


def has_medical_condition(medical_conditions: Optional[str]) -> bool:
    return (medical_conditions or "").strip().lower() not in NO_CONDITION_MARKERS


def age_out_of_range(age: int) -> bool:
    """Age 0 means unknown and is never a risk factor."""
    low, high = ADULT_AGE_RANGE
    return age > 0 and (age < low or age > high)


def _escalate(level: str) -> str:
    return RISK_LEVELS[min(RISK_LEVELS.index(level) + 1, len(RISK_LEVELS) - 1)]


def risk_assessment(medical_conditions: Optional[str], level: str, age: int) -> str:
    """
    Low -> Medium -> High. Medical conditions raise Low to Medium; an age
    outside 18-60 escalates one level; a beginner is at least Medium.
    Adding a factor never lowers the result.
    """
    risk = "Low"
    if has_medical_condition(medical_conditions):
        risk = "Medium"
    if age_out_of_range(age):
        risk = _escalate(risk)
    if level == "Beginner" and risk == "Low":
        risk = "Medium"
    return risk


def group_size(participants: int) -> str:
    for limit, label in GROUP_SIZE_TABLE:
        if participants <= limit:
            return label
    return "Large Group"
