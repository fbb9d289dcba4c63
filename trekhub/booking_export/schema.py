"""
Pydantic models for the booking export.
Source entities mirror the database rows; ExportRecord is the flattened,
enriched row shared by every output format (camelCase on the wire).
"""

import math
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_TRUE_FLAGS = {"1", "true", "yes", "y", "on"}


def lenient_number(value: Any) -> Optional[float]:
    """Float for anything numeric-looking (SQLite keeps whatever was written), else None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def lenient_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_FLAGS
    number = lenient_number(value)
    return bool(value) if number is None else number != 0


class ExportFormat(str, Enum):
    CSV = "csv"
    JSON = "json"
    EXCEL = "excel"
    PDF = "pdf"


class CohortFilter(str, Enum):
    """Secondary, in-memory filter over enriched records."""
    ALL = "all"
    HIGH_RISK = "high_risk"
    MEDICAL_CONCERNS = "medical_concerns"
    FIRST_TIME = "first_time"
    EXPERIENCED = "experienced"


# ---- Query ----

class ExportFilters(BaseModel):
    """Database-level filters. None means "not filtered"."""
    status: Optional[str] = None  # exact match, "all" disables
    start_date: Optional[str] = None  # ISO date/datetime, inclusive
    end_date: Optional[str] = None  # ISO date/datetime, inclusive
    trek_slug: Optional[str] = None
    specific_user: Optional[str] = None  # customer email or user id


# ---- Source entities ----

class Trek(BaseModel):
    slug: str
    name: Optional[str] = None
    region: Optional[str] = None
    difficulty: Optional[str] = None
    duration: Optional[str] = None


class Slot(BaseModel):
    id: str
    trek_slug: Optional[str] = None
    date: Optional[str] = None
    capacity: int = 0
    booked: int = 0

    @field_validator("capacity", "booked", mode="before")
    @classmethod
    def _count(cls, value):
        number = lenient_number(value)
        return int(number) if number is not None else 0

    @property
    def available(self) -> int:
        return max(0, self.capacity - self.booked)


class UserProfile(BaseModel):
    user_id: str
    name: Optional[str] = None


class Participant(BaseModel):
    id: Optional[int] = None
    booking_id: str
    full_name: Optional[str] = None


class Booking(BaseModel):
    id: str
    user_id: Optional[str] = None
    trek_slug: Optional[str] = None
    slot_id: Optional[str] = None

    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_age: Optional[int] = None
    customer_dob: Optional[str] = None
    customer_gender: Optional[str] = None

    participants: Optional[int] = None
    base_amount: Optional[float] = None
    gst_amount: Optional[float] = None
    total_amount: Optional[float] = None
    status: Optional[str] = None  # pending_approval | confirmed | completed | cancelled
    payment_status: Optional[str] = None
    booking_date: Optional[str] = None

    medical_conditions: Optional[str] = None
    current_medications: Optional[str] = None
    recent_illnesses: Optional[str] = None
    trekking_experience: Optional[str] = None
    fitness_consent: bool = False

    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None

    residential_address: Optional[str] = None
    pickup_point: Optional[str] = None
    needs_transportation: bool = False
    trek_gear_rental: bool = False
    porter_services: bool = False
    special_requirements: Optional[str] = None

    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("customer_age", "participants", mode="before")
    @classmethod
    def _whole_number(cls, value):
        number = lenient_number(value)
        return int(number) if number is not None else None

    @field_validator("base_amount", "gst_amount", "total_amount", mode="before")
    @classmethod
    def _amount(cls, value):
        return lenient_number(value)

    @field_validator(
        "fitness_consent", "needs_transportation", "trek_gear_rental", "porter_services",
        mode="before",
    )
    @classmethod
    def _flag(cls, value):
        return lenient_flag(value)


class ExportSource(BaseModel):
    """Bookings (newest first) plus the lookups needed to enrich them."""
    bookings: List[Booking]
    treks: Dict[str, Trek] = Field(default_factory=dict)
    slots: Dict[str, Slot] = Field(default_factory=dict)
    profiles: Dict[str, UserProfile] = Field(default_factory=dict)
    participants: Dict[str, List[Participant]] = Field(default_factory=dict)


# ---- Export ----

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExportRecord(CamelModel):
    """One enriched booking row. Built per export, never persisted."""
    id: str
    booking_number: str
    booking_reference: str

    # Customer
    customer_name: str
    customer_email: str
    customer_phone: str
    customer_age: int
    customer_gender: str
    customer_date_of_birth: str

    # Trek
    trek_name: str
    trek_slug: str
    trek_region: str
    trek_difficulty: str
    trek_duration: str
    trek_date: str
    trek_start_location: str
    trek_end_location: str

    # Booking
    participants: int
    participant_names: str
    total_amount: Union[int, float]
    base_amount: Union[int, float]
    gst_amount: Union[int, float]
    amount_per_person: int
    status: str
    payment_status: str
    booking_date: str
    booking_time: str

    # Health & safety
    medical_conditions: str
    current_medications: str
    recent_illnesses: str
    trekking_experience: str
    fitness_level: str
    dietary_restrictions: str
    allergies: str

    # Emergency contact
    emergency_contact_name: str
    emergency_contact_phone: str
    emergency_contact_relation: str

    # Logistics
    residential_address: str
    pickup_location: str
    needs_transportation: str
    accommodation_preferences: str
    special_requirements: str
    gear_rental: str
    porter_services: str

    # Slot
    slot_date: str
    slot_capacity: int
    slot_booked: int
    slot_available: int
    slot_utilization: str

    # Guide
    guide_notes: str
    risk_assessment: str
    equipment_needed: str

    # Administrative
    created_by: str
    last_modified: str
    approved_by: str
    approval_date: str

    # Metadata
    season_type: str
    weather_conditions: str
    group_size: str
    experience_level: str


class HealthConcerns(CamelModel):
    with_medical_conditions: int = 0
    with_medications: int = 0
    with_recent_illness: int = 0
    high_risk: int = 0


class LogisticsCounts(CamelModel):
    need_transportation: int = 0
    need_gear_rental: int = 0
    need_porter_services: int = 0


class ExportSummary(CamelModel):
    """Aggregates over the final (post-cohort) record set."""
    total_bookings: int = 0
    total_revenue: float = 0.0
    total_participants: int = 0
    average_group_size: float = 0.0
    status_breakdown: Dict[str, int] = Field(default_factory=dict)
    region_breakdown: Dict[str, int] = Field(default_factory=dict)
    experience_breakdown: Dict[str, int] = Field(default_factory=dict)
    risk_assessment_breakdown: Dict[str, int] = Field(default_factory=dict)
    season_breakdown: Dict[str, int] = Field(default_factory=dict)
    group_size_breakdown: Dict[str, int] = Field(default_factory=dict)
    health_concerns: HealthConcerns = Field(default_factory=HealthConcerns)
    logistics: LogisticsCounts = Field(default_factory=LogisticsCounts)
