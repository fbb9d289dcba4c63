"""
Join & enrichment: turn each booking plus its lookups into one ExportRecord.
Pure apart from `now`; a bad field degrades to its fallback, never raises.
"""

import math
import re
from datetime import date, datetime, timezone
from typing import List, Optional, Union
from zoneinfo import ZoneInfo

from trekhub.booking_export.classification import (
    experience_level,
    group_size,
    has_medical_condition,
    risk_assessment,
    season_for,
)
from trekhub.booking_export.schema import (
    Booking,
    ExportRecord,
    ExportSource,
    Participant,
    Slot,
    Trek,
    UserProfile,
)

NA = "N/A"
NONE_REPORTED = "None reported"
TO_BE_COLLECTED = "To be collected"
TO_BE_CONFIRMED = "To be confirmed by guide"

_DAYS_PER_YEAR = 365.25


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """ISO date or datetime (trailing Z allowed). None when unusable."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def _local(dt: datetime, tz: str) -> datetime:
    """Aware datetimes move to the display timezone; naive ones are already local."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(ZoneInfo(tz))


def format_date(value: Optional[str], tz: str) -> str:
    """DD/MM/YYYY; unparseable input is shown as stored."""
    dt = parse_datetime(value)
    if dt is None:
        return value or NA
    return _local(dt, tz).strftime("%d/%m/%Y")


def format_datetime(value: Optional[str], tz: str) -> str:
    """DD/MM/YYYY, h:mm:ss am"""
    dt = parse_datetime(value)
    if dt is None:
        return value or NA
    dt = _local(dt, tz)
    hour = dt.hour % 12 or 12
    meridiem = "am" if dt.hour < 12 else "pm"
    return f"{dt:%d/%m/%Y}, {hour}:{dt:%M:%S} {meridiem}"


def humanize(value: Optional[str], default: str = NA) -> str:
    """pending_approval -> Pending Approval"""
    if not value:
        return default
    return re.sub(r"\b\w", lambda m: m.group().upper(), value.replace("_", " "))


def trek_display_name(slug: Optional[str], trek: Optional[Trek]) -> str:
    if trek and trek.name:
        return trek.name
    if not slug:
        return NA
    return humanize(slug.replace("-", " "))


def customer_age(booking: Booking, now: datetime) -> int:
    """Stored age, else whole years since date of birth, else 0."""
    if booking.customer_age:
        return booking.customer_age
    dob = parse_datetime(booking.customer_dob)
    if dob is None:
        return 0
    days = (now.date() - dob.date()).days
    return max(0, math.floor(days / _DAYS_PER_YEAR))


def rupees(amount: Optional[float]) -> Union[int, float]:
    """21000.0 -> 21000; fractional amounts stay as they are."""
    if not amount:
        return 0
    return int(amount) if float(amount).is_integer() else amount


def amount_per_person(total_amount: float, participants: Optional[int]) -> int:
    if participants and participants > 0:
        return round_half_up(total_amount / participants)
    return round_half_up(total_amount)


def slot_utilization(slot: Optional[Slot]) -> str:
    if slot is None or not slot.capacity:
        return NA
    return f"{round_half_up(slot.booked / slot.capacity * 100)}%"


def season_date(booking: Booking, slot: Optional[Slot], tz: str = "Asia/Kolkata") -> Optional[date]:
    """Local slot date, else booking date, else creation time. None if unparseable."""
    raw = (slot.date if slot else None) or booking.booking_date or booking.created_at
    dt = parse_datetime(raw)
    return _local(dt, tz).date() if dt else None


def _trek_date(booking: Booking, slot: Optional[Slot], tz: str) -> str:
    raw = (slot.date if slot else None) or booking.booking_date
    return format_date(raw, tz) if raw else NA


def _health_text(value: Optional[str]) -> str:
    return value if has_medical_condition(value) else NONE_REPORTED


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def build_export_record(
    booking: Booking,
    index: int,
    trek: Optional[Trek] = None,
    slot: Optional[Slot] = None,
    profile: Optional[UserProfile] = None,
    participants: Optional[List[Participant]] = None,
    now: Optional[datetime] = None,
    number_prefix: str = "NMD",
    tz: str = "Asia/Kolkata",
) -> ExportRecord:
    """
    Enrich one booking. `index` is its 0-based position in the query result
    and drives the booking number.
    """
    now = now or datetime.now(timezone.utc)
    participants = participants or []

    age = customer_age(booking, now)
    level = experience_level(booking.trekking_experience)
    medical = has_medical_condition(booking.medical_conditions)
    party = booking.participants or 1
    total = rupees(booking.total_amount)
    names = ", ".join(p.full_name for p in participants if p.full_name)
    confirmed = booking.status == "confirmed"
    modified = booking.updated_at or booking.created_at

    equipment = "Gear rental required, " if booking.trek_gear_rental else ""
    equipment += "Porter services required" if booking.porter_services else "Standard equipment"

    slug = booking.trek_slug
    reference_prefix = slug.upper()[:3] if slug else "TRK"

    return ExportRecord(
        id=booking.id,
        booking_number=f"{number_prefix}-{index + 1:04d}",
        booking_reference=f"{reference_prefix}-{booking.id[:8]}",
        customer_name=(profile.name if profile else None) or booking.customer_name or NA,
        customer_email=booking.customer_email or NA,
        customer_phone=booking.customer_phone or NA,
        customer_age=age,
        customer_gender=humanize(booking.customer_gender, "Not Specified"),
        customer_date_of_birth=format_date(booking.customer_dob, tz) if booking.customer_dob else NA,
        trek_name=trek_display_name(slug, trek),
        trek_slug=slug or NA,
        trek_region=(trek.region if trek else None) or NA,
        trek_difficulty=(trek.difficulty if trek else None) or NA,
        trek_duration=(trek.duration if trek else None) or NA,
        trek_date=_trek_date(booking, slot, tz),
        trek_start_location=TO_BE_CONFIRMED,
        trek_end_location=TO_BE_CONFIRMED,
        participants=party,
        participant_names=names or booking.customer_name or NA,
        total_amount=total,
        base_amount=rupees(booking.base_amount),
        gst_amount=rupees(booking.gst_amount),
        amount_per_person=amount_per_person(total, booking.participants),
        status=humanize(booking.status),
        payment_status=humanize(booking.payment_status),
        booking_date=format_date(booking.created_at, tz),
        booking_time=format_datetime(booking.created_at, tz),
        medical_conditions=_health_text(booking.medical_conditions),
        current_medications=_health_text(booking.current_medications),
        recent_illnesses=_health_text(booking.recent_illnesses),
        trekking_experience=level,
        fitness_level="Fitness declared" if booking.fitness_consent else "Fitness not confirmed",
        dietary_restrictions=TO_BE_COLLECTED,
        allergies=TO_BE_COLLECTED,
        emergency_contact_name=booking.emergency_contact_name or NA,
        emergency_contact_phone=booking.emergency_contact_phone or NA,
        emergency_contact_relation=TO_BE_COLLECTED,
        residential_address=booking.residential_address or NA,
        pickup_location=booking.pickup_point or "Standard pickup point",
        needs_transportation=_yes_no(booking.needs_transportation),
        accommodation_preferences="Standard accommodation",
        special_requirements=booking.special_requirements or "None",
        gear_rental=_yes_no(booking.trek_gear_rental),
        porter_services=_yes_no(booking.porter_services),
        slot_date=format_date(slot.date, tz) if slot and slot.date else NA,
        slot_capacity=slot.capacity if slot else 0,
        slot_booked=slot.booked if slot else 0,
        slot_available=slot.available if slot else 0,
        slot_utilization=slot_utilization(slot),
        guide_notes=(
            f"Group size: {party}, Experience: {level}, "
            f"Medical: {'Yes' if medical else 'None'}"
        ),
        risk_assessment=risk_assessment(booking.medical_conditions, level, age),
        equipment_needed=equipment,
        created_by="System",
        last_modified=format_datetime(modified, tz),
        approved_by="Admin" if confirmed else "Pending",
        approval_date=format_date(modified, tz) if confirmed else NA,
        season_type=season_for(season_date(booking, slot, tz)),
        weather_conditions="Check weather forecast before trek",
        group_size=group_size(party),
        experience_level=level,
    )


def build_export_records(
    source: ExportSource,
    now: Optional[datetime] = None,
    number_prefix: str = "NMD",
    tz: str = "Asia/Kolkata",
) -> List[ExportRecord]:
    """Enrich every booking, preserving query order."""
    now = now or datetime.now(timezone.utc)
    return [
        build_export_record(
            booking,
            index,
            trek=source.treks.get(booking.trek_slug) if booking.trek_slug else None,
            slot=source.slots.get(booking.slot_id) if booking.slot_id else None,
            profile=source.profiles.get(booking.user_id) if booking.user_id else None,
            participants=source.participants.get(booking.id),
            now=now,
            number_prefix=number_prefix,
            tz=tz,
        )
        for index, booking in enumerate(source.bookings)
    ]
