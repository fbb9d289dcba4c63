from datetime import datetime, timezone

import pytest

from trekhub.booking_export.enrichment import (
    amount_per_person,
    build_export_record,
    build_export_records,
    format_datetime,
    humanize,
)
from trekhub.booking_export.schema import (
    Booking,
    ExportSource,
    Participant,
    Slot,
    Trek,
    UserProfile,
)

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def _booking(**overrides) -> Booking:
    data = {"id": "b1234567-aaaa-bbbb-cccc-000000000001", "created_at": "2026-05-10T04:30:00Z"}
    data.update(overrides)
    return Booking(**data)


def test_solo_healthy_advanced_booking():
    record = build_export_record(
        _booking(
            participants=1,
            total_amount=25000,
            medical_conditions="None reported",
            customer_age=30,
            trekking_experience="Advanced",
        ),
        0,
        now=NOW,
    )
    assert record.risk_assessment == "Low"
    assert record.group_size == "Solo"
    assert record.amount_per_person == 25000


def test_large_group_senior_beginner_with_asthma():
    record = build_export_record(
        _booking(
            participants=5,
            customer_age=65,
            medical_conditions="Asthma",
            trekking_experience="Beginner trek",
        ),
        0,
        now=NOW,
    )
    assert record.risk_assessment == "High"
    assert record.group_size == "Large Group"
    assert record.experience_level == "Beginner"


@pytest.mark.parametrize("capacity,booked,available,utilization", [
    (20, 5, 15, "25%"),
    (10, 12, 0, "120%"),
    (8, 8, 0, "100%"),
    (0, 3, 0, "N/A"),
])
def test_slot_availability_is_never_negative(capacity, booked, available, utilization):
    slot = Slot(id="slot-1", date="2026-06-15", capacity=capacity, booked=booked)
    record = build_export_record(_booking(slot_id="slot-1"), 0, slot=slot, now=NOW)
    assert record.slot_available == available == max(0, capacity - booked)
    assert record.slot_utilization == utilization
    assert record.slot_date == "15/06/2026"


@pytest.mark.parametrize("total,participants", [
    (25000, 1), (21000, 2), (10000, 3), (99999, 7), (0, 4),
])
def test_amount_per_person_within_rounding(total, participants):
    per_person = amount_per_person(total, participants)
    assert abs(per_person * participants - total) <= participants / 2


def test_amount_per_person_without_participants_is_total():
    assert amount_per_person(12000, 0) == 12000
    assert amount_per_person(12000, None) == 12000


def test_missing_joins_fall_back():
    record = build_export_record(
        _booking(trek_slug="kedarkantha-winter-trek", customer_name="Asha Rao"),
        0,
        now=NOW,
    )
    assert record.trek_name == "Kedarkantha Winter Trek"
    assert record.trek_region == "N/A"
    assert record.trek_difficulty == "N/A"
    assert record.slot_date == "N/A"
    assert record.slot_capacity == 0
    assert record.slot_available == 0
    assert record.slot_utilization == "N/A"
    assert record.participant_names == "Asha Rao"
    assert record.customer_name == "Asha Rao"
    assert record.booking_reference == "KED-b1234567"


def test_joined_entities_are_used():
    booking = _booking(
        user_id="u1",
        trek_slug="hampta-pass",
        slot_id="s1",
        customer_name="Stored Name",
        participants=2,
    )
    record = build_export_record(
        booking,
        4,
        trek=Trek(slug="hampta-pass", name="Hampta Pass", region="Himachal", difficulty="Moderate", duration="5 days"),
        slot=Slot(id="s1", date="2026-07-20", capacity=12, booked=9),
        profile=UserProfile(user_id="u1", name="Profile Name"),
        participants=[
            Participant(booking_id=booking.id, full_name="Ravi"),
            Participant(booking_id=booking.id, full_name="Meera"),
        ],
        now=NOW,
    )
    assert record.customer_name == "Profile Name"
    assert record.trek_name == "Hampta Pass"
    assert record.trek_region == "Himachal"
    assert record.trek_date == "20/07/2026"
    assert record.participant_names == "Ravi, Meera"
    assert record.slot_available == 3
    assert record.slot_utilization == "75%"
    assert record.season_type == "Monsoon"
    assert record.booking_number == "NMD-0005"
    assert record.booking_reference == "HAM-b1234567"


def test_age_derived_from_date_of_birth():
    assert build_export_record(_booking(customer_dob="1990-10-18"), 0, now=NOW).customer_age == 36
    assert build_export_record(_booking(customer_dob="1990-10-19"), 0, now=NOW).customer_age == 35
    assert build_export_record(_booking(customer_dob="garbage"), 0, now=NOW).customer_age == 0
    assert build_export_record(_booking(), 0, now=NOW).customer_age == 0


def test_stored_age_wins_over_date_of_birth():
    record = build_export_record(_booking(customer_age=44, customer_dob="1990-01-01"), 0, now=NOW)
    assert record.customer_age == 44


def test_season_prefers_slot_then_booking_date_then_created_at():
    slot = Slot(id="s1", date="2026-01-10", capacity=10, booked=1)
    assert build_export_record(_booking(booking_date="2026-04-01"), 0, slot=slot, now=NOW).season_type == "Winter"
    assert build_export_record(_booking(booking_date="2026-04-01"), 0, now=NOW).season_type == "Spring"
    assert build_export_record(_booking(), 0, now=NOW).season_type == "Spring"


def test_unparseable_dates_degrade_instead_of_failing():
    record = build_export_record(_booking(created_at="not-a-date", updated_at=None), 0, now=NOW)
    assert record.season_type == "Unknown"
    assert record.booking_date == "not-a-date"
    assert record.booking_time == "not-a-date"
    assert record.last_modified == "not-a-date"


def test_dates_shown_in_indian_format_and_time():
    record = build_export_record(_booking(created_at="2026-05-10T18:45:00Z"), 0, now=NOW)
    assert record.booking_date == "11/05/2026"
    assert record.booking_time == "11/05/2026, 12:15:00 am"
    assert format_datetime("2026-05-10T04:30:00Z", "Asia/Kolkata") == "10/05/2026, 10:00:00 am"


def test_health_and_logistics_defaults():
    record = build_export_record(_booking(), 0, now=NOW)
    assert record.medical_conditions == "None reported"
    assert record.current_medications == "None reported"
    assert record.recent_illnesses == "None reported"
    assert record.special_requirements == "None"
    assert record.pickup_location == "Standard pickup point"
    assert record.dietary_restrictions == "To be collected"
    assert record.emergency_contact_relation == "To be collected"
    assert record.accommodation_preferences == "Standard accommodation"
    assert record.experience_level == "Not Specified"
    assert record.fitness_level == "Fitness not confirmed"
    assert record.equipment_needed == "Standard equipment"
    assert record.customer_gender == "Not Specified"


def test_flags_status_and_approval():
    record = build_export_record(
        _booking(
            status="confirmed",
            payment_status="partially_paid",
            customer_gender="prefer_not_to_say",
            trek_gear_rental=True,
            porter_services=True,
            needs_transportation=True,
            fitness_consent=True,
            updated_at="2026-05-12T05:00:00Z",
        ),
        0,
        now=NOW,
    )
    assert record.status == "Confirmed"
    assert record.payment_status == "Partially Paid"
    assert record.customer_gender == "Prefer Not To Say"
    assert record.gear_rental == "Yes"
    assert record.porter_services == "Yes"
    assert record.needs_transportation == "Yes"
    assert record.fitness_level == "Fitness declared"
    assert record.equipment_needed == "Gear rental required, Porter services required"
    assert record.approved_by == "Admin"
    assert record.approval_date == "12/05/2026"


def test_pending_booking_is_not_approved():
    record = build_export_record(_booking(status="pending_approval"), 0, now=NOW)
    assert record.status == "Pending Approval"
    assert record.approved_by == "Pending"
    assert record.approval_date == "N/A"


def test_build_export_records_preserves_order_and_numbers():
    bookings = [_booking(id=f"id-{i}", trek_slug="roopkund") for i in range(3)]
    source = ExportSource(
        bookings=bookings,
        treks={"roopkund": Trek(slug="roopkund", name="Roopkund", region="Uttarakhand")},
    )
    records = build_export_records(source, now=NOW, number_prefix="THI")
    assert [r.id for r in records] == ["id-0", "id-1", "id-2"]
    assert [r.booking_number for r in records] == ["THI-0001", "THI-0002", "THI-0003"]
    assert all(r.trek_name == "Roopkund" for r in records)


def test_humanize():
    assert humanize("pending_approval") == "Pending Approval"
    assert humanize(None) == "N/A"
    assert humanize("", "Not Specified") == "Not Specified"


def test_season_follows_local_slot_date():
    # 20:00 UTC on 31 May is 1 June in India
    slot = Slot(id="s1", date="2026-05-31T20:00:00Z", capacity=10, booked=1)
    record = build_export_record(_booking(), 0, slot=slot, now=NOW)
    assert record.slot_date == "01/06/2026"
    assert record.season_type == "Monsoon"


def test_whole_rupee_amounts_are_integers():
    record = build_export_record(
        _booking(total_amount=21000.0, base_amount=20000.0, gst_amount=1000.5, participants=2),
        0,
        now=NOW,
    )
    assert record.total_amount == 21000
    assert isinstance(record.total_amount, int)
    assert isinstance(record.base_amount, int)
    assert record.gst_amount == 1000.5
    dumped = record.model_dump(by_alias=True)
    assert repr(dumped["totalAmount"]) == "21000"
