"""
Booking export persistence: filtered booking query plus the related lookups
(treks, slots, profiles, participants) fetched concurrently.
Insert helpers are used for seeding and tests.
"""

import logging
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from datetime import date, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from trekhub.booking_export.enrichment import parse_datetime
from trekhub.booking_export.errors import DataStoreError, NoBookingsFound
from trekhub.booking_export.schema import (
    Booking,
    ExportFilters,
    ExportSource,
    Participant,
    Slot,
    Trek,
    UserProfile,
)
from trekhub.database import connect, connection

logger = logging.getLogger(__name__)

_BOOKING_COLUMNS = list(Booking.model_fields)


def _date_only(value: str) -> Optional[date]:
    """Return the date when value is a bare YYYY-MM-DD, else None."""
    if len(value) != 10:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _instant(value: str) -> str:
    """Offset-aware bounds become naive UTC, the way created_at is compared."""
    dt = parse_datetime(value)
    if dt is None or dt.tzinfo is None:
        return value
    return dt.astimezone(timezone.utc).replace(tzinfo=None).isoformat()


def build_booking_query(filters: ExportFilters) -> Tuple[str, List[Any]]:
    """SQL + params for the filtered booking list, newest first."""
    clauses: List[str] = []
    params: List[Any] = []

    if filters.status and filters.status != "all":
        clauses.append("status = ?")
        params.append(filters.status)
    if filters.start_date:
        clauses.append("julianday(created_at) >= julianday(?)")
        params.append(_instant(filters.start_date))
    if filters.end_date:
        day = _date_only(filters.end_date)
        if day is not None:
            # A bare date covers that whole day
            clauses.append("julianday(created_at) < julianday(?)")
            params.append((day + timedelta(days=1)).isoformat())
        else:
            clauses.append("julianday(created_at) <= julianday(?)")
            params.append(_instant(filters.end_date))
    if filters.trek_slug:
        clauses.append("trek_slug = ?")
        params.append(filters.trek_slug)
    if filters.specific_user:
        clauses.append("(customer_email = ? OR user_id = ?)")
        params.extend([filters.specific_user, filters.specific_user])

    sql = f"SELECT {', '.join(_BOOKING_COLUMNS)} FROM bookings"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    sql += " ORDER BY created_at DESC"
    return sql, params


def query_bookings(filters: ExportFilters) -> List[Booking]:
    sql, params = build_booking_query(filters)
    conn = connect()
    try:
        rows = conn.execute(sql, params).fetchall()
    finally:
        conn.close()
    return [Booking(**dict(r)) for r in rows]


def _select_in(table: str, column: str, values: Sequence[str]) -> List[sqlite3.Row]:
    """SELECT * WHERE column IN (values). Skips the round trip for no values."""
    if not values:
        return []
    placeholders = ", ".join("?" for _ in values)
    conn = connect()
    try:
        return conn.execute(
            f"SELECT * FROM {table} WHERE {column} IN ({placeholders})",
            list(values),
        ).fetchall()
    finally:
        conn.close()


def get_treks(slugs: Sequence[str]) -> Dict[str, Trek]:
    return {r["slug"]: Trek(**dict(r)) for r in _select_in("treks", "slug", slugs)}


def get_slots(slot_ids: Sequence[str]) -> Dict[str, Slot]:
    slots = {}
    for r in _select_in("trek_slots", "id", slot_ids):
        row = dict(r)
        row["capacity"] = row["capacity"] or 0
        row["booked"] = row["booked"] or 0
        slots[row["id"]] = Slot(**row)
    return slots


def get_profiles(user_ids: Sequence[str]) -> Dict[str, UserProfile]:
    return {
        r["user_id"]: UserProfile(**dict(r))
        for r in _select_in("user_profiles", "user_id", user_ids)
    }


def get_participants(booking_ids: Sequence[str]) -> Dict[str, List[Participant]]:
    """Participants grouped by booking id, in insertion order."""
    grouped: Dict[str, List[Participant]] = {}
    rows = sorted(
        _select_in("booking_participants", "booking_id", booking_ids),
        key=lambda r: r["id"],
    )
    for r in rows:
        grouped.setdefault(r["booking_id"], []).append(Participant(**dict(r)))
    return grouped


def _unique(values) -> List[str]:
    return list(dict.fromkeys(v for v in values if v))


def fetch_export_source(filters: ExportFilters) -> ExportSource:
    """
    Run the filtered booking query, then fetch the four related lookups
    concurrently. Raises NoBookingsFound for an empty result and
    DataStoreError when any query fails.
    """
    try:
        bookings = query_bookings(filters)
    except sqlite3.Error as e:
        raise DataStoreError(str(e)) from e

    if not bookings:
        raise NoBookingsFound()

    trek_slugs = _unique(b.trek_slug for b in bookings)
    slot_ids = _unique(b.slot_id for b in bookings)
    user_ids = _unique(b.user_id for b in bookings)
    booking_ids = [b.id for b in bookings]

    with ThreadPoolExecutor(max_workers=4, thread_name_prefix="export-lookup") as pool:
        treks_f = pool.submit(get_treks, trek_slugs)
        slots_f = pool.submit(get_slots, slot_ids)
        profiles_f = pool.submit(get_profiles, user_ids)
        participants_f = pool.submit(get_participants, booking_ids)
        try:
            source = ExportSource(
                bookings=bookings,
                treks=treks_f.result(),
                slots=slots_f.result(),
                profiles=profiles_f.result(),
                participants=participants_f.result(),
            )
        except sqlite3.Error as e:
            raise DataStoreError(str(e)) from e

    logger.debug(
        "Fetched %d bookings, %d treks, %d slots, %d profiles",
        len(bookings), len(source.treks), len(source.slots), len(source.profiles),
    )
    return source


# ---- Writes (seeding / tests) ----

def record_booking(booking: Booking) -> None:
    """Insert a booking row. created_at defaults to now when not given."""
    row = booking.model_dump(exclude_none=True)
    columns = list(row)
    with connection() as conn:
        conn.execute(
            f"INSERT INTO bookings ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)})",
            [row[c] for c in columns],
        )


def upsert_trek(trek: Trek) -> None:
    with connection() as conn:
        conn.execute(
            """
            INSERT INTO treks (slug, name, region, difficulty, duration)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(slug) DO UPDATE SET
                name = excluded.name,
                region = excluded.region,
                difficulty = excluded.difficulty,
                duration = excluded.duration
            """,
            (trek.slug, trek.name, trek.region, trek.difficulty, trek.duration),
        )


def upsert_slot(slot: Slot) -> None:
    with connection() as conn:
        conn.execute(
            """
            INSERT INTO trek_slots (id, trek_slug, date, capacity, booked)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                trek_slug = excluded.trek_slug,
                date = excluded.date,
                capacity = excluded.capacity,
                booked = excluded.booked
            """,
            (slot.id, slot.trek_slug, slot.date, slot.capacity, slot.booked),
        )


def upsert_profile(profile: UserProfile) -> None:
    with connection() as conn:
        conn.execute(
            """
            INSERT INTO user_profiles (user_id, name) VALUES (?, ?)
            ON CONFLICT(user_id) DO UPDATE SET name = excluded.name
            """,
            (profile.user_id, profile.name),
        )


def add_participant(booking_id: str, full_name: str) -> None:
    with connection() as conn:
        conn.execute(
            "INSERT INTO booking_participants (booking_id, full_name) VALUES (?, ?)",
            (booking_id, full_name),
        )
