"""
SQLite persistence shared by the export and admin-auth features.
Tables mirror the platform schema: bookings, treks, trek_slots, user_profiles,
booking_participants, users, user_session.
"""

import sqlite3
from contextlib import contextmanager
from typing import Iterator

from trekhub.settings import get_settings

_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS treks (
        slug TEXT PRIMARY KEY,
        name TEXT,
        region TEXT,
        difficulty TEXT,
        duration TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS trek_slots (
        id TEXT PRIMARY KEY,
        trek_slug TEXT,
        date TEXT,
        capacity INTEGER,
        booked INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_profiles (
        user_id TEXT PRIMARY KEY,
        name TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS bookings (
        id TEXT PRIMARY KEY,
        user_id TEXT,
        trek_slug TEXT,
        slot_id TEXT,
        customer_name TEXT,
        customer_email TEXT,
        customer_phone TEXT,
        customer_age INTEGER,
        customer_dob TEXT,
        customer_gender TEXT,
        participants INTEGER,
        base_amount REAL,
        gst_amount REAL,
        total_amount REAL,
        status TEXT NOT NULL DEFAULT 'pending_approval',
        payment_status TEXT,
        booking_date TEXT,
        medical_conditions TEXT,
        current_medications TEXT,
        recent_illnesses TEXT,
        trekking_experience TEXT,
        fitness_consent INTEGER NOT NULL DEFAULT 0,
        emergency_contact_name TEXT,
        emergency_contact_phone TEXT,
        residential_address TEXT,
        pickup_point TEXT,
        needs_transportation INTEGER NOT NULL DEFAULT 0,
        trek_gear_rental INTEGER NOT NULL DEFAULT 0,
        porter_services INTEGER NOT NULL DEFAULT 0,
        special_requirements TEXT,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
        updated_at TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_bookings_created ON bookings(created_at)",
    "CREATE INDEX IF NOT EXISTS ix_bookings_trek ON bookings(trek_slug)",
    """
    CREATE TABLE IF NOT EXISTS booking_participants (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        booking_id TEXT NOT NULL,
        full_name TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_participants_booking ON booking_participants(booking_id)",
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT,
        role TEXT NOT NULL DEFAULT 'user',
        is_activated INTEGER NOT NULL DEFAULT 0,
        created_at TEXT,
        updated_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_session (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        expires_at TEXT NOT NULL
    )
    """,
]


def connect() -> sqlite3.Connection:
    """
    New connection to the configured database. One per unit of work, so
    lookups running on different threads never share a connection.
    """
    conn = sqlite3.connect(str(get_settings().db_path))
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def connection() -> Iterator[sqlite3.Connection]:
    """Connection that commits on success and is always closed."""
    conn = connect()
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def init_db() -> None:
    """
    Create tables if not exist. Idempotent.
    Runs on startup and before each export.
    """
    with connection() as conn:
        cur = conn.cursor()
        for statement in _SCHEMA:
            cur.execute(statement)
