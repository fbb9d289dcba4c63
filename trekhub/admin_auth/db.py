"""
Session and user lookups for admin access checks. Write helpers are used
for seeding and tests; sign-in itself lives elsewhere.
"""

from typing import Any, Dict, Optional

from trekhub.database import connect, connection


def get_session(session_id: str) -> Optional[Dict[str, Any]]:
    conn = connect()
    try:
        row = conn.execute(
            "SELECT id, user_id, expires_at FROM user_session WHERE id = ?",
            (session_id,),
        ).fetchone()
    finally:
        conn.close()
    return dict(row) if row else None


def get_user(user_id: str) -> Optional[Dict[str, Any]]:
    conn = connect()
    try:
        row = conn.execute(
            """
            SELECT id, email, role, is_activated, created_at, updated_at
            FROM users
            WHERE id = ?
            """,
            (user_id,),
        ).fetchone()
    finally:
        conn.close()
    return dict(row) if row else None


def create_user(
    user_id: str,
    email: str,
    role: str = "user",
    is_activated: bool = True,
) -> None:
    with connection() as conn:
        conn.execute(
            """
            INSERT INTO users (id, email, role, is_activated, created_at, updated_at)
            VALUES (?, ?, ?, ?, strftime('%Y-%m-%dT%H:%M:%fZ', 'now'), strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
            """,
            (user_id, email, role, 1 if is_activated else 0),
        )


def create_session(session_id: str, user_id: str, expires_at: str) -> None:
    with connection() as conn:
        conn.execute(
            "INSERT INTO user_session (id, user_id, expires_at) VALUES (?, ?, ?)",
            (session_id, user_id, expires_at),
        )
