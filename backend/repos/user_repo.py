"""Repository for the users behind sessions."""

from __future__ import annotations

from uuid import UUID

import asyncpg

from backend.db import system_conn, user_conn
from backend.models.user import User


def _row_to_user(row: asyncpg.Record) -> User:
    return User(id=row["id"], email=row["email"], name=row["name"], created_at=row["created_at"])


class UserRepo:
    """Lookup for session owners, plus the upsert the sign-in provider calls."""

    async def upsert(self, email: str, name: str | None = None) -> User:
        """
        Return the user for this email, creating it on first sign-in.
        A non-null name replaces the stored one.

        System conn because no user context exists yet.
        """
        async with system_conn() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO users (email, name)
                VALUES ($1, $2)
                ON CONFLICT (email) DO UPDATE SET name = COALESCE(EXCLUDED.name, users.name)
                RETURNING *
                """,
                email.strip().lower(),
                name,
            )
            return _row_to_user(row)

    async def get(self, user_id: UUID) -> User | None:
        """
        Get a user by ID. RLS hides every user but the caller, so a
        session can only ever resolve to itself.
        """
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow("SELECT * FROM users WHERE id = $1", user_id)
            return _row_to_user(row) if row else None
