"""The user a session resolves to."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr


class User(BaseModel):
    """Owner of workspaces. A row in the users table."""

    id: UUID
    email: EmailStr
    name: str | None = None
    created_at: datetime
