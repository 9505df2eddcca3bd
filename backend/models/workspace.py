"""Workspace models: a user's container of tables."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class TableSummary(BaseModel):
    """A table as listed inside its workspace."""

    id: UUID
    name: str
    created_at: datetime


class Workspace(BaseModel):
    """Core workspace model. Represents a row in the workspaces table."""

    id: UUID
    owner_id: UUID
    name: str
    created_at: datetime
    tables: list[TableSummary] = Field(default_factory=list)


class CreateWorkspaceRequest(BaseModel):
    """What the client sends to create a workspace."""

    model_config = {"extra": "forbid"}

    name: str = Field(min_length=1, max_length=200)


class CreateTableRequest(BaseModel):
    """What the client sends to create a table with the default layout."""

    model_config = {"extra": "forbid"}

    name: str = Field(min_length=1, max_length=200)


class WorkspaceResponse(BaseModel):
    """What the API returns."""

    id: UUID
    name: str
    created_at: datetime
    tables: list[TableSummary]

    @classmethod
    def from_model(cls, workspace: Workspace) -> WorkspaceResponse:
        """Convert internal Workspace model to public API response."""
        return cls(
            id=workspace.id,
            name=workspace.name,
            created_at=workspace.created_at,
            tables=workspace.tables,
        )
