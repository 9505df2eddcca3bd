"""Workspace routes — list, create, and create a table inside one."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from backend.auth import get_current_user
from backend.models.user import User
from backend.models.workspace import (
    CreateTableRequest,
    CreateWorkspaceRequest,
    TableSummary,
    WorkspaceResponse,
)
from backend.repos.workspace_repo import WorkspaceRepo

router = APIRouter(prefix="/api/workspaces", tags=["workspaces"])
workspace_repo = WorkspaceRepo()


@router.get("", status_code=200)
async def list_workspaces(user: User = Depends(get_current_user)) -> list[WorkspaceResponse]:
    """List the current user's workspaces, newest first, with their tables."""
    workspaces = await workspace_repo.list_for_user(user.id)
    return [WorkspaceResponse.from_model(w) for w in workspaces]


@router.post("", status_code=201)
async def create_workspace(
    req: CreateWorkspaceRequest,
    user: User = Depends(get_current_user),
) -> WorkspaceResponse:
    """Create an empty workspace."""
    workspace = await workspace_repo.create(user.id, req.name)
    return WorkspaceResponse.from_model(workspace)


@router.post("/{workspace_id}/tables", status_code=201)
async def create_table(
    workspace_id: UUID,
    req: CreateTableRequest,
    user: User = Depends(get_current_user),
) -> TableSummary:
    """Create a table with the default Name/Note columns and three empty rows."""
    table = await workspace_repo.create_table(user.id, workspace_id, req.name)
    if not table:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workspace not found.")
    return table
