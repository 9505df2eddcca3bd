"""Repository for workspace operations."""

from __future__ import annotations

import logging
from uuid import UUID, uuid4

import asyncpg

from backend.db import user_conn
from backend.models.workspace import TableSummary, Workspace

logger = logging.getLogger(__name__)

# Layout of a freshly created table
DEFAULT_COLUMNS = (("Name", "TEXT"), ("Note", "TEXT"))
DEFAULT_ROW_COUNT = 3


def _row_to_workspace(row: asyncpg.Record, tables: list[TableSummary] | None = None) -> Workspace:
    """Convert a database row to a Workspace model."""
    return Workspace(
        id=row["id"],
        owner_id=row["owner_id"],
        name=row["name"],
        created_at=row["created_at"],
        tables=tables or [],
    )


class WorkspaceRepo:
    """All workspace-related database operations."""

    async def create(self, user_id: UUID, name: str) -> Workspace:
        """
        Create a new, empty workspace owned by the user.

        Args:
            user_id: User UUID
            name: Workspace name

        Returns:
            Newly created Workspace
        """
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO workspaces (id, owner_id, name)
                VALUES ($1, $2, $3)
                RETURNING *
                """,
                uuid4(),
                user_id,
                name,
            )
            return _row_to_workspace(row)

    async def list_for_user(self, user_id: UUID) -> list[Workspace]:
        """
        List the user's workspaces with their tables.

        Returns:
            Workspaces ordered by created_at DESC, tables oldest first
        """
        async with user_conn(user_id) as conn:
            rows = await conn.fetch("SELECT * FROM workspaces WHERE owner_id = $1 ORDER BY created_at DESC", user_id)
            if not rows:
                return []
            table_rows = await conn.fetch(
                """
                SELECT id, workspace_id, name, created_at FROM tables
                WHERE workspace_id = ANY($1::uuid[])
                ORDER BY created_at
                """,
                [r["id"] for r in rows],
            )
            tables: dict[UUID, list[TableSummary]] = {}
            for t in table_rows:
                tables.setdefault(t["workspace_id"], []).append(
                    TableSummary(id=t["id"], name=t["name"], created_at=t["created_at"])
                )
            return [_row_to_workspace(r, tables.get(r["id"])) for r in rows]

    async def create_table(self, user_id: UUID, workspace_id: UUID, name: str) -> TableSummary | None:
        """
        Create a table with two TEXT columns (Name, Note) and three rows of
        empty cells, in one transaction.

        Args:
            user_id: User UUID
            workspace_id: Workspace UUID
            name: Table name

        Returns:
            The new table, or None if the workspace is missing or not owned by user
        """
        async with user_conn(user_id) as conn:
            exists = await conn.fetchval("SELECT EXISTS(SELECT 1 FROM workspaces WHERE id = $1)", workspace_id)
            if not exists:
                return None

            table = await conn.fetchrow(
                """
                INSERT INTO tables (id, workspace_id, user_id, name)
                VALUES ($1, $2, $3, $4)
                RETURNING id, name, created_at
                """,
                uuid4(),
                workspace_id,
                user_id,
                name,
            )
            column_ids = [uuid4() for _ in DEFAULT_COLUMNS]
            await conn.executemany(
                'INSERT INTO columns (id, table_id, name, type, "order") VALUES ($1, $2, $3, $4, $5)',
                [
                    (column_id, table["id"], col_name, col_type, i)
                    for i, (column_id, (col_name, col_type)) in enumerate(zip(column_ids, DEFAULT_COLUMNS))
                ],
            )
            row_ids = [uuid4() for _ in range(DEFAULT_ROW_COUNT)]
            await conn.executemany(
                'INSERT INTO rows (id, table_id, "order") VALUES ($1, $2, $3)',
                [(row_id, table["id"], i) for i, row_id in enumerate(row_ids)],
            )
            await conn.executemany(
                "INSERT INTO cells (row_id, column_id, text_value) VALUES ($1, $2, '')",
                [(row_id, column_id) for row_id in row_ids for column_id in column_ids],
            )
            logger.info("workspace_repo.create_table workspace=%s table=%s", workspace_id, table["id"])
            return TableSummary(id=table["id"], name=table["name"], created_at=table["created_at"])
