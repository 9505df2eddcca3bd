"""
Pydantic models for the table editor.

All data shapes defined here. No imports from db, repos, or routes.
"""

from backend.models.table import (
    AddColumnRequest,
    AddFakeRowsRequest,
    Cell,
    Column,
    QueryRowsRequest,
    QueryRowsResponse,
    Row,
    RowsResponse,
    Table,
    UpdateCellRequest,
)
from backend.models.user import User
from backend.models.workspace import (
    CreateTableRequest,
    CreateWorkspaceRequest,
    TableSummary,
    Workspace,
    WorkspaceResponse,
)

__all__ = [
    # User models
    "User",
    # Workspace models
    "Workspace",
    "TableSummary",
    "CreateWorkspaceRequest",
    "CreateTableRequest",
    "WorkspaceResponse",
    # Table models
    "Table",
    "Column",
    "Row",
    "Cell",
    "AddColumnRequest",
    "AddFakeRowsRequest",
    "UpdateCellRequest",
    "QueryRowsRequest",
    "QueryRowsResponse",
    "RowsResponse",
]
