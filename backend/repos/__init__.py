"""
Repository layer for the table editor.

All queries run here. No database access outside this package.
"""

from backend.repos.table_repo import TableRepo, UserTableStore
from backend.repos.user_repo import UserRepo
from backend.repos.workspace_repo import WorkspaceRepo

__all__ = [
    "UserRepo",
    "WorkspaceRepo",
    "TableRepo",
    "UserTableStore",
]
