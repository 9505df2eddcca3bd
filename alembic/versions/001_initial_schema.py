"""Initial schema: users, workspaces, tables, columns, rows, cells with RLS.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from alembic import op


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Empty app.user_id means system access; avoids casting '' to uuid
    op.execute("""
        CREATE OR REPLACE FUNCTION get_app_user_id() RETURNS uuid AS $$
        DECLARE
            val text;
        BEGIN
            val := current_setting('app.user_id', true);
            IF val IS NULL OR val = '' THEN
                RETURN NULL;
            END IF;
            RETURN val::uuid;
        END;
        $$ LANGUAGE plpgsql STABLE;
    """)

    # Create users table
    op.execute("""
        CREATE TABLE users (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            email TEXT UNIQUE NOT NULL,
            name TEXT,
            created_at TIMESTAMPTZ DEFAULT now()
        );
    """)

    # Create workspaces table
    op.execute("""
        CREATE TABLE workspaces (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            owner_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            created_at TIMESTAMPTZ DEFAULT now()
        );
    """)

    op.execute("CREATE INDEX idx_workspaces_owner ON workspaces(owner_id);")

    # Create tables table. user_id is denormalized from the workspace for RLS.
    op.execute("""
        CREATE TABLE tables (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            workspace_id UUID NOT NULL REFERENCES workspaces(id) ON DELETE CASCADE,
            user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            created_at TIMESTAMPTZ DEFAULT now()
        );
    """)

    op.execute("CREATE INDEX idx_tables_workspace ON tables(workspace_id);")
    op.execute("CREATE INDEX idx_tables_user ON tables(user_id);")

    # Create columns table
    op.execute("""
        CREATE TABLE columns (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            table_id UUID NOT NULL REFERENCES tables(id) ON DELETE CASCADE,
            name TEXT NOT NULL CHECK (length(name) > 0),
            type TEXT NOT NULL CHECK (type IN ('TEXT', 'NUMBER')),
            "order" INTEGER NOT NULL,
            UNIQUE(table_id, "order")
        );
    """)

    # Create rows table
    op.execute("""
        CREATE TABLE rows (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            table_id UUID NOT NULL REFERENCES tables(id) ON DELETE CASCADE,
            "order" INTEGER NOT NULL,
            created_at TIMESTAMPTZ DEFAULT now(),
            UNIQUE(table_id, "order")
        );
    """)

    # Create cells table. At most one slot is set; which one follows the column type.
    op.execute("""
        CREATE TABLE cells (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            row_id UUID NOT NULL REFERENCES rows(id) ON DELETE CASCADE,
            column_id UUID NOT NULL REFERENCES columns(id) ON DELETE CASCADE,
            text_value TEXT,
            number_value DOUBLE PRECISION,
            UNIQUE(row_id, column_id),
            CHECK (text_value IS NULL OR number_value IS NULL)
        );
    """)

    op.execute("CREATE INDEX idx_cells_column ON cells(column_id);")

    # RLS
    for table in ("users", "workspaces", "tables", "columns", "rows", "cells"):
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY;")
        op.execute(f"ALTER TABLE {table} FORCE ROW LEVEL SECURITY;")

    op.execute("""
        CREATE POLICY users_all_own ON users
        FOR ALL
        USING (get_app_user_id() IS NULL OR id = get_app_user_id());
    """)

    op.execute("""
        CREATE POLICY workspaces_all_own ON workspaces
        FOR ALL
        USING (get_app_user_id() IS NULL OR owner_id = get_app_user_id())
        WITH CHECK (get_app_user_id() IS NULL OR owner_id = get_app_user_id());
    """)

    op.execute("""
        CREATE POLICY tables_all_own ON tables
        FOR ALL
        USING (get_app_user_id() IS NULL OR user_id = get_app_user_id())
        WITH CHECK (get_app_user_id() IS NULL OR user_id = get_app_user_id());
    """)

    op.execute("""
        CREATE POLICY columns_all_own ON columns
        FOR ALL
        USING (
            get_app_user_id() IS NULL OR
            table_id IN (SELECT id FROM tables WHERE user_id = get_app_user_id())
        );
    """)

    op.execute("""
        CREATE POLICY rows_all_own ON rows
        FOR ALL
        USING (
            get_app_user_id() IS NULL OR
            table_id IN (SELECT id FROM tables WHERE user_id = get_app_user_id())
        );
    """)

    op.execute("""
        CREATE POLICY cells_all_own ON cells
        FOR ALL
        USING (
            get_app_user_id() IS NULL OR
            column_id IN (
                SELECT c.id FROM columns c
                JOIN tables t ON t.id = c.table_id
                WHERE t.user_id = get_app_user_id()
            )
        );
    """)


def downgrade():
    op.execute("DROP TABLE IF EXISTS cells CASCADE")
    op.execute("DROP TABLE IF EXISTS rows CASCADE")
    op.execute("DROP TABLE IF EXISTS columns CASCADE")
    op.execute("DROP TABLE IF EXISTS tables CASCADE")
    op.execute("DROP TABLE IF EXISTS workspaces CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
    op.execute("DROP FUNCTION IF EXISTS get_app_user_id()")
