"""Reservations table with the destination overlap guard.

The EXCLUDE constraint backs the application-level availability check:
two pending/confirmed reservations for the same destination can never
hold overlapping [start_date, end_date) ranges, even when two requests
pass the pre-check concurrently.

Revision ID: 001_reservations
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from pathlib import Path

from alembic import op

revision = "001_reservations"
down_revision = None
branch_labels = None
depends_on = None

_SQL_FILE = Path(__file__).resolve().parents[1] / "sql" / "001_reservations.sql"


def upgrade() -> None:
    # Raw execution so the DO $$ ... $$ block passes through untouched.
    op.get_bind().exec_driver_sql(_SQL_FILE.read_text(encoding="utf-8"))


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS reservations")
    op.execute("DROP TYPE IF EXISTS reservation_status")
    # btree_gist is left installed; other schemas may use it.
