"""Table entity store

Revision ID: 001
Revises:
Create Date: 2026-10-17

Creates the single schema-less relation that backs every logical table
(Trips, ItineraryEntries, Bookings, ShareLinks, TripAccess, SavedShareLinks).
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create table_entity."""
    op.create_table(
        "table_entity",
        sa.Column("table_name", sa.Text(), primary_key=True),
        sa.Column("partition_key", sa.Text(), primary_key=True),
        sa.Column("row_key", sa.Text(), primary_key=True),
        sa.Column(
            "properties",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column("etag", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    # Share codes and trip ids are looked up by row key across partitions
    op.create_index("idx_table_entity_row", "table_entity", ["table_name", "row_key"])


def downgrade() -> None:
    """Drop table_entity."""
    op.drop_index("idx_table_entity_row", table_name="table_entity")
    op.drop_table("table_entity")
