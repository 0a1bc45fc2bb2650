"""SQLAlchemy ORM models for the SQL-backed table store."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class TableRow(Base):
    """Table entity row - every logical table shares this relation.

    Rows are schema-less: typed columns exist only for the identity and the
    version tag, everything else lives in ``properties``.
    """

    __tablename__ = "table_entity"
    __table_args__ = (Index("idx_table_entity_row", "table_name", "row_key"),)

    table_name: Mapped[str] = mapped_column(Text, primary_key=True)
    partition_key: Mapped[str] = mapped_column(Text, primary_key=True)
    row_key: Mapped[str] = mapped_column(Text, primary_key=True)
    properties: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict
    )
    etag: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
