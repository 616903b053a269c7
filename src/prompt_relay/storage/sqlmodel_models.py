"""SQLModel ORM tables for the task store."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Index, Text, text
from sqlmodel import Field, SQLModel


class TaskRecord(SQLModel, table=True):
    __tablename__ = "tasks"  # type: ignore[bad-override]
    __table_args__ = (
        Index(
            "uq_tasks_item_outstanding",
            "item_id",
            unique=True,
            sqlite_where=text("processed = 0"),
        ),
        {"sqlite_autoincrement": True},
    )

    id: int | None = Field(default=None, primary_key=True)
    item_id: int = Field(index=True)
    prompt: str = Field(sa_column=Column(Text, nullable=False))
    response: str = Field(
        default="",
        sa_column=Column(Text, nullable=False, server_default=""),
    )
    processed: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, server_default=text("0"), index=True),
    )
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    completed_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )
