"""SQLModel tables for the per-staging-folder offset cache.

A row in ``invalidated_offsets`` exists exactly while the matching pak
directory entry is zeroed. ``archive_keys`` records every archive that has
ever held an invalidation so an initialized-but-empty cache can be told
apart from one that was never used.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlmodel import Field, SQLModel


class ArchiveKeyRecord(SQLModel, table=True):
    __tablename__ = "archive_keys"

    id: int | None = Field(default=None, primary_key=True)
    archive_key: str = Field(unique=True, index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class InvalidatedOffset(SQLModel, table=True):
    __tablename__ = "invalidated_offsets"

    id: int | None = Field(default=None, primary_key=True)
    archive_key: str = Field(index=True)
    # A path belongs to exactly one archive, so the hash is unique cache-wide.
    path_hash: int = Field(unique=True, index=True)
    offset: int
    invalidated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
