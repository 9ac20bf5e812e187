"""
Saved Map Pool Models

A saved pool is stored as its flat (mode, stage_id) projection so it can be
queried per stage; the serialized string is always recomputed from the rows.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

CODE_MIN_LENGTH = 2
CODE_MAX_LENGTH = 32


class SavedMapPool(SQLModel, table=True):
    """A user's named map pool, looked up by its short alphanumeric code."""

    __tablename__ = "map_pool"

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(index=True)
    code: str = Field(unique=True, index=True, max_length=CODE_MAX_LENGTH)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Relationships
    stages: List["SavedMapPoolStage"] = Relationship(
        back_populates="map_pool",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class SavedMapPoolStage(SQLModel, table=True):
    """One (mode, stage) member of a saved pool."""

    __tablename__ = "map_pool_stage"

    __table_args__ = (
        SAUniqueConstraint("map_pool_id", "mode", "stage_id", name="uq_map_pool_mode_stage"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    map_pool_id: int = Field(foreign_key="map_pool.id", index=True)
    mode: str = Field(max_length=2)  # TW|SZ|TC|RM|CB
    stage_id: int

    # Relationships
    map_pool: Optional[SavedMapPool] = Relationship(back_populates="stages")
