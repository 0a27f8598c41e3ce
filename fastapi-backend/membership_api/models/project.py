"""Project SQLAlchemy model (the aggregate that owns a roster)."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Uuid

from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Project(Base):
    """
    Project model.

    Only the columns the membership service needs are mapped here.
    roster_version is bumped on every persisted membership change and is
    the compare-and-swap token for concurrent writers.

    Attributes:
        id: Unique identifier (UUID)
        key: Short project key, e.g. "CORE"
        name: Project name
        lead_user_id: FK to the user holding the "project lead" designation
        roster_version: Optimistic concurrency counter for the member roster
        created_at: Timestamp when project was created
        updated_at: Timestamp when project was last updated
    """

    __tablename__ = "Projects"
    __allow_unmapped__ = True

    # Primary key - UUID
    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )

    key = Column(
        String(10),
        unique=True,
        nullable=False,
    )
    name = Column(
        String(255),
        nullable=False,
    )

    lead_user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("Users.id", ondelete="SET NULL"),
        nullable=True,
    )

    roster_version = Column(
        Integer,
        nullable=False,
        default=0,
    )

    # Timestamps
    created_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation of Project."""
        return f"<Project(id={self.id}, key={self.key}, roster_version={self.roster_version})>"
