"""User SQLAlchemy model for the people who can be project members."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Uuid

from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    User model as seen by the membership service.

    Users are owned by the identity system; this table is the directory the
    add-member picker searches and the source of the user details shown next
    to each member.

    Attributes:
        id: Unique identifier (UUID)
        email: User's email address (unique)
        first_name: Given name
        last_name: Family name
        avatar_url: URL to user's avatar image
        created_at: Timestamp when user was created
        updated_at: Timestamp when user was last updated
    """

    __tablename__ = "Users"
    __allow_unmapped__ = True

    # Primary key - UUID
    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )

    email = Column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    # Profile fields
    first_name = Column(
        String(100),
        nullable=False,
        default="",
    )
    last_name = Column(
        String(100),
        nullable=False,
        default="",
        index=True,
    )
    avatar_url = Column(
        String(500),
        nullable=True,
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
        """String representation of User."""
        return f"<User(id={self.id}, email={self.email})>"
