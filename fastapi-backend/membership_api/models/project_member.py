"""ProjectMember SQLAlchemy model for user-project relationships with roles."""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from ..database import Base

if TYPE_CHECKING:
    from .user import User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProjectMember(Base):
    """
    ProjectMember model representing one row of a project's roster.

    The row id is the membership id handed to clients; it is distinct from
    the user id. A user appears at most once per project.

    Attributes:
        id: Membership identifier (UUID)
        project_id: FK to the project
        user_id: FK to the member user
        role: "Admin" or "Member"
        created_at: Timestamp when membership was created
        updated_at: Timestamp when membership was last updated
    """

    __tablename__ = "ProjectMembers"
    __allow_unmapped__ = True
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_ProjectMembers_project_user"),
        Index("ix_ProjectMembers_project_role", "project_id", "role"),
    )

    # Primary key - UUID
    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )

    # Foreign keys
    project_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("Projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("Users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    role = Column(
        String(20),
        nullable=False,
        default="Member",
    )

    # Timestamps
    created_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
        index=True,
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )

    # Relationships
    user = relationship(
        "User",
        lazy="joined",
    )

    def __repr__(self) -> str:
        """String representation of ProjectMember."""
        return f"<ProjectMember(id={self.id}, project_id={self.project_id}, user_id={self.user_id}, role={self.role})>"
