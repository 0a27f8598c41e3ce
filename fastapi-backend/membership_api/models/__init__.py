"""SQLAlchemy ORM models package."""

from .project import Project
from .project_member import ProjectMember
from .user import User

__all__ = [
    "Project",
    "ProjectMember",
    "User",
]
