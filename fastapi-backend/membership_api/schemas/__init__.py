"""Pydantic schemas package for request/response validation."""

from .project_member import (
    DenialDetail,
    MemberAffordanceResponse,
    ProjectMemberCount,
    ProjectMemberCreate,
    ProjectMemberRole,
    ProjectMemberUpdate,
    ProjectMemberWithUser,
    RemoveMemberResponse,
)
from .user import UserSummaryResponse

__all__ = [
    # Project member schemas
    "DenialDetail",
    "MemberAffordanceResponse",
    "ProjectMemberCount",
    "ProjectMemberCreate",
    "ProjectMemberRole",
    "ProjectMemberUpdate",
    "ProjectMemberWithUser",
    "RemoveMemberResponse",
    # User schemas
    "UserSummaryResponse",
]
