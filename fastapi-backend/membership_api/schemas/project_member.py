"""Pydantic schemas for ProjectMember request/response validation."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .user import UserSummaryResponse


class ProjectMemberRole(str, Enum):
    """Enum for project member roles.

    - ADMIN: Can manage project members
    - MEMBER: Regular project member, cannot manage members
    """

    ADMIN = "Admin"
    MEMBER = "Member"


class ProjectMemberBase(BaseModel):
    """Base schema with common project member fields."""

    user_id: UUID = Field(
        ...,
        description="ID of the user being added as a project member",
    )


class ProjectMemberCreate(ProjectMemberBase):
    """Schema for adding a user to a project."""

    role: ProjectMemberRole = Field(
        ProjectMemberRole.MEMBER,
        description="Initial role of the member (Admin or Member)",
    )


class ProjectMemberUpdate(BaseModel):
    """Schema for changing a project member's role."""

    role: ProjectMemberRole = Field(
        ...,
        description="New role for the member (Admin or Member)",
    )


class ProjectMemberWithUser(BaseModel):
    """Schema for project member response with nested user info."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(
        ...,
        description="Membership record ID (not the user ID)",
    )
    project_id: UUID = Field(
        ...,
        description="ID of the project",
    )
    user_id: UUID = Field(
        ...,
        description="ID of the member user",
    )
    role: ProjectMemberRole = Field(
        ...,
        description="Role of the member (Admin or Member)",
    )
    user: Optional[UserSummaryResponse] = Field(
        None,
        description="User details of the member",
    )
    created_at: datetime = Field(
        ...,
        description="When the membership was created",
    )
    updated_at: datetime = Field(
        ...,
        description="When the membership was last updated",
    )

    @computed_field
    @property
    def user_display_name(self) -> Optional[str]:
        """User display name."""
        return self.user.display_name if self.user else None


class ProjectMemberCount(BaseModel):
    """Member totals for a project."""

    total: int = Field(..., ge=0, description="Number of project members")
    admins: int = Field(..., ge=0, description="Number of members with the Admin role")


class MemberAffordanceResponse(BaseModel):
    """What the caller may do to one member, for driving UI controls."""

    membership_id: UUID
    user_id: UUID
    role: ProjectMemberRole
    can_change_role: bool = Field(
        ...,
        description="Whether the role select can switch this member to the other role",
    )
    change_role_reason: Optional[str] = Field(
        None,
        description="Reason code when the role change is not allowed",
    )
    can_remove: bool = Field(
        ...,
        description="Whether the remove button is enabled for this member",
    )
    remove_reason: Optional[str] = Field(
        None,
        description="Reason code when removal is not allowed",
    )


class RemoveMemberResponse(BaseModel):
    """Result of a successful member removal."""

    message: str = "Member removed"
    membership_id: UUID
    lead_user_id: Optional[UUID] = Field(
        None,
        description="Project lead after the removal",
    )


class DenialDetail(BaseModel):
    """Error payload for a rejected membership operation."""

    reason: str = Field(..., description="Stable machine-readable reason code")
    message: str = Field(..., description="Human-readable explanation")
