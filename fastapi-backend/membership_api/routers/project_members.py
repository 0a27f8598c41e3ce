"""Project Members API endpoints.

Provides the "Members" settings tab of a project: list members, search for
users to add, add members, change roles and remove members.

Access Control:
- List members / affordances: any member of the project
- Search candidates, add, change role, remove: Project Admins only

Project Member Roles:
- Admin: Can manage project members
- Member: Cannot manage members

Every rejected operation answers with a stable reason code:
    {"detail": {"reason": "SoleAdminRemoval", "message": "..."}}
"""

from typing import Annotated, List, NoReturn
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.project_member import (
    DenialDetail,
    MemberAffordanceResponse,
    ProjectMemberCount,
    ProjectMemberCreate,
    ProjectMemberUpdate,
    ProjectMemberWithUser,
    RemoveMemberResponse,
)
from ..schemas.user import UserSummaryResponse
from ..services.auth_service import get_current_user
from ..services.directory_search import QueryTooShortError
from ..services.membership_policy import Denial, ReasonCode, admin_count
from ..services.membership_service import MembershipService, build_membership_service
from ..services.membership_store import MembershipStore, get_membership_store
from ..services.roster import Member, UserSummary
from ..services.roster_repository import SqlRosterRepository
from ..services.user_directory import SqlUserDirectory

router = APIRouter(prefix="/api/projects/{project_id}/members", tags=["Project Members"])


DENIAL_STATUS_CODES = {
    ReasonCode.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ReasonCode.MEMBER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ReasonCode.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ReasonCode.ALREADY_MEMBER: status.HTTP_409_CONFLICT,
    ReasonCode.STALE: status.HTTP_409_CONFLICT,
    ReasonCode.SOLE_ADMIN_DEMOTION: status.HTTP_400_BAD_REQUEST,
    ReasonCode.SOLE_ADMIN_REMOVAL: status.HTTP_400_BAD_REQUEST,
    ReasonCode.LEAD_REASSIGNMENT_UNAVAILABLE: status.HTTP_400_BAD_REQUEST,
    ReasonCode.QUERY_TOO_SHORT: status.HTTP_422_UNPROCESSABLE_ENTITY,
}

DENIAL_RESPONSES = {
    401: {"description": "Not authenticated"},
    403: {"model": DenialDetail, "description": "Caller is not allowed (Unauthorized)"},
}


# ============================================================================
# Helper Functions
# ============================================================================


def raise_denial(denial: Denial) -> NoReturn:
    """Translate a policy denial into an HTTP error carrying its reason code."""
    raise HTTPException(
        status_code=DENIAL_STATUS_CODES[denial.reason],
        detail={"reason": denial.reason.value, "message": denial.message},
    )


def forbidden() -> NoReturn:
    raise_denial(Denial.of(ReasonCode.UNAUTHORIZED))


def get_membership_service(
    db: AsyncSession = Depends(get_db),
    store: MembershipStore = Depends(get_membership_store),
) -> MembershipService:
    """Build a MembershipService over the request's database session."""
    return build_membership_service(SqlRosterRepository(db), SqlUserDirectory(db), store)


def to_user_response(user: UserSummary) -> UserSummaryResponse:
    return UserSummaryResponse(
        user_id=user.user_id,
        first_name=user.first_name,
        last_name=user.last_name,
        avatar_url=user.avatar_url,
        email=user.email,
    )


def to_member_response(member: Member) -> ProjectMemberWithUser:
    return ProjectMemberWithUser(
        id=member.membership_id,
        project_id=member.project_id,
        user_id=member.user_id,
        role=member.role,
        user=to_user_response(member.user) if member.user else None,
        created_at=member.created_at,
        updated_at=member.updated_at,
    )


# ============================================================================
# List endpoints
# ============================================================================


@router.get(
    "",
    response_model=List[ProjectMemberWithUser],
    summary="List project members",
    description="Get all members of a project, oldest first.",
    responses=DENIAL_RESPONSES,
)
async def list_project_members(
    project_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    service: MembershipService = Depends(get_membership_service),
) -> List[ProjectMemberWithUser]:
    """List members of a project with their user details."""
    roster = await service.get_roster(project_id, current_user.id)
    if roster is None:
        forbidden()
    return [to_member_response(member) for member in roster]


@router.get(
    "/count",
    response_model=ProjectMemberCount,
    summary="Get project member count",
    responses=DENIAL_RESPONSES,
)
async def get_project_member_count(
    project_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    service: MembershipService = Depends(get_membership_service),
) -> ProjectMemberCount:
    """Get total and Admin member counts for a project."""
    roster = await service.get_roster(project_id, current_user.id)
    if roster is None:
        forbidden()
    return ProjectMemberCount(total=len(roster), admins=admin_count(roster))


@router.get(
    "/affordances",
    response_model=List[MemberAffordanceResponse],
    summary="Get allowed member actions",
    description=(
        "For each member, whether the caller may change their role or remove them. "
        "Uses the same rules the mutation endpoints enforce."
    ),
    responses=DENIAL_RESPONSES,
)
async def list_member_affordances(
    project_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    service: MembershipService = Depends(get_membership_service),
) -> List[MemberAffordanceResponse]:
    """Role-change and removal permissions for every member."""
    affordances = await service.get_affordances(project_id, current_user.id)
    if affordances is None:
        forbidden()
    return [
        MemberAffordanceResponse(
            membership_id=item.member.membership_id,
            user_id=item.member.user_id,
            role=item.member.role,
            can_change_role=item.change_role.allowed,
            change_role_reason=item.change_role.reason.value if item.change_role.reason else None,
            can_remove=item.remove.allowed,
            remove_reason=item.remove.reason.value if item.remove.reason else None,
        )
        for item in affordances
    ]


@router.get(
    "/candidates",
    response_model=List[UserSummaryResponse],
    summary="Search users to add",
    description="Search the user directory, excluding users who are already members.",
    responses={
        **DENIAL_RESPONSES,
        422: {"model": DenialDetail, "description": "Query shorter than the minimum length (QueryTooShort)"},
    },
)
async def search_member_candidates(
    project_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    query: str = Query(..., description="Name or email to search for (partial match)"),
    service: MembershipService = Depends(get_membership_service),
) -> List[UserSummaryResponse]:
    """Directory search for the add-member picker."""
    try:
        candidates = await service.search_candidates(project_id, current_user.id, query)
    except QueryTooShortError as e:
        raise_denial(Denial.of(ReasonCode.QUERY_TOO_SHORT, str(e)))
    if candidates is None:
        forbidden()
    return [to_user_response(user) for user in candidates]


# ============================================================================
# Add/Remove/Update member endpoints (Project Admins)
# ============================================================================


@router.post(
    "",
    response_model=ProjectMemberWithUser,
    status_code=status.HTTP_201_CREATED,
    summary="Add a project member",
    responses={
        **DENIAL_RESPONSES,
        404: {"model": DenialDetail, "description": "User not found (UserNotFound)"},
        409: {"model": DenialDetail, "description": "User is already a member (AlreadyMember) or Stale"},
    },
)
async def add_project_member(
    project_id: UUID,
    member_data: ProjectMemberCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    service: MembershipService = Depends(get_membership_service),
) -> ProjectMemberWithUser:
    """Add a user to the project. The role defaults to Member."""
    result = await service.add_member(
        project_id, current_user.id, member_data.user_id, member_data.role
    )
    if not result.applied:
        raise_denial(result.denial)
    return to_member_response(result.member)


@router.patch(
    "/{membership_id}",
    response_model=ProjectMemberWithUser,
    summary="Change a project member's role",
    responses={
        **DENIAL_RESPONSES,
        400: {"model": DenialDetail, "description": "Cannot demote the sole Admin (SoleAdminDemotion)"},
        404: {"model": DenialDetail, "description": "Member not found (MemberNotFound)"},
        409: {"model": DenialDetail, "description": "Roster changed concurrently (Stale)"},
    },
)
async def change_project_member_role(
    project_id: UUID,
    membership_id: UUID,
    role_data: ProjectMemberUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    service: MembershipService = Depends(get_membership_service),
) -> ProjectMemberWithUser:
    """Change a member's role (Admin or Member)."""
    result = await service.change_role(
        project_id, current_user.id, membership_id, role_data.role
    )
    if not result.applied:
        raise_denial(result.denial)
    return to_member_response(result.member)


@router.delete(
    "/{membership_id}",
    response_model=RemoveMemberResponse,
    summary="Remove a project member",
    responses={
        **DENIAL_RESPONSES,
        400: {
            "model": DenialDetail,
            "description": "Sole Admin (SoleAdminRemoval) or lead without successor (LeadReassignmentUnavailable)",
        },
        404: {"model": DenialDetail, "description": "Member not found (MemberNotFound)"},
        409: {"model": DenialDetail, "description": "Roster changed concurrently (Stale)"},
    },
)
async def remove_project_member(
    project_id: UUID,
    membership_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    service: MembershipService = Depends(get_membership_service),
) -> RemoveMemberResponse:
    """Remove a member. Admins may remove themselves unless they are the sole Admin."""
    result = await service.remove_member(project_id, current_user.id, membership_id)
    if not result.applied:
        raise_denial(result.denial)
    return RemoveMemberResponse(
        membership_id=membership_id,
        lead_user_id=result.roster.lead_user_id,
    )
