"""
Membership policy engine.

Pure functions deciding whether a proposed change to a project roster is
allowed. Nothing here touches storage; every decision is computed from the
roster snapshot passed in, so the same call can drive both the UI (button
disable state) and server-side validation.

Rules:
- A roster that has members always keeps at least one Admin.
- The sole Admin cannot be demoted to Member (SoleAdminDemotion).
- The sole Admin cannot be removed (SoleAdminRemoval), including when they
  are the last member of the project.
- The project lead can only be removed if another member can take over the
  lead designation (LeadReassignmentUnavailable).
- Only Admins may change the roster (Unauthorized).
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional
from uuid import UUID

from ..schemas.project_member import ProjectMemberRole
from .roster import Member, Roster


class ReasonCode(str, Enum):
    """Stable, machine-readable codes explaining a rejected operation."""

    ALREADY_MEMBER = "AlreadyMember"
    SOLE_ADMIN_DEMOTION = "SoleAdminDemotion"
    SOLE_ADMIN_REMOVAL = "SoleAdminRemoval"
    LEAD_REASSIGNMENT_UNAVAILABLE = "LeadReassignmentUnavailable"
    MEMBER_NOT_FOUND = "MemberNotFound"
    STALE = "Stale"
    UNAUTHORIZED = "Unauthorized"
    USER_NOT_FOUND = "UserNotFound"
    QUERY_TOO_SHORT = "QueryTooShort"


REASON_MESSAGES = {
    ReasonCode.ALREADY_MEMBER: "User is already a member of this project.",
    ReasonCode.SOLE_ADMIN_DEMOTION: (
        "Cannot demote the sole Project Admin. Promote another member to Admin first."
    ),
    ReasonCode.SOLE_ADMIN_REMOVAL: (
        "Cannot remove the sole Project Admin. Promote another member to Admin first."
    ),
    ReasonCode.LEAD_REASSIGNMENT_UNAVAILABLE: (
        "Cannot remove the Project Lead: no other member is available to take over as lead."
    ),
    ReasonCode.MEMBER_NOT_FOUND: "Member not found in this project.",
    ReasonCode.STALE: (
        "The member list changed since it was loaded. Refresh and try again."
    ),
    ReasonCode.UNAUTHORIZED: "You must be a Project Admin to manage members.",
    ReasonCode.USER_NOT_FOUND: "User not found.",
    ReasonCode.QUERY_TOO_SHORT: "Search query is too short.",
}


@dataclass(frozen=True)
class Denial:
    """A rejected operation: reason code plus human-readable message."""

    reason: ReasonCode
    message: str

    @classmethod
    def of(cls, reason: ReasonCode, message: Optional[str] = None) -> "Denial":
        return cls(reason=reason, message=message or REASON_MESSAGES[reason])


@dataclass(frozen=True)
class Decision:
    """Outcome of a policy check."""

    allowed: bool
    denial: Optional[Denial] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: ReasonCode, message: Optional[str] = None) -> "Decision":
        return cls(allowed=False, denial=Denial.of(reason, message))

    @property
    def reason(self) -> Optional[ReasonCode]:
        return self.denial.reason if self.denial else None

    def __bool__(self) -> bool:
        return self.allowed


def admin_count(roster: Roster) -> int:
    """Number of Admins in the roster."""
    return sum(1 for member in roster if member.is_admin)


def is_sole_admin(roster: Roster, member: Member) -> bool:
    """True if member is an Admin and no other Admin exists."""
    return member.is_admin and admin_count(roster) == 1


def is_project_admin(roster: Roster, user_id: Optional[UUID]) -> bool:
    """True if user_id belongs to an Admin of this roster."""
    if user_id is None:
        return False
    member = roster.find_by_user(user_id)
    return member is not None and member.is_admin


def lead_successor(roster: Roster, membership_id: UUID) -> Optional[Member]:
    """
    Pick who takes over the lead designation if membership_id leaves.

    Prefers the earliest-added other Admin, then the earliest-added other
    member. Returns None when nobody else is on the roster.
    """
    others = [m for m in roster if m.membership_id != membership_id]
    for member in others:
        if member.is_admin:
            return member
    return others[0] if others else None


def can_change_role(
    roster: Roster,
    membership_id: UUID,
    new_role: ProjectMemberRole,
) -> Decision:
    """
    Decide whether a member's role may be changed to new_role.

    Setting a member to the role they already have is always allowed.
    """
    new_role = ProjectMemberRole(new_role)
    member = roster.find(membership_id)
    if member is None:
        return Decision.deny(ReasonCode.MEMBER_NOT_FOUND)

    if new_role == ProjectMemberRole.MEMBER and is_sole_admin(roster, member):
        return Decision.deny(ReasonCode.SOLE_ADMIN_DEMOTION)

    return Decision.allow()


def can_remove(roster: Roster, membership_id: UUID) -> Decision:
    """Decide whether a member may be removed from the roster."""
    member = roster.find(membership_id)
    if member is None:
        return Decision.deny(ReasonCode.MEMBER_NOT_FOUND)

    if is_sole_admin(roster, member):
        return Decision.deny(ReasonCode.SOLE_ADMIN_REMOVAL)

    if (
        roster.lead_user_id is not None
        and member.user_id == roster.lead_user_id
        and lead_successor(roster, membership_id) is None
    ):
        return Decision.deny(ReasonCode.LEAD_REASSIGNMENT_UNAVAILABLE)

    return Decision.allow()


@dataclass(frozen=True)
class MemberAffordance:
    """Which controls the caller may use on one member."""

    member: Member
    change_role: Decision
    remove: Decision


def _other_role(role: ProjectMemberRole) -> ProjectMemberRole:
    if role == ProjectMemberRole.ADMIN:
        return ProjectMemberRole.MEMBER
    return ProjectMemberRole.ADMIN


def member_affordances(roster: Roster, caller_user_id: Optional[UUID]) -> List[MemberAffordance]:
    """
    Compute role-change and removal permissions for every member.

    Non-admin callers get Unauthorized for everything, without any
    roster-specific reason.
    """
    if not is_project_admin(roster, caller_user_id):
        forbidden = Decision.deny(ReasonCode.UNAUTHORIZED)
        return [MemberAffordance(member, forbidden, forbidden) for member in roster]

    return [
        MemberAffordance(
            member=member,
            change_role=can_change_role(roster, member.membership_id, _other_role(member.role)),
            remove=can_remove(roster, member.membership_id),
        )
        for member in roster
    ]
