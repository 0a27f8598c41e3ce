"""
Mutation coordinator for project rosters.

Validate-then-apply for each roster mutation. Every function takes a roster
snapshot and returns a MutationResult: either a new roster with the change
applied, or the untouched input roster plus the denial explaining why the
change was rejected. Inputs are never modified, so there is no partially
applied state to observe.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from ..schemas.project_member import ProjectMemberRole
from .membership_policy import Decision, Denial, ReasonCode, can_change_role, can_remove, lead_successor
from .roster import Member, Roster, UserSummary, utcnow


@dataclass(frozen=True)
class MutationResult:
    """
    Outcome of a roster mutation.

    Attributes:
        roster: The resulting roster (the input roster when denied)
        member: The member that was added, changed or removed
        denial: Why the mutation was rejected, None when it was applied
    """

    roster: Roster
    member: Optional[Member] = None
    denial: Optional[Denial] = None

    @property
    def applied(self) -> bool:
        return self.denial is None

    @classmethod
    def denied(cls, roster: Roster, denial: Denial) -> "MutationResult":
        return cls(roster=roster, denial=denial)


def add_member(
    roster: Roster,
    candidate: UserSummary,
    role: ProjectMemberRole = ProjectMemberRole.MEMBER,
    now: Optional[datetime] = None,
) -> MutationResult:
    """
    Append a new member for candidate.

    The first member of an empty roster always becomes an Admin so the
    roster never exists without one.
    """
    if roster.has_user(candidate.user_id):
        return MutationResult.denied(roster, Denial.of(ReasonCode.ALREADY_MEMBER))

    now = now or utcnow()
    role = ProjectMemberRole(role)
    if roster.is_empty:
        role = ProjectMemberRole.ADMIN

    member = Member(
        membership_id=uuid.uuid4(),
        user_id=candidate.user_id,
        project_id=roster.project_id,
        role=role,
        user=candidate,
        created_at=now,
        updated_at=now,
    )
    return MutationResult(roster=roster.with_members(roster.members + (member,)), member=member)


def change_role(
    roster: Roster,
    membership_id: UUID,
    new_role: ProjectMemberRole,
    now: Optional[datetime] = None,
) -> MutationResult:
    """Set a member's role, refusing to demote the sole Admin."""
    new_role = ProjectMemberRole(new_role)
    decision: Decision = can_change_role(roster, membership_id, new_role)
    if not decision.allowed:
        return MutationResult.denied(roster, decision.denial)

    current = roster.find(membership_id)
    # No change needed
    if current.role == new_role:
        return MutationResult(roster=roster, member=current)

    updated = Member(
        membership_id=current.membership_id,
        user_id=current.user_id,
        project_id=current.project_id,
        role=new_role,
        user=current.user,
        created_at=current.created_at,
        updated_at=now or utcnow(),
    )
    members = tuple(updated if m.membership_id == membership_id else m for m in roster.members)
    return MutationResult(roster=roster.with_members(members), member=updated)


def remove_member(roster: Roster, membership_id: UUID) -> MutationResult:
    """
    Drop a member from the roster.

    Removing the project lead hands the lead designation to the member
    picked by lead_successor.
    """
    decision = can_remove(roster, membership_id)
    if not decision.allowed:
        return MutationResult.denied(roster, decision.denial)

    removed = roster.find(membership_id)
    remaining = tuple(m for m in roster.members if m.membership_id != membership_id)

    lead_user_id = roster.lead_user_id
    if lead_user_id is not None and lead_user_id == removed.user_id:
        lead_user_id = lead_successor(roster, membership_id).user_id

    return MutationResult(
        roster=roster.with_members(remaining, lead_user_id=lead_user_id),
        member=removed,
    )
