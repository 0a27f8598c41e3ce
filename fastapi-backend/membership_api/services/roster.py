"""
Roster data model used by the membership policy engine.

A Roster is an immutable snapshot of one project's members. Every mutation
produces a new Roster, so a snapshot handed to the policy engine can never
change underneath it.
"""

import dataclasses
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import FrozenSet, Iterable, Iterator, Optional, Tuple
from uuid import UUID

from ..schemas.project_member import ProjectMemberRole


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class UserSummary:
    """Read-only user details supplied by the directory."""

    user_id: UUID
    first_name: str
    last_name: str
    avatar_url: Optional[str] = None
    email: Optional[str] = None

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or (self.email or "")


@dataclass(frozen=True)
class Member:
    """
    One membership record in a project's roster.

    Attributes:
        membership_id: Identifier of the membership record (not the user id)
        user_id: The member user's id
        project_id: The project the membership belongs to
        role: Admin or Member
        user: User details, if known
        created_at: When the user was added
        updated_at: When the membership last changed
    """

    membership_id: UUID
    user_id: UUID
    project_id: UUID
    role: ProjectMemberRole
    user: Optional[UserSummary]
    created_at: datetime
    updated_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == ProjectMemberRole.ADMIN


_UNSET = object()


@dataclass(frozen=True)
class Roster:
    """
    Immutable snapshot of a project's members, oldest first.

    Attributes:
        project_id: The project owning the roster
        members: Members in the order they were added
        version: Persisted version the snapshot was read at
        lead_user_id: User holding the "project lead" designation, if any
    """

    project_id: UUID
    members: Tuple[Member, ...] = ()
    version: int = 0
    lead_user_id: Optional[UUID] = None

    @classmethod
    def empty(cls, project_id: UUID) -> "Roster":
        """Create a roster with no members."""
        return cls(project_id=project_id)

    def __iter__(self) -> Iterator[Member]:
        return iter(self.members)

    def __len__(self) -> int:
        return len(self.members)

    @property
    def is_empty(self) -> bool:
        return not self.members

    def find(self, membership_id: UUID) -> Optional[Member]:
        """Look up a member by membership id."""
        for member in self.members:
            if member.membership_id == membership_id:
                return member
        return None

    def find_by_user(self, user_id: UUID) -> Optional[Member]:
        """Look up a member by user id."""
        for member in self.members:
            if member.user_id == user_id:
                return member
        return None

    def has_user(self, user_id: UUID) -> bool:
        return self.find_by_user(user_id) is not None

    def user_ids(self) -> FrozenSet[UUID]:
        return frozenset(member.user_id for member in self.members)

    def admins(self) -> Tuple[Member, ...]:
        return tuple(member for member in self.members if member.is_admin)

    def with_members(self, members: Iterable[Member], lead_user_id=_UNSET) -> "Roster":
        """
        Return a copy holding the given members.

        The version is carried over unchanged; only persistence bumps it.
        The lead designation is kept unless lead_user_id is passed.
        """
        changes = {"members": tuple(members)}
        if lead_user_id is not _UNSET:
            changes["lead_user_id"] = lead_user_id
        return dataclasses.replace(self, **changes)

    def with_version(self, version: int) -> "Roster":
        return dataclasses.replace(self, version=version)
