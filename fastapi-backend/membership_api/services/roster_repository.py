"""Durable roster storage.

Two implementations of the same contract:
- SqlRosterRepository: Projects/ProjectMembers/Users tables via an
  AsyncSession. This is what the API uses.
- InMemoryRosterRepository: dictionaries, for tools and tests.

persist() is a compare-and-swap on the roster version: it only writes when
the stored version still equals the version the caller read, and raises
VersionConflictError otherwise.
"""

import logging
from typing import Dict, Iterable, List, Optional, Protocol
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.project import Project
from ..models.project_member import ProjectMember
from ..models.user import User
from ..schemas.project_member import ProjectMemberRole
from .roster import Member, Roster, UserSummary

logger = logging.getLogger(__name__)


class VersionConflictError(Exception):
    """Raised when the stored roster changed since the caller read it."""

    def __init__(self, project_id: UUID, expected_version: int, actual_version: Optional[int]):
        self.project_id = project_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Roster for project {project_id} is at version {actual_version}, "
            f"expected {expected_version}"
        )


class RosterRepository(Protocol):
    """Persistence collaborator for project rosters."""

    async def fetch_roster(self, project_id: UUID) -> Roster:
        ...

    async def persist(self, project_id: UUID, roster: Roster, expected_version: int) -> Roster:
        ...

    async def get_user(self, user_id: UUID) -> Optional[UserSummary]:
        ...

    async def commit(self) -> None:
        ...


def user_summary_from_model(user: User) -> UserSummary:
    """Convert a User row to the read-only summary used by the engine."""
    return UserSummary(
        user_id=user.id,
        first_name=user.first_name or "",
        last_name=user.last_name or "",
        avatar_url=user.avatar_url,
        email=user.email,
    )


def member_from_model(row: ProjectMember) -> Member:
    """Convert a ProjectMember row (with user loaded) to a roster Member."""
    return Member(
        membership_id=row.id,
        user_id=row.user_id,
        project_id=row.project_id,
        role=ProjectMemberRole(row.role),
        user=user_summary_from_model(row.user) if row.user else None,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlRosterRepository:
    """
    Roster repository backed by the relational database.

    Uses the caller's session. persist() only flushes; the membership
    service calls commit() before it releases the project lock.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the SqlRosterRepository.

        Args:
            db: SQLAlchemy async database session
        """
        self.db = db

    async def fetch_roster(self, project_id: UUID) -> Roster:
        """
        Load the roster of a project, oldest member first.

        Unknown projects yield an empty roster at version 0.
        """
        result = await self.db.execute(
            select(Project.roster_version, Project.lead_user_id).where(Project.id == project_id)
        )
        project_row = result.one_or_none()
        if project_row is None:
            return Roster.empty(project_id)

        result = await self.db.execute(
            select(ProjectMember)
            .where(ProjectMember.project_id == project_id)
            .order_by(ProjectMember.created_at.asc(), ProjectMember.id.asc())
            .execution_options(populate_existing=True)
        )
        rows = result.unique().scalars().all()

        return Roster(
            project_id=project_id,
            members=tuple(member_from_model(row) for row in rows),
            version=project_row.roster_version,
            lead_user_id=project_row.lead_user_id,
        )

    async def persist(self, project_id: UUID, roster: Roster, expected_version: int) -> Roster:
        """
        Write roster as the new state of the project.

        Args:
            project_id: The project's UUID
            roster: The roster to store
            expected_version: Version the roster was derived from

        Returns:
            The stored roster carrying its new version

        Raises:
            VersionConflictError: If another writer got there first
        """
        new_version = expected_version + 1
        result = await self.db.execute(
            update(Project)
            .where(
                Project.id == project_id,
                Project.roster_version == expected_version,
            )
            .values(roster_version=new_version, lead_user_id=roster.lead_user_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            actual = await self.db.scalar(
                select(Project.roster_version).where(Project.id == project_id)
            )
            raise VersionConflictError(project_id, expected_version, actual)

        result = await self.db.execute(
            select(ProjectMember).where(ProjectMember.project_id == project_id)
        )
        existing: Dict[UUID, ProjectMember] = {
            row.id: row for row in result.unique().scalars().all()
        }
        desired: Dict[UUID, Member] = {m.membership_id: m for m in roster}

        for membership_id, row in existing.items():
            if membership_id not in desired:
                await self.db.delete(row)

        for membership_id, member in desired.items():
            row = existing.get(membership_id)
            if row is None:
                self.db.add(ProjectMember(
                    id=member.membership_id,
                    project_id=project_id,
                    user_id=member.user_id,
                    role=member.role.value,
                    created_at=member.created_at,
                    updated_at=member.updated_at,
                ))
            elif row.role != member.role.value:
                row.role = member.role.value
                row.updated_at = member.updated_at

        await self.db.flush()
        logger.debug(f"Persisted roster for project {project_id} at version {new_version}")
        return roster.with_version(new_version)

    async def get_user(self, user_id: UUID) -> Optional[UserSummary]:
        """Get a user's summary by id, or None if the user does not exist."""
        user = await self.db.get(User, user_id)
        return user_summary_from_model(user) if user else None

    async def commit(self) -> None:
        """
        Commit the session's transaction.

        The service calls this while it still holds the project lock, so
        the next writer reads the committed version.
        """
        await self.db.commit()


class InMemoryRosterRepository:
    """Roster repository keeping everything in dictionaries."""

    def __init__(
        self,
        users: Iterable[UserSummary] = (),
        rosters: Iterable[Roster] = (),
    ):
        self._users: Dict[UUID, UserSummary] = {user.user_id: user for user in users}
        self._rosters: Dict[UUID, Roster] = {roster.project_id: roster for roster in rosters}
        self.persist_calls: List[UUID] = []
        self.commit_count = 0

    def add_user(self, user: UserSummary) -> None:
        self._users[user.user_id] = user

    def put_roster(self, roster: Roster) -> None:
        """Overwrite the stored roster, bypassing the version check."""
        self._rosters[roster.project_id] = roster

    async def fetch_roster(self, project_id: UUID) -> Roster:
        return self._rosters.get(project_id) or Roster.empty(project_id)

    async def persist(self, project_id: UUID, roster: Roster, expected_version: int) -> Roster:
        current = self._rosters.get(project_id) or Roster.empty(project_id)
        if current.version != expected_version:
            raise VersionConflictError(project_id, expected_version, current.version)
        stored = roster.with_version(expected_version + 1)
        self._rosters[project_id] = stored
        self.persist_calls.append(project_id)
        return stored

    async def get_user(self, user_id: UUID) -> Optional[UserSummary]:
        return self._users.get(user_id)

    async def commit(self) -> None:
        self.commit_count += 1
