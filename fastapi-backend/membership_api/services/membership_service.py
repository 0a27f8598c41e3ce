"""Membership service: the caller-facing entry point for roster changes.

For each mutation the service:
1. takes the project's single-writer lock from the store,
2. fetches the durable roster and places it in the store,
3. checks the caller is a Project Admin (before looking at anything else),
4. runs the mutation coordinator against the stored snapshot,
5. persists the result with a compare-and-swap on the roster version,
6. commits, still holding the lock,
7. puts the committed roster back in the store.

Reads fetch straight from the repository and never write the store.

Policy denials come back inside the MutationResult. A version conflict is
reported as a Stale denial after refreshing the store; it is never retried
here. Anything else the collaborators raise (database errors, timeouts)
propagates unchanged.
"""

import asyncio
import logging
from typing import Awaitable, List, Optional, TypeVar
from uuid import UUID

from ..config import settings
from ..schemas.project_member import ProjectMemberRole
from . import membership_coordinator as coordinator
from .directory_search import DirectorySearch, UserDirectory
from .membership_coordinator import MutationResult
from .membership_policy import (
    Denial,
    MemberAffordance,
    ReasonCode,
    is_project_admin,
    member_affordances,
)
from .membership_store import MembershipStore
from .roster import Roster, UserSummary
from .roster_repository import RosterRepository, VersionConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MembershipService:
    """
    Orchestrates roster reads and mutations for one request.

    All collaborators are passed in; the service keeps no identity or roster
    of its own beyond what it writes to the store.
    """

    def __init__(
        self,
        repository: RosterRepository,
        directory: UserDirectory,
        store: MembershipStore,
        timeout: Optional[float] = None,
        search_min_query_length: int = 2,
        search_limit: int = 20,
    ):
        """
        Initialize the MembershipService.

        Args:
            repository: Durable roster storage
            directory: User directory for the add-member picker
            store: Process-wide roster store
            timeout: Seconds allowed per collaborator call, None for no limit
            search_min_query_length: Minimum picker query length
            search_limit: Maximum raw directory results per search
        """
        self.repository = repository
        self.store = store
        self.timeout = timeout
        self.search = DirectorySearch(
            directory,
            min_query_length=search_min_query_length,
            limit=search_limit,
            timeout=timeout,
        )

    async def _call(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, self.timeout)

    async def _fetch(self, project_id: UUID) -> Roster:
        return await self._call(self.repository.fetch_roster(project_id))

    async def _refresh(self, project_id: UUID) -> Roster:
        # Only called with the project lock held
        roster = await self._fetch(project_id)
        self.store.replace(project_id, roster)
        return roster

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_roster(self, project_id: UUID, caller_user_id: UUID) -> Optional[Roster]:
        """
        Load a project's roster for a caller.

        Any member of the project may read the roster. Returns None for
        everyone else, including callers asking about unknown projects.
        Reads take no lock and leave the store alone.
        """
        roster = await self._fetch(project_id)
        if not roster.has_user(caller_user_id):
            return None
        return roster

    async def get_affordances(
        self, project_id: UUID, caller_user_id: UUID
    ) -> Optional[List[MemberAffordance]]:
        """
        Per-member role-change/removal permissions for the caller.

        Returns None when the caller is not a member of the project.
        """
        roster = await self.get_roster(project_id, caller_user_id)
        if roster is None:
            return None
        return member_affordances(roster, caller_user_id)

    async def search_candidates(
        self, project_id: UUID, caller_user_id: UUID, query: str
    ) -> Optional[List[UserSummary]]:
        """
        Users matching query who are not yet members.

        Returns None when the caller is not a Project Admin, whatever the
        query.

        Raises:
            QueryTooShortError: If an Admin's query is below the minimum length
        """
        roster = await self._fetch(project_id)
        if not is_project_admin(roster, caller_user_id):
            return None
        return await self.search.search(query, roster)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def _load_for_mutation(self, project_id: UUID, caller_user_id: UUID) -> MutationResult:
        roster = await self._refresh(project_id)
        if not is_project_admin(roster, caller_user_id):
            logger.info(
                f"Rejected membership change on project {project_id} by {caller_user_id}: "
                f"{ReasonCode.UNAUTHORIZED.value}"
            )
            return MutationResult.denied(roster, Denial.of(ReasonCode.UNAUTHORIZED))
        return MutationResult(roster=self.store.get(project_id))

    async def _commit(self, action: str, before: Roster, result: MutationResult) -> MutationResult:
        project_id = before.project_id
        if not result.applied:
            logger.info(
                f"Denied {action} on project {project_id}: {result.denial.reason.value}"
            )
            return result
        if result.roster is before:
            return result

        try:
            saved = await self._call(
                self.repository.persist(project_id, result.roster, before.version)
            )
        except VersionConflictError as e:
            logger.warning(f"Stale {action} on project {project_id}: {e}")
            refreshed = await self._refresh(project_id)
            return MutationResult.denied(refreshed, Denial.of(ReasonCode.STALE))

        # Durable before the lock is released or the store is updated
        await self._call(self.repository.commit())
        self.store.replace(project_id, saved)
        member = result.member
        if member is not None:
            member = saved.find(member.membership_id) or member
        logger.info(
            f"Applied {action} on project {project_id} "
            f"(member {member.membership_id if member else None}, version {saved.version})"
        )
        return MutationResult(roster=saved, member=member)

    async def add_member(
        self,
        project_id: UUID,
        caller_user_id: UUID,
        user_id: UUID,
        role: ProjectMemberRole = ProjectMemberRole.MEMBER,
    ) -> MutationResult:
        """Add user_id to the project with the given role (Member by default)."""
        async with self.store.lock(project_id):
            loaded = await self._load_for_mutation(project_id, caller_user_id)
            if not loaded.applied:
                return loaded
            roster = loaded.roster

            candidate = await self._call(self.repository.get_user(user_id))
            if candidate is None:
                return MutationResult.denied(roster, Denial.of(ReasonCode.USER_NOT_FOUND))

            result = coordinator.add_member(roster, candidate, role)
            return await self._commit("add_member", roster, result)

    async def change_role(
        self,
        project_id: UUID,
        caller_user_id: UUID,
        membership_id: UUID,
        new_role: ProjectMemberRole,
    ) -> MutationResult:
        """Change a member's role."""
        async with self.store.lock(project_id):
            loaded = await self._load_for_mutation(project_id, caller_user_id)
            if not loaded.applied:
                return loaded
            roster = loaded.roster

            result = coordinator.change_role(roster, membership_id, new_role)
            return await self._commit("change_role", roster, result)

    async def remove_member(
        self,
        project_id: UUID,
        caller_user_id: UUID,
        membership_id: UUID,
    ) -> MutationResult:
        """Remove a member from the project. Admins may remove themselves."""
        async with self.store.lock(project_id):
            loaded = await self._load_for_mutation(project_id, caller_user_id)
            if not loaded.applied:
                return loaded
            roster = loaded.roster

            result = coordinator.remove_member(roster, membership_id)
            return await self._commit("remove_member", roster, result)


def build_membership_service(
    repository: RosterRepository,
    directory: UserDirectory,
    store: MembershipStore,
) -> MembershipService:
    """Create a MembershipService configured from settings."""
    return MembershipService(
        repository,
        directory,
        store,
        timeout=settings.collaborator_timeout_seconds,
        search_min_query_length=settings.search_min_query_length,
        search_limit=settings.search_result_limit,
    )
