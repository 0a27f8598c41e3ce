"""In-memory roster store keyed by project.

Holds the roster snapshot the policy engine evaluates against, plus one
asyncio lock per project so mutations for a project run one at a time
within this process. The durable copy lives in the database; this store is
refreshed from it on every mutation.
"""

import asyncio
import weakref
from typing import Dict, MutableMapping
from uuid import UUID

from .roster import Roster


class MembershipStore:
    """Pure data holder for the current roster of each project."""

    def __init__(self) -> None:
        self._rosters: Dict[UUID, Roster] = {}
        self._locks: MutableMapping[UUID, asyncio.Lock] = weakref.WeakValueDictionary()

    def get(self, project_id: UUID) -> Roster:
        """
        Get the stored roster for a project.

        Args:
            project_id: The project's UUID

        Returns:
            The stored Roster, or an empty roster if none is stored
        """
        roster = self._rosters.get(project_id)
        if roster is None:
            return Roster.empty(project_id)
        return roster

    def replace(self, project_id: UUID, roster: Roster) -> None:
        """
        Store roster as the current snapshot for project_id.

        Raises:
            ValueError: If the roster belongs to another project
        """
        if roster.project_id != project_id:
            raise ValueError(
                f"Roster for project {roster.project_id} cannot be stored under {project_id}"
            )
        self._rosters[project_id] = roster

    def discard(self, project_id: UUID) -> None:
        """Forget the stored roster for a project."""
        self._rosters.pop(project_id, None)

    def lock(self, project_id: UUID) -> asyncio.Lock:
        """
        Get the single-writer lock for a project.

        Locks are held weakly: a lock lives while some task holds or awaits
        it, then its entry is dropped.
        """
        lock = self._locks.get(project_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[project_id] = lock
        return lock

    def clear(self) -> None:
        """Drop all stored rosters and locks. Used for testing."""
        self._rosters.clear()
        self._locks.clear()

    def __contains__(self, project_id: object) -> bool:
        return project_id in self._rosters

    def __len__(self) -> int:
        return len(self._rosters)


# Process-wide store shared by all requests
membership_store = MembershipStore()


def get_membership_store() -> MembershipStore:
    """FastAPI dependency returning the process-wide store."""
    return membership_store
