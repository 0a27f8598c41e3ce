"""Candidate lookup for the add-member picker.

The directory returns raw matches; this module removes anyone who is
already on the roster while keeping the directory's ordering.
"""

import asyncio
import logging
from typing import Iterable, List, Optional, Protocol, Set
from uuid import UUID

from .roster import Roster, UserSummary

logger = logging.getLogger(__name__)


class QueryTooShortError(ValueError):
    """Raised when a search query is shorter than the configured minimum."""

    def __init__(self, query: str, min_length: int):
        self.query = query
        self.min_length = min_length
        super().__init__(f"Search query must be at least {min_length} characters")


class UserDirectory(Protocol):
    """External user directory searched by the add-member flow."""

    async def raw_search(self, query: str, limit: int) -> List[UserSummary]:
        ...


def filter_candidates(raw_results: Iterable[UserSummary], roster: Roster) -> List[UserSummary]:
    """
    Drop users already on the roster, preserving the input order.

    A user listed more than once by the directory is kept at its first
    position only.
    """
    excluded: Set[UUID] = set(roster.user_ids())
    candidates = []
    for user in raw_results:
        if user.user_id in excluded:
            continue
        excluded.add(user.user_id)
        candidates.append(user)
    return candidates


class DirectorySearch:
    """Searches the directory for users that can be added to a roster."""

    def __init__(
        self,
        directory: UserDirectory,
        min_query_length: int = 2,
        limit: int = 20,
        timeout: Optional[float] = None,
    ):
        self.directory = directory
        self.min_query_length = min_query_length
        self.limit = limit
        self.timeout = timeout

    def normalize_query(self, query: str) -> str:
        """
        Trim the query and enforce the minimum length.

        Raises:
            QueryTooShortError: If the trimmed query is too short
        """
        normalized = (query or "").strip()
        if len(normalized) < self.min_query_length:
            raise QueryTooShortError(normalized, self.min_query_length)
        return normalized

    async def search(self, query: str, roster: Roster) -> List[UserSummary]:
        """
        Find users matching query who are not already members.

        Args:
            query: Free text typed into the picker
            roster: Current roster of the project

        Returns:
            Matching users in directory order, current members excluded
        """
        normalized = self.normalize_query(query)
        raw_results = await asyncio.wait_for(
            self.directory.raw_search(normalized, self.limit),
            self.timeout,
        )
        candidates = filter_candidates(raw_results, roster)
        logger.debug(
            f"Directory search for project {roster.project_id}: "
            f"{len(raw_results)} raw, {len(candidates)} candidates"
        )
        return candidates
