"""User directory implementations for the add-member picker."""

from typing import Iterable, List

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User
from .roster import UserSummary
from .roster_repository import user_summary_from_model


class SqlUserDirectory:
    """Case-insensitive partial match over the Users table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def raw_search(self, query: str, limit: int) -> List[UserSummary]:
        """
        Search users by first name, last name, full name or email.

        Results are ordered by last name, then first name.
        """
        pattern = f"%{query}%"
        stmt = (
            select(User)
            .where(
                or_(
                    User.first_name.ilike(pattern),
                    User.last_name.ilike(pattern),
                    (User.first_name + " " + User.last_name).ilike(pattern),
                    User.email.ilike(pattern),
                )
            )
            .order_by(User.last_name.asc(), User.first_name.asc(), User.id.asc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [user_summary_from_model(user) for user in result.scalars().all()]


class InMemoryUserDirectory:
    """Directory over a fixed list of users, matching like SqlUserDirectory."""

    def __init__(self, users: Iterable[UserSummary]):
        self.users = list(users)

    async def raw_search(self, query: str, limit: int) -> List[UserSummary]:
        needle = query.casefold()
        matches = [
            user for user in self.users
            if needle in user.first_name.casefold()
            or needle in user.last_name.casefold()
            or needle in f"{user.first_name} {user.last_name}".casefold()
            or needle in (user.email or "").casefold()
        ]
        matches.sort(key=lambda user: (user.last_name, user.first_name))
        return matches[:limit]
