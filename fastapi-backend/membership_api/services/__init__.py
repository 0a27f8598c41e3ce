"""Business logic services."""

from .auth_service import (
    create_access_token,
    decode_access_token,
    get_current_user,
)
from .directory_search import (
    DirectorySearch,
    QueryTooShortError,
    UserDirectory,
    filter_candidates,
)
from .membership_coordinator import (
    MutationResult,
    add_member,
    change_role,
    remove_member,
)
from .membership_policy import (
    Decision,
    Denial,
    MemberAffordance,
    ReasonCode,
    admin_count,
    can_change_role,
    can_remove,
    is_project_admin,
    is_sole_admin,
    lead_successor,
    member_affordances,
)
from .membership_service import (
    MembershipService,
    build_membership_service,
)
from .membership_store import (
    MembershipStore,
    get_membership_store,
    membership_store,
)
from .roster import (
    Member,
    Roster,
    UserSummary,
)
from .roster_repository import (
    InMemoryRosterRepository,
    RosterRepository,
    SqlRosterRepository,
    VersionConflictError,
)
from .user_directory import (
    InMemoryUserDirectory,
    SqlUserDirectory,
)

__all__ = [
    # Auth service
    "create_access_token",
    "decode_access_token",
    "get_current_user",
    # Directory search
    "DirectorySearch",
    "QueryTooShortError",
    "UserDirectory",
    "filter_candidates",
    # Mutation coordinator
    "MutationResult",
    "add_member",
    "change_role",
    "remove_member",
    # Policy engine
    "Decision",
    "Denial",
    "MemberAffordance",
    "ReasonCode",
    "admin_count",
    "can_change_role",
    "can_remove",
    "is_project_admin",
    "is_sole_admin",
    "lead_successor",
    "member_affordances",
    # Membership service
    "MembershipService",
    "build_membership_service",
    # Membership store
    "MembershipStore",
    "get_membership_store",
    "membership_store",
    # Roster data
    "Member",
    "Roster",
    "UserSummary",
    # Persistence
    "InMemoryRosterRepository",
    "RosterRepository",
    "SqlRosterRepository",
    "VersionConflictError",
    # User directory
    "InMemoryUserDirectory",
    "SqlUserDirectory",
]
