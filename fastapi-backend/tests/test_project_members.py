"""API tests for the project members endpoints.

Every test reads the ids it needs from fixtures before making requests:
a denied request rolls the shared session back, which expires loaded rows.
"""

from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from membership_api.models import Project, User
from membership_api.services.membership_store import membership_store


def _members_url(project_id) -> str:
    return f"/api/projects/{project_id}/members"


async def _membership_ids(client: AsyncClient, project_id, headers) -> dict:
    """Map user id -> membership id via the list endpoint."""
    response = await client.get(_members_url(project_id), headers=headers)
    assert response.status_code == 200
    return {item["user_id"]: item["id"] for item in response.json()}


async def _roster_version(db_session: AsyncSession, project_id) -> int:
    return await db_session.scalar(
        select(Project.roster_version).where(Project.id == project_id)
    )


@pytest.mark.asyncio
class TestListMembers:
    """Tests for GET /api/projects/{project_id}/members."""

    async def test_admin_lists_members_oldest_first(
        self,
        client: AsyncClient,
        test_project: Project,
        admin_user: User,
        member_user: User,
        admin_headers: dict,
    ):
        project_id, admin_id, member_id = test_project.id, admin_user.id, member_user.id

        response = await client.get(_members_url(project_id), headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert [item["user_id"] for item in data] == [str(admin_id), str(member_id)]
        assert [item["role"] for item in data] == ["Admin", "Member"]
        assert data[0]["user"]["first_name"] == "Ada"
        assert data[0]["user_display_name"] == "Ada Lovelace"
        assert data[0]["id"] != data[0]["user_id"]
        assert project_id not in membership_store

    async def test_member_can_list(
        self, client: AsyncClient, test_project: Project, member_headers: dict
    ):
        response = await client.get(_members_url(test_project.id), headers=member_headers)
        assert response.status_code == 200
        assert len(response.json()) == 2

    async def test_outsider_is_forbidden(
        self, client: AsyncClient, test_project: Project, outsider_headers: dict
    ):
        response = await client.get(_members_url(test_project.id), headers=outsider_headers)

        assert response.status_code == 403
        assert response.json()["detail"]["reason"] == "Unauthorized"

    async def test_unknown_project_is_forbidden(
        self, client: AsyncClient, admin_user: User, admin_headers: dict
    ):
        response = await client.get(_members_url(uuid4()), headers=admin_headers)
        assert response.status_code == 403

    async def test_requires_authentication(self, client: AsyncClient, test_project: Project):
        response = await client.get(_members_url(test_project.id))
        assert response.status_code == 401

    async def test_invalid_token(self, client: AsyncClient, test_project: Project):
        response = await client.get(
            _members_url(test_project.id),
            headers={"Authorization": "Bearer not-a-token"},
        )
        assert response.status_code == 401

    async def test_count(self, client: AsyncClient, test_project: Project, member_headers: dict):
        response = await client.get(
            f"{_members_url(test_project.id)}/count", headers=member_headers
        )

        assert response.status_code == 200
        assert response.json() == {"total": 2, "admins": 1}


@pytest.mark.asyncio
class TestAffordances:
    """Tests for GET /api/projects/{project_id}/members/affordances."""

    async def test_admin_affordances(
        self,
        client: AsyncClient,
        test_project: Project,
        admin_user: User,
        admin_headers: dict,
    ):
        admin_id = str(admin_user.id)

        response = await client.get(
            f"{_members_url(test_project.id)}/affordances", headers=admin_headers
        )

        assert response.status_code == 200
        by_user = {item["user_id"]: item for item in response.json()}
        admin_row = by_user.pop(admin_id)
        (member_row,) = by_user.values()
        assert admin_row["can_change_role"] is False
        assert admin_row["change_role_reason"] == "SoleAdminDemotion"
        assert admin_row["can_remove"] is False
        assert admin_row["remove_reason"] == "SoleAdminRemoval"
        assert member_row["can_change_role"] is True
        assert member_row["can_remove"] is True
        assert member_row["remove_reason"] is None

    async def test_member_affordances_are_all_unauthorized(
        self, client: AsyncClient, test_project: Project, member_headers: dict
    ):
        response = await client.get(
            f"{_members_url(test_project.id)}/affordances", headers=member_headers
        )

        assert response.status_code == 200
        for item in response.json():
            assert item["can_change_role"] is False
            assert item["change_role_reason"] == "Unauthorized"
            assert item["remove_reason"] == "Unauthorized"

    async def test_outsider_is_forbidden(
        self, client: AsyncClient, test_project: Project, outsider_headers: dict
    ):
        response = await client.get(
            f"{_members_url(test_project.id)}/affordances", headers=outsider_headers
        )
        assert response.status_code == 403


@pytest.mark.asyncio
class TestCandidates:
    """Tests for GET /api/projects/{project_id}/members/candidates."""

    async def test_search_excludes_members(
        self,
        client: AsyncClient,
        test_project: Project,
        outsider_user: User,
        admin_headers: dict,
    ):
        outsider_id = str(outsider_user.id)

        response = await client.get(
            f"{_members_url(test_project.id)}/candidates",
            params={"query": "gr"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert [u["user_id"] for u in response.json()] == [outsider_id]

    async def test_members_never_returned(
        self,
        client: AsyncClient,
        test_project: Project,
        outsider_user: User,
        admin_headers: dict,
    ):
        outsider_id = str(outsider_user.id)

        # "example" matches every user by email
        response = await client.get(
            f"{_members_url(test_project.id)}/candidates",
            params={"query": "example"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert [u["user_id"] for u in response.json()] == [outsider_id]

    async def test_short_query_is_rejected(
        self, client: AsyncClient, test_project: Project, admin_headers: dict
    ):
        response = await client.get(
            f"{_members_url(test_project.id)}/candidates",
            params={"query": " g "},
            headers=admin_headers,
        )

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["reason"] == "QueryTooShort"
        assert detail["message"]

    async def test_short_query_from_non_admin_is_forbidden(
        self,
        client: AsyncClient,
        test_project: Project,
        member_headers: dict,
        outsider_headers: dict,
    ):
        url = f"{_members_url(test_project.id)}/candidates"

        for headers in (member_headers, outsider_headers):
            response = await client.get(url, params={"query": "g"}, headers=headers)
            assert response.status_code == 403
            assert response.json()["detail"]["reason"] == "Unauthorized"

    async def test_member_cannot_search(
        self, client: AsyncClient, test_project: Project, member_headers: dict
    ):
        response = await client.get(
            f"{_members_url(test_project.id)}/candidates",
            params={"query": "grace"},
            headers=member_headers,
        )
        assert response.status_code == 403


@pytest.mark.asyncio
class TestAddMember:
    """Tests for POST /api/projects/{project_id}/members."""

    async def test_add_member(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        test_project: Project,
        outsider_user: User,
        admin_headers: dict,
    ):
        project_id, outsider_id = test_project.id, outsider_user.id

        response = await client.post(
            _members_url(project_id),
            json={"user_id": str(outsider_id)},
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["user_id"] == str(outsider_id)
        assert data["role"] == "Member"
        assert data["user"]["last_name"] == "Hopper"
        assert await _roster_version(db_session, project_id) == 1

        listed = await _membership_ids(client, project_id, admin_headers)
        assert list(listed)[-1] == str(outsider_id)
        assert listed[str(outsider_id)] == data["id"]

    async def test_add_as_admin(
        self,
        client: AsyncClient,
        test_project: Project,
        outsider_user: User,
        admin_headers: dict,
    ):
        response = await client.post(
            _members_url(test_project.id),
            json={"user_id": str(outsider_user.id), "role": "Admin"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert response.json()["role"] == "Admin"

    async def test_already_member(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        test_project: Project,
        member_user: User,
        admin_headers: dict,
    ):
        project_id, member_id = test_project.id, member_user.id

        response = await client.post(
            _members_url(project_id),
            json={"user_id": str(member_id)},
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json()["detail"]["reason"] == "AlreadyMember"
        assert await _roster_version(db_session, project_id) == 0

    async def test_unknown_user(
        self, client: AsyncClient, test_project: Project, admin_headers: dict
    ):
        response = await client.post(
            _members_url(test_project.id),
            json={"user_id": str(uuid4())},
            headers=admin_headers,
        )

        assert response.status_code == 404
        assert response.json()["detail"]["reason"] == "UserNotFound"

    async def test_member_cannot_add(
        self,
        client: AsyncClient,
        test_project: Project,
        outsider_user: User,
        member_headers: dict,
    ):
        response = await client.post(
            _members_url(test_project.id),
            json={"user_id": str(outsider_user.id)},
            headers=member_headers,
        )

        assert response.status_code == 403
        assert response.json()["detail"]["reason"] == "Unauthorized"

    async def test_invalid_role(
        self,
        client: AsyncClient,
        test_project: Project,
        outsider_user: User,
        admin_headers: dict,
    ):
        response = await client.post(
            _members_url(test_project.id),
            json={"user_id": str(outsider_user.id), "role": "Owner"},
            headers=admin_headers,
        )
        assert response.status_code == 422


@pytest.mark.asyncio
class TestChangeRole:
    """Tests for PATCH /api/projects/{project_id}/members/{membership_id}."""

    async def test_cannot_demote_sole_admin(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        test_project: Project,
        admin_user: User,
        admin_headers: dict,
    ):
        project_id, admin_id = test_project.id, str(admin_user.id)
        ids = await _membership_ids(client, project_id, admin_headers)

        response = await client.patch(
            f"{_members_url(project_id)}/{ids[admin_id]}",
            json={"role": "Member"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"]["reason"] == "SoleAdminDemotion"
        assert await _roster_version(db_session, project_id) == 0

    async def test_promote_then_demote(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        test_project: Project,
        admin_user: User,
        member_user: User,
        admin_headers: dict,
    ):
        project_id = test_project.id
        admin_id, member_id = str(admin_user.id), str(member_user.id)
        ids = await _membership_ids(client, project_id, admin_headers)

        promoted = await client.patch(
            f"{_members_url(project_id)}/{ids[member_id]}",
            json={"role": "Admin"},
            headers=admin_headers,
        )
        assert promoted.status_code == 200
        assert promoted.json()["role"] == "Admin"

        # With two Admins the original one may step down
        demoted = await client.patch(
            f"{_members_url(project_id)}/{ids[admin_id]}",
            json={"role": "Member"},
            headers=admin_headers,
        )
        assert demoted.status_code == 200
        assert demoted.json()["role"] == "Member"
        assert await _roster_version(db_session, project_id) == 2

    async def test_unknown_membership(
        self, client: AsyncClient, test_project: Project, admin_headers: dict
    ):
        response = await client.patch(
            f"{_members_url(test_project.id)}/{uuid4()}",
            json={"role": "Admin"},
            headers=admin_headers,
        )

        assert response.status_code == 404
        assert response.json()["detail"]["reason"] == "MemberNotFound"

    async def test_member_cannot_change_roles(
        self,
        client: AsyncClient,
        test_project: Project,
        member_user: User,
        member_headers: dict,
    ):
        project_id, member_id = test_project.id, str(member_user.id)
        ids = await _membership_ids(client, project_id, member_headers)

        response = await client.patch(
            f"{_members_url(project_id)}/{ids[member_id]}",
            json={"role": "Admin"},
            headers=member_headers,
        )

        assert response.status_code == 403


@pytest.mark.asyncio
class TestRemoveMember:
    """Tests for DELETE /api/projects/{project_id}/members/{membership_id}."""

    async def test_cannot_remove_sole_admin(
        self,
        client: AsyncClient,
        test_project: Project,
        admin_user: User,
        admin_headers: dict,
    ):
        project_id, admin_id = test_project.id, str(admin_user.id)
        ids = await _membership_ids(client, project_id, admin_headers)

        response = await client.delete(
            f"{_members_url(project_id)}/{ids[admin_id]}", headers=admin_headers
        )

        assert response.status_code == 400
        assert response.json()["detail"]["reason"] == "SoleAdminRemoval"
        assert len(await _membership_ids(client, project_id, admin_headers)) == 2

    async def test_remove_member(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        test_project: Project,
        admin_user: User,
        member_user: User,
        admin_headers: dict,
    ):
        project_id = test_project.id
        admin_id, member_id = str(admin_user.id), str(member_user.id)
        ids = await _membership_ids(client, project_id, admin_headers)

        response = await client.delete(
            f"{_members_url(project_id)}/{ids[member_id]}", headers=admin_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["membership_id"] == ids[member_id]
        assert data["lead_user_id"] == admin_id
        assert list(await _membership_ids(client, project_id, admin_headers)) == [admin_id]
        assert await _roster_version(db_session, project_id) == 1

    async def test_promote_then_original_admin_leaves(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        test_project: Project,
        admin_user: User,
        member_user: User,
        admin_headers: dict,
        member_headers: dict,
    ):
        project_id = test_project.id
        admin_id, member_id = str(admin_user.id), str(member_user.id)
        ids = await _membership_ids(client, project_id, admin_headers)

        promoted = await client.patch(
            f"{_members_url(project_id)}/{ids[member_id]}",
            json={"role": "Admin"},
            headers=admin_headers,
        )
        assert promoted.status_code == 200

        response = await client.delete(
            f"{_members_url(project_id)}/{ids[admin_id]}", headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["lead_user_id"] == member_id
        listed = await client.get(_members_url(project_id), headers=member_headers)
        assert [(m["user_id"], m["role"]) for m in listed.json()] == [(member_id, "Admin")]
        lead = await db_session.scalar(
            select(Project.lead_user_id).where(Project.id == project_id)
        )
        assert str(lead) == member_id

    async def test_unknown_membership(
        self, client: AsyncClient, test_project: Project, admin_headers: dict
    ):
        response = await client.delete(
            f"{_members_url(test_project.id)}/{uuid4()}", headers=admin_headers
        )

        assert response.status_code == 404
        assert response.json()["detail"]["reason"] == "MemberNotFound"

    async def test_outsider_cannot_remove(
        self,
        client: AsyncClient,
        test_project: Project,
        member_user: User,
        admin_headers: dict,
        outsider_headers: dict,
    ):
        project_id, member_id = test_project.id, str(member_user.id)
        ids = await _membership_ids(client, project_id, admin_headers)

        response = await client.delete(
            f"{_members_url(project_id)}/{ids[member_id]}", headers=outsider_headers
        )

        assert response.status_code == 403


@pytest.mark.asyncio
class TestHealth:
    """Tests for the root and health endpoints."""

    async def test_root(self, client: AsyncClient):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["database"] == "ok"
