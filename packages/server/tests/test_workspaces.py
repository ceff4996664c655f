"""
Tests for workspace authority and the workspace/member endpoints.

Covers:
- Authority ranking (owner, admin row, member row, none)
- Uniform AccessDenied for missing and forbidden workspaces
- Workspace CRUD and owner-only deletion cascade
- Member listing, search, role change and removal rules
"""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, patch

import pytest
from sqlmodel import select

from app.core.errors import AccessDenied, WorkspaceNotFound
from app.models.project import Project
from app.models.task import Task
from app.models.workspace import Workspace
from app.models.workspace_member import WorkspaceMember
from app.services import membership
from app.services.membership import Authority


# ---------------------------------------------------------------------------
# Authority (service level)
# ---------------------------------------------------------------------------

class TestAuthority:
    def test_ranking(self):
        assert Authority.NONE < Authority.MEMBER < Authority.ADMIN < Authority.OWNER

    async def test_owner(self, session, make_user, make_workspace):
        owner = await make_user()
        ws = await make_workspace(owner)
        assert await membership.authority(session, owner.id, ws.id) == Authority.OWNER

    async def test_owner_stays_owner_without_membership_row(
        self, session, session_factory, make_user, make_workspace
    ):
        owner = await make_user()
        ws = await make_workspace(owner)
        async with session_factory() as s:
            row = (
                await s.execute(select(WorkspaceMember).where(WorkspaceMember.user_id == owner.id))
            ).scalar_one()
            row.role = "MEMBER"
            s.add(row)
            await s.commit()
        assert await membership.authority(session, owner.id, ws.id) == Authority.OWNER

    async def test_admin_and_member_rows(self, session, make_user, make_workspace, add_member):
        owner, admin, member = await make_user(), await make_user(), await make_user()
        ws = await make_workspace(owner)
        await add_member(ws, admin, "ADMIN")
        await add_member(ws, member)
        assert await membership.authority(session, admin.id, ws.id) == Authority.ADMIN
        assert await membership.authority(session, member.id, ws.id) == Authority.MEMBER

    async def test_stranger_has_none(self, session, make_user, make_workspace):
        ws = await make_workspace(await make_user())
        stranger = await make_user()
        level = await membership.authority(session, stranger.id, ws.id)
        assert level == Authority.NONE
        assert not membership.can_access_workspace(level)

    async def test_missing_workspace(self, session, make_user):
        user = await make_user()
        with pytest.raises(WorkspaceNotFound):
            await membership.authority(session, user.id, uuid.uuid4())

    async def test_require_authority_hides_missing_workspace(self, session, make_user):
        user = await make_user()
        with pytest.raises(AccessDenied):
            await membership.require_authority(session, user.id, uuid.uuid4())

    async def test_predicates(self, make_user, make_workspace):
        owner = await make_user()
        ws = await make_workspace(owner)
        assert membership.can_manage_workspace(Authority.ADMIN)
        assert not membership.can_manage_workspace(Authority.MEMBER)
        assert membership.can_remove_member(Authority.ADMIN, uuid.uuid4(), ws)
        assert not membership.can_remove_member(Authority.OWNER, owner.id, ws)
        assert not membership.can_remove_member(Authority.MEMBER, uuid.uuid4(), ws)


# ---------------------------------------------------------------------------
# Workspace endpoints
# ---------------------------------------------------------------------------

class TestWorkspaceEndpoints:
    async def test_create_and_list(self, client, make_user, headers_for, session_factory):
        user = await make_user()
        resp = await client.post(
            "/api/v1/workspaces", json={"name": "  Rocket  "}, headers=headers_for(user)
        )
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["name"] == "Rocket"
        assert data["owner_id"] == str(user.id)
        assert data["authority"] == "OWNER"

        async with session_factory() as s:
            rows = (
                await s.execute(
                    select(WorkspaceMember).where(WorkspaceMember.workspace_id == uuid.UUID(data["id"]))
                )
            ).scalars().all()
        assert [(r.user_id, r.role) for r in rows] == [(user.id, "ADMIN")]

        resp = await client.get("/api/v1/workspaces", headers=headers_for(user))
        assert [w["id"] for w in resp.json()["data"]] == [data["id"]]

    async def test_list_shows_my_authority(
        self, client, make_user, make_workspace, add_member, headers_for
    ):
        owner, member = await make_user(), await make_user()
        mine = await make_workspace(member, "Mine")
        theirs = await make_workspace(owner, "Theirs")
        await make_workspace(owner, "Hidden")
        await add_member(theirs, member)

        resp = await client.get("/api/v1/workspaces", headers=headers_for(member))
        by_id = {w["id"]: w["authority"] for w in resp.json()["data"]}
        assert by_id == {str(mine.id): "OWNER", str(theirs.id): "MEMBER"}

    async def test_non_member_and_missing_look_the_same(
        self, client, make_user, make_workspace, headers_for
    ):
        ws = await make_workspace(await make_user())
        stranger = await make_user()

        forbidden = await client.get(f"/api/v1/workspaces/{ws.id}", headers=headers_for(stranger))
        missing = await client.get(
            f"/api/v1/workspaces/{uuid.uuid4()}", headers=headers_for(stranger)
        )
        assert forbidden.status_code == missing.status_code == 403
        assert forbidden.json() == missing.json() == {"status": "fail", "message": "Access denied"}

    async def test_member_cannot_update(
        self, client, make_user, make_workspace, add_member, headers_for
    ):
        owner, member = await make_user(), await make_user()
        ws = await make_workspace(owner)
        await add_member(ws, member)
        resp = await client.patch(
            f"/api/v1/workspaces/{ws.id}", json={"name": "Hijacked"}, headers=headers_for(member)
        )
        assert resp.status_code == 403

    async def test_admin_can_update(
        self, client, make_user, make_workspace, add_member, headers_for
    ):
        owner, admin = await make_user(), await make_user()
        ws = await make_workspace(owner)
        await add_member(ws, admin, "ADMIN")
        resp = await client.patch(
            f"/api/v1/workspaces/{ws.id}", json={"name": "Renamed"}, headers=headers_for(admin)
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["name"] == "Renamed"
        assert resp.json()["data"]["authority"] == "ADMIN"

    async def test_only_owner_deletes(
        self, client, make_user, make_workspace, add_member, make_project, make_task,
        headers_for, session_factory,
    ):
        owner, admin = await make_user(), await make_user()
        ws = await make_workspace(owner)
        await add_member(ws, admin, "ADMIN")
        project = await make_project(ws, owner)
        await make_task(project, owner)

        resp = await client.delete(f"/api/v1/workspaces/{ws.id}", headers=headers_for(admin))
        assert resp.status_code == 403

        resp = await client.delete(f"/api/v1/workspaces/{ws.id}", headers=headers_for(owner))
        assert resp.status_code == 204

        async with session_factory() as s:
            assert await s.get(Workspace, ws.id) is None
            assert (await s.execute(select(Project))).scalars().all() == []
            assert (await s.execute(select(Task))).scalars().all() == []
            assert (await s.execute(select(WorkspaceMember))).scalars().all() == []

    async def test_image_upload(
        self, client, make_user, make_workspace, headers_for
    ):
        owner = await make_user()
        ws = await make_workspace(owner)
        with patch(
            "app.services.images.upload_image",
            AsyncMock(return_value="https://res.cloudinary.com/demo/ws.png"),
        ) as upload:
            resp = await client.post(
                f"/api/v1/workspaces/{ws.id}/image",
                files={"file": ("logo.png", b"\x89PNG...", "image/png")},
                headers=headers_for(owner),
            )
        assert resp.status_code == 200
        assert resp.json()["data"]["image"] == "https://res.cloudinary.com/demo/ws.png"
        assert upload.await_args.kwargs["content_type"] == "image/png"


# ---------------------------------------------------------------------------
# Member endpoints
# ---------------------------------------------------------------------------

class TestMemberEndpoints:
    async def test_list_members(self, client, make_user, make_workspace, add_member, headers_for):
        owner = await make_user(name="Owner")
        member = await make_user(name="Member")
        ws = await make_workspace(owner)
        await add_member(ws, member)

        resp = await client.get(f"/api/v1/workspaces/{ws.id}/members", headers=headers_for(member))
        assert resp.status_code == 200
        rows = {m["user"]["name"]: m for m in resp.json()["data"]}
        assert rows["Owner"]["is_owner"] is True
        assert rows["Owner"]["role"] == "ADMIN"
        assert rows["Member"]["role"] == "MEMBER"
        assert "password_hash" not in rows["Member"]["user"]

    async def test_search_is_capped_at_ten(
        self, client, make_user, make_workspace, add_member, headers_for
    ):
        owner = await make_user(name="Boss")
        ws = await make_workspace(owner)
        for i in range(12):
            await add_member(ws, await make_user(name=f"Dev {i:02d}"))
        await add_member(ws, await make_user(name="Designer", email="art@studio.io"))

        resp = await client.get(
            f"/api/v1/workspaces/{ws.id}/members/search",
            params={"q": "dev"},
            headers=headers_for(owner),
        )
        assert resp.status_code == 200
        assert len(resp.json()["data"]) == 10

        resp = await client.get(
            f"/api/v1/workspaces/{ws.id}/members/search",
            params={"q": "STUDIO"},
            headers=headers_for(owner),
        )
        assert [m["user"]["name"] for m in resp.json()["data"]] == ["Designer"]

    async def test_search_treats_wildcards_literally(
        self, client, make_user, make_workspace, add_member, headers_for
    ):
        owner = await make_user(name="Boss")
        ws = await make_workspace(owner)
        await add_member(ws, await make_user(name="Ann_Lee"))
        await add_member(ws, await make_user(name="AnnXLee"))

        resp = await client.get(
            f"/api/v1/workspaces/{ws.id}/members/search",
            params={"q": "n_l"},
            headers=headers_for(owner),
        )
        assert [m["user"]["name"] for m in resp.json()["data"]] == ["Ann_Lee"]

    async def test_change_role(self, client, make_user, make_workspace, add_member, headers_for):
        owner, member = await make_user(), await make_user()
        ws = await make_workspace(owner)
        row = await add_member(ws, member)

        resp = await client.patch(
            f"/api/v1/workspaces/{ws.id}/members/{row.id}",
            json={"role": "ADMIN"},
            headers=headers_for(owner),
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["role"] == "ADMIN"

    async def test_owner_role_is_fixed(
        self, client, make_user, make_workspace, add_member, headers_for, session_factory
    ):
        owner, admin = await make_user(), await make_user()
        ws = await make_workspace(owner)
        await add_member(ws, admin, "ADMIN")
        async with session_factory() as s:
            owner_row = (
                await s.execute(select(WorkspaceMember).where(WorkspaceMember.user_id == owner.id))
            ).scalar_one()

        resp = await client.patch(
            f"/api/v1/workspaces/{ws.id}/members/{owner_row.id}",
            json={"role": "MEMBER"},
            headers=headers_for(admin),
        )
        assert resp.status_code == 403

    async def test_remove_member(
        self, client, make_user, make_workspace, add_member, headers_for, session_factory
    ):
        owner, admin, member = await make_user(), await make_user(), await make_user()
        ws = await make_workspace(owner)
        await add_member(ws, admin, "ADMIN")
        row = await add_member(ws, member)

        resp = await client.delete(
            f"/api/v1/workspaces/{ws.id}/members/{row.id}", headers=headers_for(admin)
        )
        assert resp.status_code == 204
        async with session_factory() as s:
            assert await s.get(WorkspaceMember, row.id) is None

        # Removed member loses access immediately
        resp = await client.get(f"/api/v1/workspaces/{ws.id}", headers=headers_for(member))
        assert resp.status_code == 403

    async def test_member_cannot_remove(
        self, client, make_user, make_workspace, add_member, headers_for
    ):
        owner, a, b = await make_user(), await make_user(), await make_user()
        ws = await make_workspace(owner)
        await add_member(ws, a)
        row_b = await add_member(ws, b)
        resp = await client.delete(
            f"/api/v1/workspaces/{ws.id}/members/{row_b.id}", headers=headers_for(a)
        )
        assert resp.status_code == 403

    async def test_owner_cannot_be_removed(
        self, client, make_user, make_workspace, add_member, headers_for, session_factory
    ):
        owner, admin = await make_user(), await make_user()
        ws = await make_workspace(owner)
        await add_member(ws, admin, "ADMIN")
        async with session_factory() as s:
            owner_row = (
                await s.execute(select(WorkspaceMember).where(WorkspaceMember.user_id == owner.id))
            ).scalar_one()

        resp = await client.delete(
            f"/api/v1/workspaces/{ws.id}/members/{owner_row.id}", headers=headers_for(admin)
        )
        assert resp.status_code == 403
        assert resp.json()["message"] == "Cannot remove workspace owner"

    async def test_unknown_member(self, client, make_user, make_workspace, headers_for):
        owner = await make_user()
        ws = await make_workspace(owner)
        resp = await client.delete(
            f"/api/v1/workspaces/{ws.id}/members/{uuid.uuid4()}", headers=headers_for(owner)
        )
        assert resp.status_code == 404
