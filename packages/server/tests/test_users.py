"""
Tests for the current-user profile endpoints and image uploads.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from sqlmodel import select

from app.core.errors import DependencyError, ValidationError
from app.models.project import Project
from app.models.user import User
from app.models.workspace import Workspace
from app.models.workspace_member import WorkspaceMember
from app.services import images

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class TestProfile:
    async def test_get_me(self, client, make_user, headers_for):
        user = await make_user(email="ada@example.com", name="Ada")
        resp = await client.get("/api/v1/users/me", headers=headers_for(user))
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert (data["email"], data["name"], data["email_verified"]) == ("ada@example.com", "Ada", True)
        assert "password_hash" not in data

    async def test_requires_login(self, client):
        resp = await client.get("/api/v1/users/me")
        assert resp.status_code == 401
        assert resp.json()["status"] == "fail"

    async def test_update_name(self, client, make_user, headers_for):
        user = await make_user(name="Ada")
        resp = await client.patch(
            "/api/v1/users/me", json={"name": "Ada Lovelace"}, headers=headers_for(user)
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["name"] == "Ada Lovelace"

    async def test_empty_name_rejected(self, client, make_user, headers_for):
        user = await make_user()
        resp = await client.patch("/api/v1/users/me", json={"name": ""}, headers=headers_for(user))
        assert resp.status_code == 400


class TestAvatar:
    async def test_upload(self, client, make_user, headers_for):
        user = await make_user()
        url = "https://res.cloudinary.com/demo/image/upload/avatar.png"
        with patch("app.services.images.upload_image", AsyncMock(return_value=url)) as upload:
            resp = await client.post(
                "/api/v1/users/me/avatar",
                files={"file": ("me.png", PNG, "image/png")},
                headers=headers_for(user),
            )
        assert resp.status_code == 200
        assert resp.json()["data"]["image"] == url
        assert upload.await_args.kwargs["folder"] == "taskard/avatars"

    async def test_non_image_rejected(self, client, make_user, headers_for):
        user = await make_user()
        resp = await client.post(
            "/api/v1/users/me/avatar",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=headers_for(user),
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Not an image! Please upload only images."


    async def test_oversized_upload_rejected(self, client, make_user, headers_for):
        user = await make_user()
        with patch.object(images.settings, "image_max_bytes", 32):
            resp = await client.post(
                "/api/v1/users/me/avatar",
                files={"file": ("me.png", PNG, "image/png")},
                headers=headers_for(user),
            )
        assert resp.status_code == 400
        assert resp.json()["message"].startswith("Image is too large")


class TestImageService:
    async def test_read_upload_stops_past_ceiling(self):
        upload = AsyncMock()
        upload.read.return_value = b"x"
        with patch.object(images.settings, "image_max_bytes", 100):
            await images.read_upload(upload)
        upload.read.assert_awaited_once_with(101)

    def test_validate_rejects_empty_and_large(self):
        with pytest.raises(ValidationError):
            images.validate_image("image/png", 0)
        with pytest.raises(ValidationError, match="too large"):
            images.validate_image("image/png", images.settings.image_max_bytes + 1)

    async def test_unconfigured(self):
        with patch.object(images.settings, "cloudinary_cloud_name", ""):
            with pytest.raises(DependencyError):
                await images.upload_image(
                    PNG, content_type="image/png", filename="a.png", folder="x"
                )

    async def test_posts_to_cloudinary(self):
        response = MagicMock()
        response.json.return_value = {"secure_url": "https://cdn.example/a.png"}
        http = AsyncMock()
        http.post.return_value = response
        client_cls = MagicMock()
        client_cls.return_value.__aenter__.return_value = http

        with patch.object(images.settings, "cloudinary_cloud_name", "demo"), \
             patch("app.services.images.httpx.AsyncClient", client_cls):
            url = await images.upload_image(
                PNG, content_type="image/png", filename="a.png", folder="taskard/avatars"
            )

        assert url == "https://cdn.example/a.png"
        assert http.post.await_args.args[0].endswith("/demo/image/upload")
        assert http.post.await_args.kwargs["data"]["folder"] == "taskard/avatars"

    async def test_http_failure_is_dependency_error(self):
        http = AsyncMock()
        http.post.side_effect = httpx.ConnectError("down")
        client_cls = MagicMock()
        client_cls.return_value.__aenter__.return_value = http

        with patch.object(images.settings, "cloudinary_cloud_name", "demo"), \
             patch("app.services.images.httpx.AsyncClient", client_cls):
            with pytest.raises(DependencyError):
                await images.upload_image(
                    PNG, content_type="image/png", filename="a.png", folder="x"
                )


class TestDeleteAccount:
    async def test_delete_cascades_owned_workspaces(
        self,
        client,
        make_user,
        make_workspace,
        add_member,
        make_project,
        session_factory,
        headers_for,
        fake_redis,
    ):
        user = await make_user()
        friend = await make_user()
        mine = await make_workspace(user, name="Mine")
        theirs = await make_workspace(friend, name="Theirs")
        await add_member(theirs, user)
        await make_project(mine, user)
        shared = await make_project(theirs, user, name="Shared")

        resp = await client.delete("/api/v1/users/me", headers=headers_for(user))
        assert resp.status_code == 204
        fake_redis.setex.assert_awaited()

        async with session_factory() as s:
            assert await s.get(User, user.id) is None
            assert await s.get(Workspace, mine.id) is None
            assert await s.get(Workspace, theirs.id) is not None
            members = (
                await s.execute(select(WorkspaceMember).where(WorkspaceMember.user_id == user.id))
            ).scalars().all()
            assert members == []
            kept = await s.get(Project, shared.id)
            assert kept is not None and kept.creator_id is None

        resp = await client.get("/api/v1/users/me", headers=headers_for(user))
        assert resp.status_code == 401
