"""
Current-user profile endpoints.

GET    /api/v1/users/me          — Own profile
PATCH  /api/v1/users/me          — Update name / image URL
POST   /api/v1/users/me/avatar   — Upload a new avatar image
DELETE /api/v1/users/me          — Delete the account and everything it owns
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.auth import user_read
from app.core.auth import SESSION_COOKIE, CSRF_COOKIE, AuthenticatedUser, get_current_user, revoke_jwt
from app.core.database import get_session
from app.services import accounts as account_service
from app.services import images as image_service
from taskard_shared.schemas.common import APIResponse
from taskard_shared.schemas.users import UserRead, UserUpdateRequest

router = APIRouter()


@router.get("/me", response_model=APIResponse[UserRead], tags=["Users"])
async def get_me(auth: AuthenticatedUser = Depends(get_current_user)):
    return APIResponse(data=user_read(auth.user))


@router.patch("/me", response_model=APIResponse[UserRead], tags=["Users"])
async def update_me(
    body: UserUpdateRequest,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Update profile fields. Email and password have their own flows."""
    user = await account_service.update_profile(session, auth.user, body)
    return APIResponse(data=user_read(user))


@router.post("/me/avatar", response_model=APIResponse[UserRead], tags=["Users"])
async def upload_avatar(
    file: UploadFile = File(...),
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    data = await image_service.read_upload(file)
    url = await image_service.upload_image(
        data,
        content_type=file.content_type,
        filename=file.filename or "avatar",
        folder="taskard/avatars",
    )
    user = await account_service.set_avatar(session, auth.user, url)
    return APIResponse(data=user_read(user))


@router.delete("/me", status_code=204, tags=["Users"])
async def delete_me(
    response: Response,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Delete the account, its owned workspaces, memberships and authored rows."""
    await account_service.delete_user(session, auth.user_id)
    if auth.jti:
        await revoke_jwt(auth.jti)
    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(CSRF_COOKIE, path="/")
    return None
