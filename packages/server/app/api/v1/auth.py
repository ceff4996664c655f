"""
Authentication endpoints.

POST   /auth/register                 — Create an unverified account, email verification link
GET    /auth/verify-email/{token}     — Confirm an email address
POST   /auth/login                    — Email/password login, issues a session
POST   /auth/logout                   — Revoke the current session
POST   /auth/forgot-password          — Email a password reset link
PATCH  /auth/reset-password/{token}   — Set a new password from a reset link
PATCH  /auth/update-password          — Change password while logged in
GET    /auth/google                   — Google OAuth authorization URL
GET    /auth/google/callback          — Google OAuth callback, issues a session
"""

from __future__ import annotations

import secrets
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    CSRF_COOKIE,
    SESSION_COOKIE,
    AuthenticatedUser,
    OAuthAssertion,
    PasswordCredential,
    authenticate,
    create_access_token,
    generate_csrf_token,
    get_current_user,
    revoke_jwt,
)
from app.core.config import get_settings
from app.core.database import get_session
from app.core.errors import AuthenticationError
from app.models.user import User
from app.services import accounts as account_service
from app.services import oauth as oauth_service
from taskard_shared.schemas.common import APIResponse
from taskard_shared.schemas.users import (
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    SessionResponse,
    UpdatePasswordRequest,
    UserRead,
)

log = structlog.get_logger()
settings = get_settings()
router = APIRouter()

OAUTH_STATE_COOKIE = "taskard_oauth_state"
SESSION_MAX_AGE = settings.jwt_expire_days * 24 * 3600

# Cookie config
COOKIE_KWARGS = {
    "httponly": True,
    "secure": settings.is_production,
    "samesite": "strict" if settings.is_production else "lax",
    "path": "/",
    "max_age": SESSION_MAX_AGE,
}


def user_read(user: User) -> UserRead:
    return UserRead(
        id=user.id,
        email=user.email,
        name=user.name,
        image=user.image,
        email_verified=user.email_verified,
        provider=user.provider,
        created_at=user.created_at,
    )


def _set_session_cookies(response: Response, token: str, csrf: str) -> None:
    """Set the session JWT and CSRF cookies on a response."""
    response.set_cookie(key=SESSION_COOKIE, value=token, **COOKIE_KWARGS)
    response.set_cookie(
        key=CSRF_COOKIE,
        value=csrf,
        httponly=False,  # JS must read this
        secure=COOKIE_KWARGS["secure"],
        samesite=COOKIE_KWARGS["samesite"],
        path="/",
        max_age=SESSION_MAX_AGE,
    )


def _clear_session_cookies(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(CSRF_COOKIE, path="/")


def start_session(response: Response, user: User) -> SessionResponse:
    """Issue a fresh JWT for the user and attach it as cookies."""
    token, _jti = create_access_token(user.id)
    _set_session_cookies(response, token, generate_csrf_token())
    return SessionResponse(token=token, user=user_read(user))


# ---------------------------------------------------------------------------
# Registration & verification
# ---------------------------------------------------------------------------

@router.post("/register", response_model=APIResponse[UserRead], status_code=201)
async def register(
    body: RegisterRequest,
    session: AsyncSession = Depends(get_session),
):
    """Register with email/password. The account stays unusable until verified."""
    user = await account_service.register(session, body)
    return APIResponse(data=user_read(user))


@router.get("/verify-email/{token}", response_model=APIResponse[UserRead])
async def verify_email(
    token: str,
    session: AsyncSession = Depends(get_session),
):
    user = await account_service.verify_email(session, token)
    return APIResponse(data=user_read(user))


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

@router.post("/login", response_model=APIResponse[SessionResponse])
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Authenticate with email/password and receive a JWT session."""
    auth = await authenticate(session, PasswordCredential(email=body.email, password=body.password))
    log.info("auth.login_success", user_id=str(auth.user_id), method=auth.method)
    return APIResponse(data=start_session(response, auth.user))


@router.post("/logout", response_model=APIResponse[MessageResponse])
async def logout(
    response: Response,
    auth: AuthenticatedUser = Depends(get_current_user),
):
    """Invalidate the current session."""
    if auth.jti:
        await revoke_jwt(auth.jti)
    _clear_session_cookies(response)
    log.info("auth.logout", user_id=str(auth.user_id))
    return APIResponse(data=MessageResponse(message="Logged out"))


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

@router.post("/forgot-password", response_model=APIResponse[MessageResponse])
async def forgot_password(
    body: ForgotPasswordRequest,
    session: AsyncSession = Depends(get_session),
):
    """Always answers the same way, whether or not the account exists."""
    await account_service.forgot_password(session, body.email)
    return APIResponse(
        data=MessageResponse(
            message="If an account exists for that email, a reset link has been sent"
        )
    )


@router.patch("/reset-password/{token}", response_model=APIResponse[SessionResponse])
async def reset_password(
    token: str,
    body: ResetPasswordRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    user = await account_service.reset_password(session, token, body.password)
    return APIResponse(data=start_session(response, user))


@router.patch("/update-password", response_model=APIResponse[SessionResponse])
async def update_password(
    body: UpdatePasswordRequest,
    response: Response,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Change password; every previously issued token becomes stale."""
    user = await account_service.update_password(
        session, auth.user, body.current_password, body.password
    )
    if auth.jti:
        await revoke_jwt(auth.jti)
    return APIResponse(data=start_session(response, user))


# ---------------------------------------------------------------------------
# Google OAuth
# ---------------------------------------------------------------------------

@router.get("/google")
async def google_login(response: Response):
    """Return the Google authorization URL and remember the OAuth state."""
    state = secrets.token_urlsafe(24)
    response.set_cookie(
        key=OAUTH_STATE_COOKIE,
        value=state,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/auth/google",
        max_age=600,
    )
    return APIResponse(
        data={"provider": "google", "authorization_url": oauth_service.google_authorization_url(state)}
    )


@router.get("/google/callback")
async def google_callback(
    request: Request,
    code: str,
    state: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    """Exchange the code, link or create the account, then redirect to the client."""
    expected = request.cookies.get(OAUTH_STATE_COOKIE)
    if not state or not expected or not secrets.compare_digest(state, expected):
        raise AuthenticationError("Invalid OAuth state. Please try signing in again")

    assertion: OAuthAssertion = await oauth_service.exchange_google_code(code)
    auth = await authenticate(session, assertion)
    log.info("auth.login_success", user_id=str(auth.user_id), method=auth.method)

    redirect = RedirectResponse(url=f"{settings.client_url}/workspaces", status_code=302)
    start_session(redirect, auth.user)
    redirect.delete_cookie(OAUTH_STATE_COOKIE, path="/auth/google")
    return redirect
