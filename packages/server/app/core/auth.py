"""
Authentication for Taskard.

Supports:
- Email/password login with bcrypt (constant-work comparison for unknown users)
- Google OAuth assertions (link-or-create by email / provider identity)
- JWT bearer sessions with a Redis revocation list and stale-token detection
- Workspace authority dependencies for routers
"""

from __future__ import annotations

import hashlib
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import bcrypt
import jwt
import structlog
from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.database import get_session
from app.core.errors import (
    AuthenticationError,
    EmailNotVerified,
    InvalidToken,
    StaleToken,
)
from app.core.redis import get_redis
from app.models.base import as_utc
from app.models.user import User
from app.models.workspace import Workspace
from app.services import membership
from app.services.membership import Authority

log = structlog.get_logger()
settings = get_settings()

bearer_header = APIKeyHeader(name="Authorization", auto_error=False)

SESSION_COOKIE = "taskard_session"
CSRF_COOKIE = "taskard_csrf"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt with cost factor 12."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        return False


# Compared against when the account does not exist so both paths cost one bcrypt round.
DUMMY_PASSWORD_HASH = hash_password(secrets.token_urlsafe(16))


# ---------------------------------------------------------------------------
# One-time tokens (email verification, password reset, invitations)
# ---------------------------------------------------------------------------

def hash_token(token: str) -> str:
    """sha256 hex digest; only this form is ever persisted."""
    return hashlib.sha256(token.encode()).hexdigest()


def generate_token() -> tuple[str, str]:
    """Return ``(plaintext, hashed)`` for a new 32-byte random token."""
    plaintext = secrets.token_hex(32)
    return plaintext, hash_token(plaintext)


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_access_token(
    user_id: uuid.UUID,
    *,
    issued_at: datetime | None = None,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed JWT. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = issued_at or datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(days=settings.jwt_expire_days))
    payload = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_access_token(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.jwt_algorithm],
        options={"require": ["sub", "iat", "exp"]},
    )


# ---------------------------------------------------------------------------
# JWT Revocation (Redis)
# ---------------------------------------------------------------------------

async def revoke_jwt(jti: str, ttl_seconds: int | None = None) -> None:
    """Add a JWT ID to the revocation list in Redis."""
    redis = await get_redis()
    ttl = ttl_seconds or settings.jwt_expire_days * 24 * 3600
    await redis.setex(f"jwt:revoked:{jti}", ttl, "1")


async def is_jwt_revoked(jti: str) -> bool:
    """Check if a JWT ID has been revoked."""
    redis = await get_redis()
    return await redis.exists(f"jwt:revoked:{jti}") > 0


# ---------------------------------------------------------------------------
# CSRF Token
# ---------------------------------------------------------------------------

def generate_csrf_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BearerCredential:
    token: str


@dataclass(frozen=True)
class PasswordCredential:
    email: str
    password: str


@dataclass(frozen=True)
class OAuthAssertion:
    """Identity asserted by a third-party provider after code exchange."""
    provider: str
    provider_id: str
    email: str
    name: str
    image: Optional[str] = None


Credential = Union[BearerCredential, PasswordCredential, OAuthAssertion]


class AuthenticatedUser:
    """Result of a successful authentication."""

    def __init__(self, user: User, method: str, claims: Optional[dict] = None):
        self.user = user
        self.user_id = user.id
        self.method = method  # bearer | password | oauth
        self.claims = claims or {}

    @property
    def jti(self) -> Optional[str]:
        return self.claims.get("jti")


async def authenticate(session: AsyncSession, credential: Credential) -> AuthenticatedUser:
    """Resolve any supported credential to a user or raise an AuthenticationError."""
    if isinstance(credential, BearerCredential):
        return await _authenticate_bearer(session, credential)
    if isinstance(credential, PasswordCredential):
        return await _authenticate_password(session, credential)
    if isinstance(credential, OAuthAssertion):
        return await _authenticate_oauth(session, credential)
    raise TypeError(f"Unsupported credential type: {type(credential).__name__}")


async def _authenticate_bearer(
    session: AsyncSession, credential: BearerCredential
) -> AuthenticatedUser:
    try:
        claims = decode_access_token(credential.token)
    except jwt.PyJWTError:
        raise InvalidToken()

    jti = claims.get("jti")
    if jti and await is_jwt_revoked(jti):
        raise InvalidToken("Session has been revoked")

    try:
        user_id = uuid.UUID(claims["sub"])
    except (KeyError, ValueError):
        raise InvalidToken()

    user = await session.get(User, user_id)
    if not user:
        raise InvalidToken("The user belonging to this token no longer exists")

    changed_at = as_utc(user.password_changed_at)
    if changed_at and int(claims["iat"]) < int(changed_at.timestamp()):
        raise StaleToken()

    return AuthenticatedUser(user=user, method="bearer", claims=claims)


async def _authenticate_password(
    session: AsyncSession, credential: PasswordCredential
) -> AuthenticatedUser:
    email = credential.email.strip().lower()
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    hashed = user.password_hash if user and user.password_hash else DUMMY_PASSWORD_HASH
    password_ok = verify_password(credential.password, hashed)

    if not user or not user.password_hash or not password_ok:
        log.warning("auth.login_failure", email=email, reason="bad_credentials")
        raise AuthenticationError("Incorrect email or password")

    if not user.email_verified:
        log.info("auth.login_failure", user_id=str(user.id), reason="unverified")
        raise EmailNotVerified()

    return AuthenticatedUser(user=user, method="password")


async def _authenticate_oauth(
    session: AsyncSession, assertion: OAuthAssertion
) -> AuthenticatedUser:
    email = assertion.email.strip().lower()
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if not user:
        result = await session.execute(
            select(User).where(
                User.provider == assertion.provider,
                User.provider_id == assertion.provider_id,
            )
        )
        user = result.scalar_one_or_none()

    if user and not user.provider:
        user.provider = assertion.provider
        user.provider_id = assertion.provider_id
        user.email_verified = True
        user.verification_token = None
        user.verification_expires = None
        if not user.image and assertion.image:
            user.image = assertion.image
        session.add(user)
        await session.flush()
        log.info("auth.oauth_linked", user_id=str(user.id), provider=assertion.provider)
    elif not user:
        user = User(
            email=email,
            name=assertion.name or email.split("@")[0],
            image=assertion.image,
            provider=assertion.provider,
            provider_id=assertion.provider_id,
            email_verified=True,
        )
        session.add(user)
        await session.flush()
        log.info("auth.oauth_registered", user_id=str(user.id), provider=assertion.provider)

    return AuthenticatedUser(user=user, method="oauth")


# ---------------------------------------------------------------------------
# Authentication dependencies
# ---------------------------------------------------------------------------

def extract_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    """Bearer header wins over the session cookie."""
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:].strip()
        if token:
            return token
    return request.cookies.get(SESSION_COOKIE)


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Depends(bearer_header),
    session: AsyncSession = Depends(get_session),
) -> AuthenticatedUser:
    """Main authentication dependency."""
    token = extract_token(request, authorization)
    if not token:
        raise AuthenticationError("You are not logged in! Please log in to get access")
    auth = await authenticate(session, BearerCredential(token))
    request.state.auth = auth
    structlog.contextvars.bind_contextvars(user_id=str(auth.user_id))
    return auth


# ---------------------------------------------------------------------------
# Authorization dependencies (workspace authority)
# ---------------------------------------------------------------------------

class WorkspaceAccess:
    """Authenticated user together with their authority in one workspace."""

    def __init__(self, auth: AuthenticatedUser, workspace: Workspace, authority: Authority):
        self.auth = auth
        self.user = auth.user
        self.user_id = auth.user_id
        self.workspace = workspace
        self.workspace_id = workspace.id
        self.authority = authority


async def require_workspace_member(
    workspace_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> WorkspaceAccess:
    """Owner, admin or member of the workspace in the path."""
    workspace, authority = await membership.require_authority(
        session, auth.user_id, workspace_id, Authority.MEMBER
    )
    return WorkspaceAccess(auth, workspace, authority)


async def require_workspace_admin(
    workspace_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> WorkspaceAccess:
    """Owner or admin of the workspace in the path."""
    workspace, authority = await membership.require_authority(
        session, auth.user_id, workspace_id, Authority.ADMIN
    )
    return WorkspaceAccess(auth, workspace, authority)


async def require_workspace_owner(
    workspace_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> WorkspaceAccess:
    """Only the workspace owner."""
    workspace, authority = await membership.require_authority(
        session, auth.user_id, workspace_id, Authority.OWNER
    )
    return WorkspaceAccess(auth, workspace, authority)
