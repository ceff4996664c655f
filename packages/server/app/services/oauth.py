"""
Google OAuth 2.0 authorization-code flow.

Produces an OAuthAssertion; linking or creating the local account is
done by ``app.core.auth.authenticate``.
"""

from __future__ import annotations

from urllib.parse import urlencode

import httpx
import structlog

from app.core.auth import OAuthAssertion
from app.core.config import get_settings
from app.core.errors import AuthenticationError, DependencyError

log = structlog.get_logger()
settings = get_settings()

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
OAUTH_TIMEOUT_SECONDS = 15.0


def google_authorization_url(state: str) -> str:
    params = {
        "client_id": settings.google_client_id,
        "redirect_uri": settings.google_redirect_uri,
        "response_type": "code",
        "scope": "openid email profile",
        "state": state,
        "prompt": "select_account",
    }
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


async def exchange_google_code(code: str) -> OAuthAssertion:
    """Swap an authorization code for the user's Google profile."""
    try:
        async with httpx.AsyncClient(timeout=OAUTH_TIMEOUT_SECONDS) as client:
            token_resp = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": settings.google_client_id,
                    "client_secret": settings.google_client_secret,
                    "redirect_uri": settings.google_redirect_uri,
                    "grant_type": "authorization_code",
                },
            )
            if token_resp.status_code == 400:
                raise AuthenticationError("Google sign-in failed. Please try again")
            token_resp.raise_for_status()
            access_token = token_resp.json()["access_token"]

            info_resp = await client.get(
                GOOGLE_USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"}
            )
            info_resp.raise_for_status()
            info = info_resp.json()
    except (httpx.HTTPError, KeyError, ValueError) as exc:
        log.error("oauth.google_exchange_failed", error=str(exc))
        raise DependencyError("Could not reach Google. Please try again later.") from exc

    if not info.get("email") or not info.get("email_verified", False):
        raise AuthenticationError("Your Google account has no verified email address")

    return OAuthAssertion(
        provider="google",
        provider_id=str(info["sub"]),
        email=info["email"],
        name=info.get("name") or info["email"].split("@")[0],
        image=info.get("picture"),
    )
