"""
Outbound email via the Resend HTTP API.

Messages are sent once; any transport or provider failure surfaces as a
DependencyError so the calling request rolls back. Without an API key the
message is logged instead of sent (local development).
"""

from __future__ import annotations

import html

import httpx
import structlog

from app.core.config import get_settings
from app.core.errors import DependencyError

log = structlog.get_logger()
settings = get_settings()

RESEND_SEND_URL = "https://api.resend.com/emails"
RESEND_TIMEOUT_SECONDS = 20.0


async def send_email(to: str, subject: str, body_html: str) -> None:
    if not settings.resend_api_key:
        log.info("email.skipped_no_provider", to=to, subject=subject)
        return

    payload = {
        "from": settings.email_from,
        "to": [to],
        "subject": subject,
        "html": body_html,
    }
    headers = {
        "Authorization": f"Bearer {settings.resend_api_key}",
        "Content-Type": "application/json",
    }
    try:
        async with httpx.AsyncClient(timeout=RESEND_TIMEOUT_SECONDS) as client:
            response = await client.post(RESEND_SEND_URL, headers=headers, json=payload)
            response.raise_for_status()
    except httpx.HTTPError as exc:
        log.error("email.send_failed", to=to, subject=subject, error=str(exc))
        raise DependencyError("There was an error sending the email. Try again later!") from exc

    log.info("email.sent", to=to, subject=subject)


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def _link_email(heading: str, text: str, url: str, action: str) -> str:
    return (
        f"<h2>{html.escape(heading)}</h2>"
        f"<p>{html.escape(text)}</p>"
        f'<p><a href="{html.escape(url, quote=True)}">{html.escape(action)}</a></p>'
        f"<p>If the button does not work, copy this link: {html.escape(url)}</p>"
    )


async def send_verification_email(*, to: str, name: str, token: str) -> None:
    url = f"{settings.client_url}/verify-email?token={token}"
    body = _link_email(
        f"Welcome to Taskard, {name}!",
        "Please confirm your email address. This link is valid for one hour.",
        url,
        "Verify email",
    )
    await send_email(to, "Verify your Taskard account", body)


async def send_password_reset_email(*, to: str, token: str) -> None:
    url = f"{settings.client_url}/reset-password?token={token}"
    body = _link_email(
        "Reset your password",
        "Someone asked to reset your Taskard password. The link expires in one hour. "
        "If this wasn't you, ignore this email.",
        url,
        "Reset password",
    )
    await send_email(to, "Your Taskard password reset link", body)


async def send_workspace_invite_email(
    *, to: str, workspace_id: str, workspace_name: str, inviter_name: str, token: str
) -> None:
    url = f"{settings.client_url}/workspaces/{workspace_id}/join?token={token}"
    body = _link_email(
        f"Join {workspace_name} on Taskard",
        f"{inviter_name} invited you to collaborate in {workspace_name}. "
        f"The invitation expires in {settings.invite_ttl_days} days.",
        url,
        "Accept invitation",
    )
    await send_email(to, f"You've been invited to {workspace_name}", body)
