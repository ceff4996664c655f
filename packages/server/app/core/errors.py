"""
Domain error taxonomy.

Services raise these; the exception handlers registered in ``app.main``
render them as ``{"status": "fail" | "error", "message": ...}``. Every
subclass here is an expected, operational failure; anything else that
reaches the handlers is treated as a bug.
"""

from __future__ import annotations


class AppError(Exception):
    status_code: int = 500
    message: str = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)

    @property
    def status(self) -> str:
        """``fail`` for client errors, ``error`` for server-side failures."""
        return "fail" if 400 <= self.status_code < 500 else "error"


# ---------------------------------------------------------------------------
# Kinds
# ---------------------------------------------------------------------------

class ValidationError(AppError):
    status_code = 400
    message = "Invalid request"


class AuthenticationError(AppError):
    status_code = 401
    message = "You are not logged in"


class AuthorizationError(AppError):
    status_code = 403
    message = "You do not have permission to perform this action"


class NotFoundError(AppError):
    status_code = 404
    message = "Not found"


class ConflictError(AppError):
    status_code = 409
    message = "Conflict"


class DependencyError(AppError):
    """An outbound integration (email, image store, OAuth provider) failed."""
    status_code = 500
    message = "An external service failed. Please try again later."


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

class InvalidToken(AuthenticationError):
    message = "Invalid or expired session. Please log in again"


class StaleToken(AuthenticationError):
    message = "Password was changed recently. Please log in again"


class EmailNotVerified(AuthenticationError):
    message = "Please verify your email before logging in"


# ---------------------------------------------------------------------------
# Membership & access
# ---------------------------------------------------------------------------

class AccessDenied(AuthorizationError):
    message = "Access denied"


class WorkspaceNotFound(NotFoundError):
    """Raised by the authority lookup; callers present it as AccessDenied."""
    message = "Workspace not found"


class AlreadyMember(ConflictError):
    message = "User is already a member of this workspace"


class InviteAlreadySent(ConflictError):
    message = "Invitation already sent to this email"


class InvalidOrExpiredInvite(ValidationError):
    message = "Invalid or expired invitation"


class NotAWorkspaceMember(ValidationError):
    message = "User must be a member of the workspace to be assigned"
