# SQLModel tables, imported so Alembic and create_all see the full metadata.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .user import User  # noqa: F401
from .workspace import Workspace  # noqa: F401
from .workspace_member import WorkspaceMember  # noqa: F401
from .workspace_invite import WorkspaceInvite  # noqa: F401
from .project import Project  # noqa: F401
from .task import Task  # noqa: F401
from .assignments import TaskAssignment  # noqa: F401
from .comment import TaskComment  # noqa: F401
from .attachment import TaskAttachment  # noqa: F401
