from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class TaskStatus(str, Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    REVIEW = "REVIEW"
    DONE = "DONE"
    CANCELED = "CANCELED"


class TaskPriority(str, Enum):
    URGENT = "URGENT"
    HIGH = "HIGH"
    NORMAL = "NORMAL"
    LOW = "LOW"


class Role(str, Enum):
    """Role carried by a workspace membership row. Ownership is not a role."""
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class APIResponse(BaseModel, Generic[T]):
    status: str = "success"
    data: Optional[T] = None


class ErrorResponse(BaseModel):
    status: str
    message: str
