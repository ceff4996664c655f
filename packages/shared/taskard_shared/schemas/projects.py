from typing import Optional, List
from pydantic import BaseModel, Field, model_validator
from uuid import UUID
from datetime import datetime

from .tasks import TaskRead


class ProjectBase(BaseModel):
    name: str = Field(min_length=3, max_length=200)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("Project end date must not precede its start date")
        return self


class ProjectCreate(ProjectBase):
    pass


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=200)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class ProjectRead(ProjectBase):
    id: UUID
    workspace_id: UUID
    creator_id: Optional[UUID] = None
    task_count: int = 0
    task_done_count: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProjectDetail(ProjectRead):
    """A project together with its root tasks and their subtasks."""
    tasks: List[TaskRead] = Field(default_factory=list)
