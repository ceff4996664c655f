#!/usr/bin/env python3
"""Seed a development database with a workspace, two users, projects and tasks.

Usage:
    python scripts/seed_dev_data.py

Uses TASKARD_DATABASE_URL (or the settings default). Safe to re-run: rows
have fixed ids and are merged.
"""

import asyncio
import uuid
from datetime import timedelta

from app.core.auth import hash_password
from app.core.database import get_session_context
from app.models.base import utcnow
from app.models.project import Project
from app.models.task import Task
from app.models.user import User
from app.models.workspace import Workspace
from app.models.workspace_member import WorkspaceMember

DEV_PASSWORD = "Taskard-dev-2024!"

# Deterministic UUIDs for reproducibility
WORKSPACE_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
OWNER_ID = uuid.UUID("00000000-0000-0000-0000-000000000010")
MEMBER_ID = uuid.UUID("00000000-0000-0000-0000-000000000011")
MEMBERSHIP_IDS = [uuid.UUID(f"00000000-0000-0000-0000-0000000000{i}0") for i in (2, 3)]
PROJECT_IDS = [uuid.UUID(f"00000000-0000-0000-0000-0000000001{i:02d}") for i in range(2)]
TASK_IDS = [uuid.UUID(f"00000000-0000-0000-0000-0000000002{i:02d}") for i in range(8)]


async def seed():
    now = utcnow()
    password_hash = hash_password(DEV_PASSWORD)

    async with get_session_context() as session:
        await session.merge(User(
            id=OWNER_ID, email="owner@taskard.local", name="Olivia Owner",
            password_hash=password_hash, email_verified=True,
        ))
        await session.merge(User(
            id=MEMBER_ID, email="member@taskard.local", name="Max Member",
            password_hash=password_hash, email_verified=True,
        ))
        await session.flush()

        await session.merge(Workspace(id=WORKSPACE_ID, name="Taskard Dev", owner_id=OWNER_ID))
        await session.flush()
        for membership_id, (user_id, role) in zip(
            MEMBERSHIP_IDS, ((OWNER_ID, "ADMIN"), (MEMBER_ID, "MEMBER"))
        ):
            await session.merge(WorkspaceMember(
                id=membership_id, user_id=user_id, workspace_id=WORKSPACE_ID, role=role,
            ))

        for pid, name in zip(PROJECT_IDS, ("Website relaunch", "Mobile app")):
            await session.merge(Project(
                id=pid, workspace_id=WORKSPACE_ID, name=name, creator_id=OWNER_ID,
                start_date=now, end_date=now + timedelta(days=60),
            ))
        await session.flush()

        task_specs = [
            ("Set up CI pipeline", "HIGH", "DONE"),
            ("Design landing page", "URGENT", "IN_PROGRESS"),
            ("Write copy for pricing page", "NORMAL", "TODO"),
            ("Fix login redirect bug", "HIGH", "REVIEW"),
            ("Add push notifications", "NORMAL", "TODO"),
            ("Offline mode", "LOW", "TODO"),
            ("App store screenshots", "NORMAL", "IN_PROGRESS"),
            ("Crash reporting", "HIGH", "CANCELED"),
        ]
        for i, (tid, (title, priority, status)) in enumerate(zip(TASK_IDS, task_specs)):
            await session.merge(Task(
                id=tid,
                project_id=PROJECT_IDS[0] if i < 4 else PROJECT_IDS[1],
                title=title,
                priority=priority,
                status=status,
                creator_id=OWNER_ID if i % 2 == 0 else MEMBER_ID,
                due_date=now + timedelta(days=7 * (i + 1)),
            ))

    print(f"Seeded workspace '{WORKSPACE_ID}' with 2 users, 2 projects, 8 tasks.")
    print(f"Log in as owner@taskard.local or member@taskard.local with password {DEV_PASSWORD!r}.")


if __name__ == "__main__":
    asyncio.run(seed())
