from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from .models import Base, Project


@dataclass(slots=True)
class ProjectCreate:
    source: str
    external_id: str
    title: str
    link: str
    budget_text: str
    amount_min: int
    amount_max: int


@dataclass(slots=True)
class StoredProject:
    id: int
    source: str
    external_id: str
    title: str
    link: str
    budget_text: str
    amount_min: int
    amount_max: int
    created_at: datetime


class Repository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_if_not_exists(self, data: ProjectCreate) -> tuple[StoredProject, bool]:
        """Insert a project unless (source, external_id) is already stored.

        Returns the stored row and whether this call created it. An existing
        row is returned untouched.
        """
        async with self._session_factory() as session:
            project = Project(
                source=data.source,
                external_id=data.external_id,
                title=data.title,
                link=data.link,
                budget_text=data.budget_text,
                amount_min=data.amount_min,
                amount_max=data.amount_max,
            )
            session.add(project)
            try:
                await session.commit()
                return _to_stored(project), True
            except IntegrityError:
                await session.rollback()

        existing = await self.get_project(data.source, data.external_id)
        if existing is None:  # pragma: no cover - row vanished between insert and select
            raise RuntimeError(f"Project {data.source}/{data.external_id} conflicted but is missing")
        return existing, False

    async def get_project(self, source: str, external_id: str) -> StoredProject | None:
        async with self._session_factory() as session:
            stmt = select(Project).where(Project.source == source, Project.external_id == external_id)
            project = await session.scalar(stmt)
            return _to_stored(project) if project else None

    async def count_projects(self, *, source: str | None = None) -> int:
        async with self._session_factory() as session:
            stmt = select(func.count(Project.id))
            if source:
                stmt = stmt.where(Project.source == source)
            return int(await session.scalar(stmt) or 0)


def _to_stored(project: Project) -> StoredProject:
    return StoredProject(
        id=project.id,
        source=project.source,
        external_id=project.external_id,
        title=project.title,
        link=project.link,
        budget_text=project.budget_text,
        amount_min=project.amount_min,
        amount_max=project.amount_max,
        created_at=project.created_at,
    )


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
