"""
Project persistence collaborators.

Both stores return :class:`ProjectRecord` instances, so stored plot points are
normalized to list form at this boundary and every reader sees one shape.

- ``SqlProjectStore``: SQLAlchemy async store over the ``projects`` table
- ``InMemoryProjectStore``: dict-backed store for tests and embedding
"""
from __future__ import annotations

import copy
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.attributes import flag_modified

from storyframe.database import get_session_factory
from storyframe.errors import ProjectNotFound
from storyframe.models import Project
from storyframe.schemas import ProjectRecord, is_normalized, normalize_act_plot_points
from storyframe.utils.logging_config import get_logger

logger = get_logger("storyframe.store")


class InMemoryProjectStore:
    """Holds raw project documents keyed by project id."""

    def __init__(self, projects: Optional[Mapping[str, Mapping[str, Any]]] = None):
        self._projects: Dict[str, Dict[str, Any]] = {
            project_id: copy.deepcopy(dict(doc)) for project_id, doc in (projects or {}).items()
        }

    def put(self, project_id: str, document: Mapping[str, Any]) -> None:
        self._projects[project_id] = copy.deepcopy(dict(document))

    async def get_project(self, project_id: str) -> Optional[ProjectRecord]:
        document = self._projects.get(project_id)
        if document is None:
            return None
        return ProjectRecord.model_validate(document)

    async def save_plot_points(self, project_id: str, act_key: str, plot_points: Sequence[str]) -> None:
        document = self._projects.get(project_id)
        if document is None:
            raise ProjectNotFound(project_id)
        document.setdefault("plotPoints", {})[act_key] = list(plot_points)


class SqlProjectStore:
    """Reads and writes project documents in the ``projects`` table."""

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_factory = session_factory

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    async def get_project(self, project_id: str) -> Optional[ProjectRecord]:
        async with self.session_factory() as session:
            result = await session.execute(select(Project).where(Project.id == project_id))
            project = result.scalar_one_or_none()

        if project is None:
            logger.info("Project %s not found", project_id, extra={"project_id": project_id})
            return None
        return ProjectRecord.model_validate(project.project_context or {})

    async def list_project_ids(self) -> List[str]:
        async with self.session_factory() as session:
            result = await session.execute(select(Project.id).order_by(Project.id))
            return [row[0] for row in result.fetchall()]

    async def save_plot_points(self, project_id: str, act_key: str, plot_points: Sequence[str]) -> None:
        """Store one act's plot points in list form."""
        async with self.session_factory() as session:
            result = await session.execute(select(Project).where(Project.id == project_id))
            project = result.scalar_one_or_none()
            if project is None:
                raise ProjectNotFound(project_id)

            content = copy.deepcopy(project.project_context or {})
            content.setdefault("plotPoints", {})[act_key] = list(plot_points)
            project.project_context = content
            flag_modified(project, "project_context")
            await session.commit()

        logger.info(
            "Saved %d plot points", len(plot_points),
            extra={"project_id": project_id, "act_key": act_key},
        )

    async def normalize_plot_points(self, project_id: str, dry_run: bool = True) -> List[str]:
        """Rewrite legacy plot-point shapes of one project to list form.

        Returns a description of each act that needed rewriting.
        """
        changes: List[str] = []
        async with self.session_factory() as session:
            result = await session.execute(select(Project).where(Project.id == project_id))
            project = result.scalar_one_or_none()
            if project is None:
                raise ProjectNotFound(project_id)

            content = copy.deepcopy(project.project_context or {})
            stored = content.get("plotPoints") or {}
            for act_key, raw in stored.items():
                if is_normalized(raw):
                    continue
                normalized = normalize_act_plot_points(raw)
                changes.append(f"  {act_key}: {type(raw).__name__} -> list ({len(normalized)} plot points)")
                stored[act_key] = normalized

            if changes and not dry_run:
                content["plotPoints"] = stored
                project.project_context = content
                flag_modified(project, "project_context")
                await session.commit()

        return changes
