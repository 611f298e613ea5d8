"""Schedule store - the single owner of the live project set.

Every mutation goes through ``update``: the mutator works on a private deep
copy which is re-sorted and swapped in only when it returns, so readers never
see a half-applied change and a failing mutator leaves the stored project as
it was. Readers always get copies; re-fetch after mutating.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Iterable, Optional

from ..errors import NotFoundError
from ..models.project import Project, Trigger
from ..templates.store import TemplateStore

logger = logging.getLogger(__name__)

# Sort position for triggers with no matching template blueprint (added by hand)
UNORDERED_TRIGGER_INDEX = sys.maxsize


@dataclass(frozen=True)
class UpcomingDeadline:
    """A dated, open sub-deadline with its project context."""

    project_id: str
    project_title: str
    sub_deadline_id: str
    title: str
    date: date


class ScheduleStore:
    """In-memory project set keyed by project id."""

    def __init__(
        self,
        templates: Optional[TemplateStore] = None,
        projects: Iterable[Project] = (),
    ) -> None:
        self._templates = templates
        self._projects: dict[str, Project] = {}
        for project in projects:
            self.add(project)

    def __len__(self) -> int:
        return len(self._projects)

    def __contains__(self, project_id: object) -> bool:
        return project_id in self._projects

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, project: Project) -> Project:
        """Add a project. Raises ValueError if the id is already present."""
        if project.id in self._projects:
            raise ValueError(f"Project {project.id} already exists")
        stored = project.model_copy(deep=True)
        stored.sort_sub_deadlines()
        self._projects[stored.id] = stored
        logger.info("Added project '%s' (ID: %s)", stored.title, stored.id)
        return stored.model_copy(deep=True)

    def remove(self, project_id: str) -> Project:
        """Delete a project and return its last state."""
        project = self._require(project_id)
        del self._projects[project_id]
        logger.info("Deleted project '%s' (ID: %s)", project.title, project_id)
        return project

    def update(self, project_id: str, mutator: Callable[[Project], Any]) -> Project:
        """Apply ``mutator`` to one project and return the fresh result.

        Raises:
            NotFoundError: unknown project id.
            ValueError: if the mutator changed the project id.
        """
        working = self._require(project_id).model_copy(deep=True)
        mutator(working)
        if working.id != project_id:
            raise ValueError("A mutator may not change the project id")
        working.sort_sub_deadlines()
        self._projects[project_id] = working
        logger.debug("Updated project %s", project_id)
        return working.model_copy(deep=True)

    def replace_all(self, projects: Iterable[Project]) -> None:
        """Swap the whole set at once (initial load or backup restore)."""
        fresh: dict[str, Project] = {}
        for project in projects:
            if project.id in fresh:
                raise ValueError(f"Project {project.id} appears twice")
            stored = project.model_copy(deep=True)
            stored.sort_sub_deadlines()
            fresh[stored.id] = stored
        self._projects = fresh
        logger.info("Replaced project set (%d projects)", len(fresh))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, project_id: str) -> Project:
        return self._require(project_id).model_copy(deep=True)

    def all(self) -> list[Project]:
        return [p.model_copy(deep=True) for p in self._projects.values()]

    def find_project_for_trigger(self, trigger_id: str) -> str:
        for project in self._projects.values():
            if any(t.id == trigger_id for t in project.triggers):
                return project.id
        raise NotFoundError("Trigger", trigger_id)

    def projects_all_triggers_active(self) -> list[Project]:
        """Projects whose (non-empty) trigger set has fully fired."""
        return [p.model_copy(deep=True) for p in self._projects.values() if p.all_triggers_active]

    def triggers_for_project(self, project_id: str) -> list[Trigger]:
        """Project triggers in template-authored order, then by name.

        Triggers with no matching blueprint (manual, or template gone) sort last.
        """
        project = self._require(project_id)
        template = self._templates.get(project.template_id) if self._templates else None

        def order_key(trigger: Trigger) -> tuple[int, str]:
            index = UNORDERED_TRIGGER_INDEX
            if template is not None and trigger.originating_blueprint_id:
                bp = template.trigger_blueprint(trigger.originating_blueprint_id)
                if bp is not None:
                    index = bp.order_index
            return index, trigger.name

        return [t.model_copy() for t in sorted(project.triggers, key=order_key)]

    def upcoming_sub_deadlines(self, limit: Optional[int] = None) -> list[UpcomingDeadline]:
        """Open, resolved sub-deadlines across unfinished projects, earliest first."""
        upcoming: list[UpcomingDeadline] = []
        for project in self._projects.values():
            if project.is_fully_completed:
                continue
            for sub in project.sub_deadlines:
                if sub.is_completed or sub.unresolved:
                    continue
                upcoming.append(
                    UpcomingDeadline(
                        project_id=project.id,
                        project_title=project.title,
                        sub_deadline_id=sub.id,
                        title=sub.title,
                        date=sub.date,
                    )
                )
        upcoming.sort(key=lambda u: u.date)
        return upcoming if limit is None else upcoming[:limit]

    def _require(self, project_id: str) -> Project:
        project = self._projects.get(project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        return project
