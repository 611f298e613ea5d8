"""Deadline service - the operation surface offered to the presentation layer.

Wires the template catalog, the schedule store and the trigger engine
together, and saves the whole project set through the repository after every
mutating operation (write-through). A failed save raises PersistenceError;
the in-memory change stays applied so the caller can retry the save.
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Callable, Optional, Union

from .config.config import Config
from .database import BackupData, InMemoryRepository, JsonFileRepository, ProjectRepository
from .database import export_backup as write_backup
from .database import import_backup as read_backup
from .errors import (
    CalendarOverflow,
    NoOpWarning,
    NotFoundError,
    TemplateIntegrityError,
    UnresolvedDateError,
)
from .models import Project, SubDeadline, Subtask, Template, Trigger, new_id
from .schedule import ScheduleStore, UpcomingDeadline
from .templates import TemplateStore, derive_template_from_project, parse_template, validate_template
from .timeline import (
    TriggerEngine,
    apply_reanchor,
    instantiate,
    link_to_template,
    remove_trigger,
    resolve_against,
    sync_project,
)

logger = logging.getLogger(__name__)

STANDALONE_PROJECT_ID = "00000000-0000-0000-0000-000000000001"
STANDALONE_PROJECT_TITLE = "Standalone Deadlines"


class DeadlineService:
    """Single-owner facade over the scheduling core."""

    def __init__(
        self,
        templates: TemplateStore,
        repository: Optional[ProjectRepository] = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.templates = templates
        self.repository = repository if repository is not None else InMemoryRepository()
        self.store = ScheduleStore(templates=templates)
        self.engine = TriggerEngine(self.store, clock=clock)

    @classmethod
    def from_config(cls, config: Config) -> "DeadlineService":
        """Build a service with the storage backend named in ``config``."""
        templates = TemplateStore(templates_file=config.templates_file)
        if config.storage_backend.lower() == "supabase":
            from .database.client import SupabaseRepository

            repository: ProjectRepository = SupabaseRepository(config.supabase_url, config.supabase_key)
        else:
            repository = JsonFileRepository(config.projects_path)
        return cls(templates, repository)

    def load(self) -> None:
        """Load templates (seed and saved runtime ones) and the persisted project set."""
        self.templates.load(user_templates=self.repository.load_templates())
        self.store.replace_all(self._relink(self.repository.load_all()))

    def _relink(self, projects: list[Project]) -> list[Project]:
        # Projects saved before links were stored carry no offsets
        for project in projects:
            template = self.templates.get(project.template_id)
            if template is None:
                continue
            if any(s.originating_blueprint_id and s.offset is None for s in project.sub_deadlines):
                link_to_template(project, template, self.templates.dependencies(template.id))
                logger.info("Relinked project %s to template %s", project.id, template.id)
        return projects

    def _persist(self) -> None:
        self.repository.save_all(self.store.all())

    def _persist_templates(self) -> None:
        self.repository.save_templates(self.templates.user_templates())

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def instantiate_project(self, template_id: str, final_deadline_date: date, title: str) -> Project:
        """Create, store and persist a project from a template.

        Raises:
            NotFoundError: unknown template id.
            InstantiationError: an offset overflowed; nothing is stored.
        """
        template = self.templates.template_by_id(template_id)
        project = self.store.add(
            instantiate(
                template,
                final_deadline_date,
                title,
                dependencies=self.templates.dependencies(template_id),
            )
        )
        self._persist()
        return project

    def add_project(self, project: Project) -> Project:
        """Store a manually built project (no template)."""
        stored = self.store.add(project)
        self._persist()
        return stored

    def delete_project(self, project_id: str) -> None:
        self.store.remove(project_id)
        self._persist()

    def get_project(self, project_id: str) -> Project:
        return self.store.get(project_id)

    def projects(self) -> list[Project]:
        return self.store.all()

    def reschedule_project(self, project_id: str, final_deadline_date: date) -> Project:
        """Move the final deadline and recompute every template-derived date.

        Unresolved sub-deadlines move to the new final deadline.
        """

        def mutator(project: Project) -> None:
            project.final_deadline_date = final_deadline_date
            apply_reanchor(project)

        project = self.store.update(project_id, mutator)
        self._persist()
        return project

    # ------------------------------------------------------------------
    # Sub-deadlines
    # ------------------------------------------------------------------

    def toggle_sub_deadline_completion(self, sub_deadline_id: str, project_id: str) -> Project:
        def mutator(project: Project) -> None:
            sub = project.sub_deadline(sub_deadline_id)
            sub.is_completed = not sub.is_completed
            logger.info("Toggled completion for sub-deadline '%s' to %s", sub.title, sub.is_completed)

        project = self.store.update(project_id, mutator)
        self._persist()
        return project

    def update_sub_deadline(
        self,
        project_id: str,
        sub_deadline_id: str,
        title: Optional[str] = None,
        new_date: Optional[date] = None,
    ) -> Project:
        """Edit a sub-deadline's title and/or date.

        A hand-set date on a trigger-derived sub-deadline is overwritten the
        next time that trigger is activated or deactivated.

        Raises:
            UnresolvedDateError: when setting the date of an unresolved sub-deadline.
        """

        def mutator(project: Project) -> None:
            sub = project.sub_deadline(sub_deadline_id)
            if new_date is not None:
                if sub.unresolved:
                    raise UnresolvedDateError(sub.id, sub.title)
                sub.date = new_date
            if title is not None:
                sub.title = title

        project = self.store.update(project_id, mutator)
        self._persist()
        return project

    def delete_sub_deadline(self, project_id: str, sub_deadline_id: str) -> Project:
        def mutator(project: Project) -> None:
            sub = project.sub_deadline(sub_deadline_id)
            project.sub_deadlines.remove(sub)

        project = self.store.update(project_id, mutator)
        self._persist()
        return project

    def add_standalone_deadline(self, title: str, due: date) -> SubDeadline:
        """File a one-off deadline under the shared standalone project."""
        sub = SubDeadline(title=title, date=due)
        if STANDALONE_PROJECT_ID in self.store:

            def mutator(project: Project) -> None:
                sub.position = project.next_position()
                project.sub_deadlines.append(sub.model_copy())

            self.store.update(STANDALONE_PROJECT_ID, mutator)
        else:
            self.store.add(
                Project(
                    id=STANDALONE_PROJECT_ID,
                    title=STANDALONE_PROJECT_TITLE,
                    final_deadline_date=date.max,
                    sub_deadlines=[sub.model_copy()],
                )
            )
        self._persist()
        return sub

    def add_subtask(self, project_id: str, sub_deadline_id: str, title: str) -> Subtask:
        subtask = Subtask(title=title)
        self.store.update(
            project_id, lambda p: p.sub_deadline(sub_deadline_id).subtasks.append(subtask.model_copy())
        )
        self._persist()
        return subtask

    def toggle_subtask_completion(self, project_id: str, sub_deadline_id: str, subtask_id: str) -> Project:
        def mutator(project: Project) -> None:
            for subtask in project.sub_deadline(sub_deadline_id).subtasks:
                if subtask.id == subtask_id:
                    subtask.is_completed = not subtask.is_completed
                    return
            raise NotFoundError("Subtask", subtask_id)

        project = self.store.update(project_id, mutator)
        self._persist()
        return project

    def is_sub_deadline_pending(self, project_id: str, sub_deadline_id: str) -> bool:
        """True while the sub-deadline waits on a trigger that has not fired."""
        return self.store.get(project_id).sub_deadline(sub_deadline_id).unresolved

    def original_template_date(self, sub_deadline_id: str, project_id: str) -> Optional[date]:
        """What the template alone would schedule this sub-deadline for.

        Resolved against the current final deadline (or the anchoring
        trigger's activation date). None for manual entries, a pending
        anchor, or a template that is no longer in the catalog.
        """
        project = self.store.get(project_id)
        sub = project.sub_deadline(sub_deadline_id)
        template = self.templates.get(project.template_id)
        if template is None or sub.originating_blueprint_id is None:
            return None
        bp = template.sub_deadline_blueprint(sub.originating_blueprint_id)
        if bp is None:
            return None
        activations = {
            t.originating_blueprint_id: t.activation_date if t.is_active else None
            for t in project.triggers
            if t.originating_blueprint_id
        }
        try:
            return resolve_against(bp.offset, project.final_deadline_date, activations)
        except CalendarOverflow as exc:
            logger.warning("original_date_unavailable sub_deadline=%s error=%s", sub_deadline_id, exc)
            return None

    def upcoming_sub_deadlines(self, limit: Optional[int] = None) -> list[UpcomingDeadline]:
        return self.store.upcoming_sub_deadlines(limit)

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def activate_trigger(self, trigger_id: str) -> Optional[NoOpWarning]:
        """Activate a trigger; returns NoOpWarning if it was already active."""
        warning = self.engine.activate(trigger_id)
        if warning is None:
            self._persist()
        return warning

    def deactivate_trigger(self, trigger_id: str) -> Optional[NoOpWarning]:
        """Deactivate a trigger; returns NoOpWarning if it was already pending."""
        warning = self.engine.deactivate(trigger_id)
        if warning is None:
            self._persist()
        return warning

    def triggers_for_project(self, project_id: str) -> list[Trigger]:
        return self.store.triggers_for_project(project_id)

    def projects_all_triggers_active(self) -> list[Project]:
        return self.store.projects_all_triggers_active()

    def add_trigger(self, project_id: str, name: str) -> Trigger:
        """Add a hand-made trigger (no template blueprint) to a project."""
        trigger = Trigger(name=name)
        self.store.update(project_id, lambda p: p.triggers.append(trigger.model_copy()))
        self._persist()
        return trigger

    def delete_trigger(self, trigger_id: str) -> Project:
        """Remove a trigger and unlink the sub-deadlines anchored to it.

        Unlinked sub-deadlines become plain manual entries: they keep their
        current date and are no longer unresolved.
        """
        project_id = self.store.find_project_for_trigger(trigger_id)
        project = self.store.update(project_id, lambda p: remove_trigger(p, trigger_id))
        self._persist()
        return project

    def rename_trigger(self, trigger_id: str, name: str) -> Project:
        """Rename a trigger. Its link to the template blueprint is kept."""
        project_id = self.store.find_project_for_trigger(trigger_id)

        def mutator(project: Project) -> None:
            trigger = project.trigger(trigger_id)
            logger.info("Renamed trigger '%s' to '%s'", trigger.name, name)
            trigger.name = name

        project = self.store.update(project_id, mutator)
        self._persist()
        return project

    # ------------------------------------------------------------------
    # Templates and backups
    # ------------------------------------------------------------------

    def create_template_from_project(
        self, project_id: str, name: str, template_id: Optional[str] = None
    ) -> Template:
        """Capture a project's current schedule as a new catalog template."""
        project = self.store.get(project_id)
        template = derive_template_from_project(
            project,
            name=name,
            template_id=template_id or f"custom-{new_id()[:8]}",
        )
        template = self.templates.add(template)
        self._persist_templates()
        return template

    def update_template(self, raw: Union[Template, dict]) -> Template:
        """Replace a template and carry the edit over to its projects.

        Every project built from the template is synced: untouched titles
        follow renamed blueprints, changed offsets are re-resolved, added
        blueprints appear and removed ones are dropped or unlinked.
        All-or-nothing: the edit is tried on copies first, so a
        CalendarOverflow in any project leaves the catalog and every
        project untouched.

        Raises:
            NotFoundError: no template has that id.
            TemplateIntegrityError: the new version is malformed.
            CalendarOverflow: a new offset leaves the calendar for some project.
        """
        new = parse_template(raw)
        validate_template(new)
        old = self.templates.template_by_id(new.id)
        linked = [p for p in self.store.all() if p.template_id == new.id]
        for project in linked:
            try:
                sync_project(project, old, new)
            except CalendarOverflow as exc:
                logger.error("template_update_failed template=%s project=%s error=%s", new.id, project.id, exc)
                raise

        self.templates.replace(new)
        for project in linked:
            self.store.update(project.id, lambda p: sync_project(p, old, new))
        logger.info("template_updated template=%s projects=%d", new.id, len(linked))
        self._persist_templates()
        self._persist()
        return new

    def delete_template(self, template_id: str) -> Template:
        """Remove a runtime template from the catalog.

        Projects built from it keep their dates and trigger links.

        Raises:
            NotFoundError: no template has that id.
            TemplateIntegrityError: the template is a built-in or file template.
        """
        template = self.templates.remove(template_id)
        self._persist_templates()
        return template

    def export_backup(self, filepath: Union[str, Path]) -> BackupData:
        return write_backup(filepath, self.store.all(), self.templates.templates())

    def import_backup(self, filepath: Union[str, Path]) -> BackupData:
        """Replace the project set with a backup and add its unknown templates.

        Templates already in the catalog are kept as they are; invalid ones
        are logged and skipped.
        """
        backup = read_backup(filepath)
        for raw in backup.templates:
            if self.templates.get(raw.get("id")) is not None:
                continue
            try:
                self.templates.add(raw)
            except TemplateIntegrityError as exc:
                logger.warning("backup_template_rejected %s", exc)
                self.templates.rejected.append(exc)
        self.store.replace_all(self._relink(backup.projects))
        self._persist_templates()
        self._persist()
        return backup
