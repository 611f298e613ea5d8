"""Project instantiator - builds a dated Project from a Template.

Final-deadline anchored blueprints get their date immediately. Blueprints
anchored to a trigger get the unresolved placeholder (the final deadline
itself, flagged ``unresolved``) until that trigger is activated.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from ..errors import CalendarOverflow, InstantiationError
from ..models.project import Project, SubDeadline, Trigger, new_id
from ..models.template import AnchorKind, Template, TemplateSubDeadlineBlueprint
from ..templates.store import DependencyIndex, build_dependency_index
from .offsets import resolve

logger = logging.getLogger(__name__)


def instantiate(
    template: Template,
    final_deadline_date: date,
    title: str,
    project_id: Optional[str] = None,
    dependencies: Optional[DependencyIndex] = None,
) -> Project:
    """Create a Project from ``template``.

    All-or-nothing: if any offset overflows the calendar no Project is built.

    Args:
        template: A validated template.
        final_deadline_date: The project's final deadline.
        title: Project title.
        project_id: Explicit id (a fresh uuid when omitted).
        dependencies: Precomputed dependency index of ``template``.

    Returns:
        Project with pending triggers and sub-deadlines sorted by date.

    Raises:
        InstantiationError: wrapping the CalendarOverflow that aborted it.
    """
    try:
        triggers = [
            Trigger(
                name=bp.name,
                planned_date=(
                    resolve(bp.offset, final_deadline_date)
                    if bp.offset is not None and bp.offset.anchor.kind is AnchorKind.FINAL_DEADLINE
                    else None
                ),
                originating_blueprint_id=bp.id,
            )
            for bp in template.trigger_blueprints
        ]
        sub_deadlines = [
            _build_sub_deadline(bp, final_deadline_date, position)
            for position, bp in enumerate(template.sub_deadline_blueprints)
        ]
    except CalendarOverflow as exc:
        logger.error(
            "instantiate_failed template=%s deadline=%s error=%s",
            template.id,
            final_deadline_date.isoformat(),
            exc,
        )
        raise InstantiationError(
            f"Cannot instantiate template '{template.id}' for {final_deadline_date.isoformat()}: {exc}"
        ) from exc

    project = Project(
        id=project_id or new_id(),
        title=title,
        final_deadline_date=final_deadline_date,
        sub_deadlines=sub_deadlines,
        triggers=triggers,
        template_id=template.id,
        template_name=template.name,
    )
    link_to_template(project, template, dependencies)
    logger.info(
        "instantiated project=%s template=%s sub_deadlines=%d triggers=%d",
        project.id,
        template.id,
        len(project.sub_deadlines),
        len(project.triggers),
    )
    return project


def link_to_template(
    project: Project,
    template: Template,
    dependencies: Optional[DependencyIndex] = None,
) -> None:
    """Copy blueprint offsets onto the project and wire sub-deadlines to triggers.

    Uses the template's dependency index to find, for each trigger, the
    sub-deadlines whose offset anchors to it. A sub-deadline anchored to a
    trigger blueprint the project no longer has becomes a manual entry.
    Dates are not touched.
    """
    if dependencies is None:
        dependencies = build_dependency_index(template)

    for sub in project.sub_deadlines:
        bp = template.sub_deadline_blueprint(sub.originating_blueprint_id) if sub.originating_blueprint_id else None
        if bp is not None:
            sub.offset = bp.offset
            sub.trigger_id = None

    for trig in project.triggers:
        bp = template.trigger_blueprint(trig.originating_blueprint_id) if trig.originating_blueprint_id else None
        if bp is None:
            continue
        trig.offset = bp.offset
        dependent_bp_ids = set(dependencies.sub_deadlines_for(bp.id))
        for sub in project.sub_deadlines:
            if sub.originating_blueprint_id in dependent_bp_ids:
                sub.trigger_id = trig.id

    for sub in project.sub_deadlines:
        if sub.offset is not None and sub.offset.trigger_id and sub.trigger_id is None:
            logger.info("Sub-deadline '%s' lost its trigger; keeping it as a manual entry", sub.title)
            unlink_sub_deadline(sub)


def unlink_sub_deadline(sub: SubDeadline) -> None:
    """Turn a template-derived sub-deadline into a manual one that keeps its date."""
    sub.originating_blueprint_id = None
    sub.offset = None
    sub.trigger_id = None
    sub.unresolved = False


def unresolved_placeholder(final_deadline_date: date) -> date:
    """Date carried by a sub-deadline whose trigger has not fired."""
    return final_deadline_date


def _build_sub_deadline(
    bp: TemplateSubDeadlineBlueprint, final_deadline_date: date, position: int
) -> SubDeadline:
    if bp.offset.anchor.kind is AnchorKind.FINAL_DEADLINE:
        return SubDeadline(
            title=bp.title,
            date=resolve(bp.offset, final_deadline_date),
            originating_blueprint_id=bp.id,
            position=position,
        )
    return SubDeadline(
        title=bp.title,
        date=unresolved_placeholder(final_deadline_date),
        unresolved=True,
        originating_blueprint_id=bp.id,
        position=position,
    )
