"""Carry a template edit over to a project built from that template."""

from __future__ import annotations

import logging

from ..models.project import Project, SubDeadline, Trigger
from ..models.template import Template
from .instantiator import link_to_template, unlink_sub_deadline, unresolved_placeholder
from .triggers import apply_reanchor, remove_trigger

logger = logging.getLogger(__name__)


def sync_project(project: Project, old: Template, new: Template) -> None:
    """Apply the difference between two versions of a template to ``project``.

    Titles and names the user has not changed follow the template. Removed
    trigger blueprints drop their trigger; removed sub-deadline blueprints
    leave a manual entry behind. Added blueprints appear as new entries.
    Dates are recomputed only for entries whose offset changed or that are new.

    Raises:
        CalendarOverflow: if a changed offset leaves the calendar. Callers
            run this on a copy so the project is untouched on failure.
    """
    new_trigger_bps = {bp.id: bp for bp in new.trigger_blueprints}
    new_sub_bps = {bp.id: bp for bp in new.sub_deadline_blueprints}

    for trig in list(project.triggers):
        bp_id = trig.originating_blueprint_id
        if bp_id is None:
            continue
        if bp_id not in new_trigger_bps:
            if old.trigger_blueprint(bp_id) is not None:
                # Entries still in the template get relinked below
                for sub in project.dependents_of(trig.id):
                    if sub.originating_blueprint_id in new_sub_bps:
                        sub.trigger_id = None
                remove_trigger(project, trig.id)
                logger.info("sync_trigger_removed project=%s trigger=%s", project.id, trig.id)
            continue
        before = old.trigger_blueprint(bp_id)
        if before is not None and trig.name == before.name:
            trig.name = new_trigger_bps[bp_id].name

    for bp in new.trigger_blueprints:
        if project.trigger_for_blueprint(bp.id) is None:
            project.triggers.append(Trigger(name=bp.name, originating_blueprint_id=bp.id))
            logger.info("sync_trigger_added project=%s blueprint=%s", project.id, bp.id)

    changed: list[str] = []
    present: set[str] = set()
    for sub in project.sub_deadlines:
        bp_id = sub.originating_blueprint_id
        if bp_id is None:
            continue
        if bp_id not in new_sub_bps:
            unlink_sub_deadline(sub)
            logger.info("sync_sub_deadline_unlinked project=%s sub_deadline=%s", project.id, sub.id)
            continue
        present.add(bp_id)
        bp = new_sub_bps[bp_id]
        before = old.sub_deadline_blueprint(bp_id)
        if before is not None and sub.title == before.title:
            sub.title = bp.title
        if sub.offset != bp.offset:
            changed.append(sub.id)

    for bp in new.sub_deadline_blueprints:
        if bp.id in present:
            continue
        sub = SubDeadline(
            title=bp.title,
            date=unresolved_placeholder(project.final_deadline_date),
            unresolved=bp.offset.trigger_id is not None,
            originating_blueprint_id=bp.id,
            position=project.next_position(),
        )
        project.sub_deadlines.append(sub)
        changed.append(sub.id)
        logger.info("sync_sub_deadline_added project=%s blueprint=%s", project.id, bp.id)

    project.template_name = new.name
    link_to_template(project, new)
    apply_reanchor(project, changed)
