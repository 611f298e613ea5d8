"""Trigger engine - activation state machine and date propagation.

Each trigger is either pending (``is_active=False``) or active. Activating a
trigger stamps its activation date and resolves every sub-deadline linked to
it; deactivating puts those sub-deadlines back on the unresolved placeholder.
Triggers never activate each other.

Links and offsets live on the project itself (see ``link_to_template``), so
transitions work even when the originating template has left the catalog.

The ``apply_*`` functions mutate a Project the caller owns exclusively (the
Schedule Store hands them a private copy). ``TriggerEngine`` wires them to
the store.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Iterable, Optional

from ..errors import NoOpWarning
from ..models.project import Project
from .offsets import resolve, resolve_against
from .instantiator import unlink_sub_deadline, unresolved_placeholder

logger = logging.getLogger(__name__)

Clock = Callable[[], date]


def apply_activation(project: Project, trigger_id: str, on: date) -> Optional[NoOpWarning]:
    """Pending -> Active for ``trigger_id`` inside ``project``.

    New dates are computed before anything is written, so a CalendarOverflow
    leaves the project untouched.

    Returns:
        None when applied, NoOpWarning when the trigger was already active.
    """
    trigger = project.trigger(trigger_id)
    if trigger.is_active:
        logger.info("trigger_noop project=%s trigger=%s state=active", project.id, trigger_id)
        return NoOpWarning(trigger_id, "active")

    dependents = project.dependents_of(trigger_id)
    new_dates = {sub.id: resolve(sub.offset, on) for sub in dependents if sub.offset is not None}

    trigger.is_active = True
    trigger.activation_date = on
    for sub in dependents:
        if sub.id in new_dates:
            sub.date = new_dates[sub.id]
        sub.unresolved = False
    project.sort_sub_deadlines()

    for other in project.triggers:
        if other.offset is not None and other.offset.trigger_id == trigger.originating_blueprint_id:
            logger.debug("trigger %s anchored to %s stays pending until activated", other.id, trigger_id)
    logger.info(
        "trigger_activated project=%s trigger=%s on=%s resolved=%d",
        project.id,
        trigger_id,
        on.isoformat(),
        len(new_dates),
    )
    return None


def apply_deactivation(project: Project, trigger_id: str) -> Optional[NoOpWarning]:
    """Active -> Pending for ``trigger_id`` inside ``project``.

    Dependent sub-deadlines lose their resolved date and go back to the
    placeholder; reactivation recomputes them.

    Returns:
        None when applied, NoOpWarning when the trigger was already pending.
    """
    trigger = project.trigger(trigger_id)
    if not trigger.is_active:
        logger.info("trigger_noop project=%s trigger=%s state=pending", project.id, trigger_id)
        return NoOpWarning(trigger_id, "pending")

    dependents = project.dependents_of(trigger_id)
    trigger.is_active = False
    trigger.activation_date = None
    placeholder = unresolved_placeholder(project.final_deadline_date)
    for sub in dependents:
        sub.date = placeholder
        sub.unresolved = True
    project.sort_sub_deadlines()

    logger.info(
        "trigger_deactivated project=%s trigger=%s reverted=%d",
        project.id,
        trigger_id,
        len(dependents),
    )
    return None


def apply_reanchor(project: Project, sub_deadline_ids: Optional[Iterable[str]] = None) -> None:
    """Recompute offset-derived dates from the project's current state.

    Used after the final deadline moves or a template edit. When
    ``sub_deadline_ids`` is given only those sub-deadlines are re-resolved;
    unresolved ones always follow the final deadline. Sub-deadlines without
    an offset keep their dates. All dates are computed before any is written.
    """
    selected = set(sub_deadline_ids) if sub_deadline_ids is not None else None
    triggers = {t.id: t for t in project.triggers}
    activations = {
        t.originating_blueprint_id: t.activation_date if t.is_active else None
        for t in project.triggers
        if t.originating_blueprint_id
    }
    placeholder = unresolved_placeholder(project.final_deadline_date)

    new_subs: dict[str, tuple[date, bool]] = {}
    for sub in project.sub_deadlines:
        if selected is not None and sub.id not in selected and not sub.unresolved:
            continue
        trig = triggers.get(sub.trigger_id) if sub.trigger_id else None
        if trig is not None and not trig.is_active:
            new_subs[sub.id] = (placeholder, True)
        elif sub.offset is None:
            if sub.unresolved:
                new_subs[sub.id] = (placeholder, True)
        elif trig is not None:
            new_subs[sub.id] = (resolve(sub.offset, trig.activation_date), False)
        elif sub.offset.trigger_id is None:
            new_subs[sub.id] = (resolve(sub.offset, project.final_deadline_date), False)
        elif sub.unresolved:
            new_subs[sub.id] = (placeholder, True)

    new_planned = {
        t.id: resolve_against(t.offset, project.final_deadline_date, activations)
        for t in project.triggers
        if t.offset is not None
    }

    for sub in project.sub_deadlines:
        if sub.id in new_subs:
            sub.date, sub.unresolved = new_subs[sub.id]
    for trig in project.triggers:
        if trig.id in new_planned:
            trig.planned_date = new_planned[trig.id]
    project.sort_sub_deadlines()
    logger.info(
        "reanchored project=%s deadline=%s recomputed=%d",
        project.id,
        project.final_deadline_date.isoformat(),
        len(new_subs),
    )


def remove_trigger(project: Project, trigger_id: str) -> None:
    """Delete a trigger and turn the sub-deadlines waiting on it into manual entries."""
    trigger = project.trigger(trigger_id)
    for sub in project.dependents_of(trigger_id):
        unlink_sub_deadline(sub)
        logger.info("Unlinked sub-deadline '%s' from deleted trigger %s", sub.title, trigger_id)
    project.triggers.remove(trigger)


class TriggerEngine:
    """Runs trigger transitions against projects held in a Schedule Store."""

    def __init__(self, store, clock: Clock = date.today) -> None:
        self._store = store
        self._clock = clock

    def activate(self, trigger_id: str) -> Optional[NoOpWarning]:
        """Activate ``trigger_id`` today. Raises NotFoundError for unknown ids."""
        project_id = self._store.find_project_for_trigger(trigger_id)
        outcome: list[Optional[NoOpWarning]] = []
        on = self._clock()
        self._store.update(project_id, lambda p: outcome.append(apply_activation(p, trigger_id, on)))
        return outcome[0]

    def deactivate(self, trigger_id: str) -> Optional[NoOpWarning]:
        """Deactivate ``trigger_id``. Raises NotFoundError for unknown ids."""
        project_id = self._store.find_project_for_trigger(trigger_id)
        outcome: list[Optional[NoOpWarning]] = []
        self._store.update(project_id, lambda p: outcome.append(apply_deactivation(p, trigger_id)))
        return outcome[0]
