"""Tests for trigger activation, deactivation and propagation."""

from datetime import date

import pytest

from deadline_calendar.errors import CalendarOverflow, NoOpWarning, NotFoundError
from deadline_calendar.models import (
    Anchor,
    Offset,
    Project,
    SubDeadline,
    Template,
    TemplateSubDeadlineBlueprint,
    TemplateTriggerBlueprint,
)
from deadline_calendar.schedule import ScheduleStore
from deadline_calendar.timeline import (
    TriggerEngine,
    apply_activation,
    apply_deactivation,
    apply_reanchor,
    instantiate,
    remove_trigger,
)

from .conftest import FakeClock, day


def _by_blueprint(project, blueprint_id):
    return next(s for s in project.sub_deadlines if s.originating_blueprint_id == blueprint_id)


@pytest.fixture
def project(review_template):
    return instantiate(review_template, day(30), "Spring")


# --- Activation ---

class TestActivation:
    def test_activation_resolves_dependent(self, project, review_template):
        trigger_id = project.triggers[0].id
        result = apply_activation(project, trigger_id, on=day(12))

        assert result is None
        follow_up = _by_blueprint(project, "follow-up")
        assert follow_up.date == day(17)
        assert follow_up.unresolved is False
        assert project.sub_deadlines[0] is follow_up

    def test_activation_stamps_trigger(self, project, review_template):
        trigger = project.triggers[0]
        apply_activation(project, trigger.id, on=day(12))
        assert trigger.is_active is True
        assert trigger.activation_date == day(12)

    def test_activation_leaves_final_anchored_untouched(self, project, review_template):
        apply_activation(project, project.triggers[0].id, on=day(12))
        assert _by_blueprint(project, "prep").date == day(20)

    def test_second_activation_is_noop(self, project, review_template):
        trigger_id = project.triggers[0].id
        apply_activation(project, trigger_id, on=day(12))
        before = project.model_dump()

        result = apply_activation(project, trigger_id, on=day(15))

        assert isinstance(result, NoOpWarning)
        assert result.state == "active"
        assert project.model_dump() == before

    def test_unknown_trigger_raises(self, project, review_template):
        with pytest.raises(NotFoundError):
            apply_activation(project, "missing", on=day(12))

    def test_completion_flag_preserved(self, project, review_template):
        _by_blueprint(project, "follow-up").is_completed = True
        apply_activation(project, project.triggers[0].id, on=day(12))
        follow_up = _by_blueprint(project, "follow-up")
        assert follow_up.is_completed is True
        assert follow_up.date == day(17)

    def test_overflow_leaves_project_untouched(self):
        template = Template(
            id="edge",
            name="Edge",
            trigger_blueprints=(TemplateTriggerBlueprint(id="t", name="T"),),
            sub_deadline_blueprints=(
                TemplateSubDeadlineBlueprint(id="near", title="Near", offset=Offset(amount=-1)),
                TemplateSubDeadlineBlueprint(
                    id="far", title="Far", offset=Offset(anchor=Anchor.trigger("t"), amount=30)
                ),
            ),
        )
        project = instantiate(template, date(9999, 12, 31), "Edge")
        before = project.model_dump()

        with pytest.raises(CalendarOverflow):
            apply_activation(project, project.triggers[0].id, on=date(9999, 12, 20))

        assert project.model_dump() == before

    def test_stored_project_propagates_without_template(self, project):
        restored = Project.model_validate(project.model_dump(mode="json"))

        apply_activation(restored, restored.triggers[0].id, on=day(12))

        follow_up = _by_blueprint(restored, "follow-up")
        assert follow_up.trigger_id == restored.triggers[0].id
        assert follow_up.date == day(17)
        assert follow_up.unresolved is False

    def test_trigger_to_trigger_anchor_not_propagated(self):
        template = Template(
            id="chain",
            name="Chain",
            trigger_blueprints=(
                TemplateTriggerBlueprint(id="first", name="First", order_index=0),
                TemplateTriggerBlueprint(
                    id="second",
                    name="Second",
                    order_index=1,
                    offset=Offset(anchor=Anchor.trigger("first"), amount=3),
                ),
            ),
        )
        project = instantiate(template, day(30), "Chain")
        first, second = project.triggers
        apply_activation(project, first.id, on=day(12))
        assert second.is_active is False
        assert second.activation_date is None


# --- Deactivation ---

class TestDeactivation:
    def test_round_trip_restores_instantiated_state(self, review_template):
        project = instantiate(review_template, day(30), "Spring")
        original = {s.id: (s.date, s.unresolved) for s in project.sub_deadlines}
        trigger_id = project.triggers[0].id

        apply_activation(project, trigger_id, on=day(12))
        apply_deactivation(project, trigger_id)

        assert {s.id: (s.date, s.unresolved) for s in project.sub_deadlines} == original
        assert project.triggers[0].is_active is False
        assert project.triggers[0].activation_date is None

    def test_deactivating_pending_is_noop(self, project, review_template):
        before = project.model_dump()
        result = apply_deactivation(project, project.triggers[0].id)
        assert isinstance(result, NoOpWarning)
        assert result.state == "pending"
        assert project.model_dump() == before

    def test_deactivation_keeps_completion(self, project, review_template):
        trigger_id = project.triggers[0].id
        apply_activation(project, trigger_id, on=day(12))
        _by_blueprint(project, "follow-up").is_completed = True

        apply_deactivation(project, trigger_id)

        follow_up = _by_blueprint(project, "follow-up")
        assert follow_up.is_completed is True
        assert follow_up.unresolved is True

    def test_reactivation_recomputes_from_new_date(self, project, review_template):
        trigger_id = project.triggers[0].id
        apply_activation(project, trigger_id, on=day(12))
        apply_deactivation(project, trigger_id)
        apply_activation(project, trigger_id, on=day(20))
        assert _by_blueprint(project, "follow-up").date == day(25)

    def test_same_day_entries_return_to_authored_order(self):
        template = Template(
            id="two-gates",
            name="Two Gates",
            trigger_blueprints=(
                TemplateTriggerBlueprint(id="first", name="First", order_index=0),
                TemplateTriggerBlueprint(id="second", name="Second", order_index=1),
            ),
            sub_deadline_blueprints=(
                TemplateSubDeadlineBlueprint(id="submit", title="Submit", offset=Offset(amount=0)),
                TemplateSubDeadlineBlueprint(
                    id="after-first", title="After First", offset=Offset(anchor=Anchor.trigger("first"), amount=2)
                ),
                TemplateSubDeadlineBlueprint(
                    id="after-second", title="After Second", offset=Offset(anchor=Anchor.trigger("second"), amount=2)
                ),
            ),
        )
        project = instantiate(template, day(30), "Gates")
        authored = [s.title for s in project.sub_deadlines]
        first, second = project.triggers

        apply_activation(project, second.id, on=day(10))
        apply_activation(project, first.id, on=day(12))
        apply_deactivation(project, second.id)
        apply_deactivation(project, first.id)

        assert authored == ["Submit", "After First", "After Second"]
        assert [s.title for s in project.sub_deadlines] == authored


class TestRemoveTrigger:
    def test_dependents_become_manual(self, project):
        trigger_id = project.triggers[0].id
        remove_trigger(project, trigger_id)

        follow_up = next(s for s in project.sub_deadlines if s.title == "Follow Up")
        assert project.triggers == []
        assert follow_up.trigger_id is None
        assert follow_up.offset is None
        assert follow_up.unresolved is False
        assert follow_up.date == day(30)

    def test_unknown_trigger_raises(self, project):
        with pytest.raises(NotFoundError):
            remove_trigger(project, "missing")


# --- Reanchoring after the final deadline moves ---

class TestReanchor:
    def test_final_anchored_dates_follow_deadline(self, project, review_template):
        project.final_deadline_date = day(25)
        apply_reanchor(project)
        assert _by_blueprint(project, "prep").date == day(15)
        follow_up = _by_blueprint(project, "follow-up")
        assert follow_up.date == day(25)
        assert follow_up.unresolved is True

    def test_active_trigger_dates_kept(self, project, review_template):
        apply_activation(project, project.triggers[0].id, on=day(12))
        project.final_deadline_date = date(2026, 5, 30)
        apply_reanchor(project)
        assert _by_blueprint(project, "follow-up").date == day(17)
        assert _by_blueprint(project, "prep").date == date(2026, 5, 20)

    def test_manual_entries_keep_their_dates(self, project):
        project.sub_deadlines.append(
            SubDeadline(title="Call funder", date=day(3), position=project.next_position())
        )
        project.final_deadline_date = day(25)
        apply_reanchor(project)
        assert next(s for s in project.sub_deadlines if s.title == "Call funder").date == day(3)

    def test_restricted_reanchor_still_moves_unresolved(self, project):
        project.final_deadline_date = day(25)
        apply_reanchor(project, sub_deadline_ids=[])
        assert _by_blueprint(project, "prep").date == day(20)
        assert _by_blueprint(project, "follow-up").date == day(25)


# --- Engine bound to a store ---

class TestTriggerEngine:
    def test_activate_uses_clock(self, template_store, project):
        store = ScheduleStore(template_store, [project])
        engine = TriggerEngine(store, clock=FakeClock(day(12)))

        assert engine.activate(project.triggers[0].id) is None

        stored = store.get(project.id)
        assert stored.triggers[0].activation_date == day(12)
        assert _by_blueprint(stored, "follow-up").date == day(17)

    def test_activate_twice_returns_warning(self, template_store, project):
        store = ScheduleStore(template_store, [project])
        engine = TriggerEngine(store, clock=FakeClock(day(12)))
        engine.activate(project.triggers[0].id)
        assert isinstance(engine.activate(project.triggers[0].id), NoOpWarning)

    def test_unknown_trigger_raises(self, template_store, project):
        store = ScheduleStore(template_store, [project])
        engine = TriggerEngine(store)
        with pytest.raises(NotFoundError):
            engine.deactivate("missing")

    def test_overflow_keeps_stored_project(self, template_store):
        template = template_store.register(
            Template(
                id="edge",
                name="Edge",
                trigger_blueprints=(TemplateTriggerBlueprint(id="t", name="T"),),
                sub_deadline_blueprints=(
                    TemplateSubDeadlineBlueprint(
                        id="far", title="Far", offset=Offset(anchor=Anchor.trigger("t"), amount=30)
                    ),
                ),
            )
        )
        project = instantiate(template, date(9999, 12, 31), "Edge")
        store = ScheduleStore(template_store, [project])
        engine = TriggerEngine(store, clock=FakeClock(date(9999, 12, 20)))

        with pytest.raises(CalendarOverflow):
            engine.activate(project.triggers[0].id)

        assert store.get(project.id).triggers[0].is_active is False
