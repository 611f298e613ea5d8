"""Built-in template catalog.

Standard preparation schedules for common deadline types. Offsets are in
days before the final (submission) deadline unless anchored to a trigger.
"""

from __future__ import annotations

from ..models.template import (
    Anchor,
    Offset,
    OffsetUnit,
    Template,
    TemplateSubDeadlineBlueprint,
    TemplateTriggerBlueprint,
)


def _before(days: int) -> Offset:
    return Offset(anchor=Anchor.final_deadline(), amount=-days, unit=OffsetUnit.DAY)


def _after_trigger(trigger_id: str, amount: int, unit: OffsetUnit = OffsetUnit.DAY) -> Offset:
    return Offset(anchor=Anchor.trigger(trigger_id), amount=amount, unit=unit)


def _submission_template(
    template_id: str,
    name: str,
    go_no_go_days: int,
    outreach_window_days: int,
    draft_narrative_days: int,
    review_window_days: int,
    budget_compliance_days: int,
    final_package_days: int,
) -> Template:
    """Grant-style submission schedule.

    Partner outreach waits on the go decision; human review waits on the
    first draft being ready.
    """
    return Template(
        id=template_id,
        name=name,
        trigger_blueprints=(
            TemplateTriggerBlueprint(
                id="go-decision",
                name="Go Decision Made",
                order_index=0,
                offset=_before(go_no_go_days),
            ),
            TemplateTriggerBlueprint(
                id="draft-ready",
                name="First Draft Ready",
                order_index=1,
                offset=_before(draft_narrative_days),
            ),
        ),
        sub_deadline_blueprints=(
            TemplateSubDeadlineBlueprint(
                id="go-no-go",
                title="Internal Go/No-Go Decision",
                offset=_before(go_no_go_days),
            ),
            TemplateSubDeadlineBlueprint(
                id="partner-outreach",
                title="Partner Outreach & LOI Collection",
                offset=_after_trigger("go-decision", outreach_window_days),
            ),
            TemplateSubDeadlineBlueprint(
                id="draft-narrative",
                title="Draft Narrative",
                offset=_before(draft_narrative_days),
            ),
            TemplateSubDeadlineBlueprint(
                id="human-review",
                title="Human Review & Revision",
                offset=_after_trigger("draft-ready", review_window_days),
            ),
            TemplateSubDeadlineBlueprint(
                id="budget-compliance",
                title="Budget & Compliance Check",
                offset=_before(budget_compliance_days),
            ),
            TemplateSubDeadlineBlueprint(
                id="final-package",
                title="Final Submission Package",
                offset=_before(final_package_days),
            ),
        ),
    )


FEDERAL = _submission_template(
    "federal", "Federal Grant Submission",
    go_no_go_days=60,
    outreach_window_days=10,
    draft_narrative_days=30,
    review_window_days=10,
    budget_compliance_days=10,
    final_package_days=3,
)

STATE = _submission_template(
    "state", "State Grant Submission",
    go_no_go_days=45,
    outreach_window_days=10,
    draft_narrative_days=25,
    review_window_days=10,
    budget_compliance_days=7,
    final_package_days=2,
)

PRIVATE = _submission_template(
    "private", "Foundation Grant Submission",
    go_no_go_days=30,
    outreach_window_days=9,
    draft_narrative_days=14,
    review_window_days=4,
    budget_compliance_days=5,
    final_package_days=2,
)

MONTHLY_VIDEO = Template(
    id="monthly-video",
    name="Monthly Video",
    trigger_blueprints=(
        TemplateTriggerBlueprint(id="animation-complete", name="Animation Complete", order_index=0),
        TemplateTriggerBlueprint(id="client-feedback", name="Client Feedback Received", order_index=1),
    ),
    sub_deadline_blueprints=(
        TemplateSubDeadlineBlueprint(
            id="script",
            title="Script Due",
            offset=Offset(amount=-4, unit=OffsetUnit.WEEK),
        ),
        TemplateSubDeadlineBlueprint(
            id="storyboard-review",
            title="Storyboard Review",
            offset=_after_trigger("animation-complete", 2),
        ),
        TemplateSubDeadlineBlueprint(
            id="animation-review",
            title="Animation Review",
            offset=_after_trigger("animation-complete", 1, OffsetUnit.WEEK),
        ),
        TemplateSubDeadlineBlueprint(
            id="final-delivery",
            title="Final Delivery",
            offset=_after_trigger("client-feedback", 3),
        ),
    ),
)

BUILTIN_TEMPLATES: tuple[Template, ...] = (FEDERAL, STATE, PRIVATE, MONTHLY_VIDEO)


def list_builtin_template_ids() -> list[str]:
    """Return the ids of all built-in templates."""
    return [t.id for t in BUILTIN_TEMPLATES]
