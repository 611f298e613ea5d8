"""Pytest configuration and fixtures."""

from datetime import date

import pytest

from deadline_calendar.database import InMemoryRepository
from deadline_calendar.models import (
    Anchor,
    Offset,
    Template,
    TemplateSubDeadlineBlueprint,
    TemplateTriggerBlueprint,
)
from deadline_calendar.service import DeadlineService
from deadline_calendar.templates import TemplateStore


def day(n: int) -> date:
    """Day N of the scenario calendar (April 2026 has 30 days)."""
    return date(2026, 4, n)


class FakeClock:
    """Settable stand-in for date.today."""

    def __init__(self, today: date) -> None:
        self.today = today

    def __call__(self) -> date:
        return self.today


REVIEW_TEMPLATE = Template(
    id="review-flow",
    name="Review Flow",
    trigger_blueprints=(
        TemplateTriggerBlueprint(id="review", name="Review", order_index=0),
    ),
    sub_deadline_blueprints=(
        TemplateSubDeadlineBlueprint(id="prep", title="Prep", offset=Offset(amount=-10)),
        TemplateSubDeadlineBlueprint(
            id="follow-up",
            title="Follow Up",
            offset=Offset(anchor=Anchor.trigger("review"), amount=5),
        ),
    ),
)


@pytest.fixture
def review_template() -> Template:
    return REVIEW_TEMPLATE


@pytest.fixture
def template_store() -> TemplateStore:
    store = TemplateStore(extra_templates=[REVIEW_TEMPLATE])
    store.load()
    return store


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(day(12))


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def service(template_store, repository, clock) -> DeadlineService:
    return DeadlineService(template_store, repository, clock=clock)
