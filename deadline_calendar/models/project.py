"""Project models - concrete, dated instances built from templates."""

import uuid
from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from ..errors import NotFoundError
from .template import Offset


def new_id() -> str:
    return str(uuid.uuid4())


class Subtask(BaseModel):
    """A checklist item inside a sub-deadline."""

    id: str = Field(default_factory=new_id)
    title: str
    is_completed: bool = False


class SubDeadline(BaseModel):
    """A dated step within a project.

    While ``unresolved`` is True the date is a placeholder (the project's
    final deadline) because the trigger it is anchored to has not fired.

    ``offset`` and ``trigger_id`` are copied from the template when the
    project is built, so dates can be recomputed without the template.
    """

    id: str = Field(default_factory=new_id)
    title: str
    date: date
    is_completed: bool = False
    unresolved: bool = Field(default=False, description="True while the anchoring trigger is pending")
    originating_blueprint_id: Optional[str] = Field(
        None, description="Template sub-deadline blueprint this came from (lookup only)"
    )
    offset: Optional[Offset] = Field(None, description="Template offset the date is derived from")
    trigger_id: Optional[str] = Field(None, description="Project trigger this date waits on")
    position: int = Field(default=0, description="Authored order, breaks ties between equal dates")
    subtasks: list[Subtask] = Field(default_factory=list)


class Trigger(BaseModel):
    """An event whose date is only known once it happens."""

    id: str = Field(default_factory=new_id)
    name: str
    is_active: bool = False
    activation_date: Optional[date] = None
    planned_date: Optional[date] = Field(None, description="Expected date from the template, if any")
    offset: Optional[Offset] = Field(None, description="Template offset the planned date is derived from")
    originating_blueprint_id: Optional[str] = Field(
        None, description="Template trigger blueprint this came from (lookup only)"
    )


class Project(BaseModel):
    """A final deadline plus its sub-deadlines and triggers.

    Sub-deadlines are kept sorted by date, then by authored position, so
    the order of entries sharing a date never depends on earlier moves.
    """

    id: str = Field(default_factory=new_id)
    title: str
    final_deadline_date: date
    sub_deadlines: list[SubDeadline] = Field(default_factory=list)
    triggers: list[Trigger] = Field(default_factory=list)
    template_id: Optional[str] = None
    template_name: Optional[str] = None

    @model_validator(mode="after")
    def _sorted_on_construction(self) -> "Project":
        self.sort_sub_deadlines()
        return self

    def sort_sub_deadlines(self) -> None:
        self.sub_deadlines.sort(key=lambda s: (s.date, s.position))

    def next_position(self) -> int:
        """Position for a sub-deadline appended after every existing one."""
        return max((s.position for s in self.sub_deadlines), default=-1) + 1

    @property
    def is_fully_completed(self) -> bool:
        return all(s.is_completed for s in self.sub_deadlines)

    @property
    def all_triggers_active(self) -> bool:
        """True when the project has triggers and every one has fired."""
        return bool(self.triggers) and all(t.is_active for t in self.triggers)

    def sub_deadline(self, sub_deadline_id: str) -> SubDeadline:
        for sub in self.sub_deadlines:
            if sub.id == sub_deadline_id:
                return sub
        raise NotFoundError("SubDeadline", sub_deadline_id)

    def trigger(self, trigger_id: str) -> Trigger:
        for trig in self.triggers:
            if trig.id == trigger_id:
                return trig
        raise NotFoundError("Trigger", trigger_id)

    def trigger_for_blueprint(self, blueprint_id: str) -> Optional[Trigger]:
        for trig in self.triggers:
            if trig.originating_blueprint_id == blueprint_id:
                return trig
        return None

    def dependents_of(self, trigger_id: str) -> list[SubDeadline]:
        """Sub-deadlines whose date waits on the given trigger."""
        return [s for s in self.sub_deadlines if s.trigger_id == trigger_id]
