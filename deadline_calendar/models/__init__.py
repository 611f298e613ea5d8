"""Shared Pydantic models for templates and projects."""

from .template import (
    Anchor,
    AnchorKind,
    Offset,
    OffsetUnit,
    Template,
    TemplateSubDeadlineBlueprint,
    TemplateTriggerBlueprint,
)
from .project import Project, SubDeadline, Subtask, Trigger, new_id

__all__ = [
    "Anchor",
    "AnchorKind",
    "Offset",
    "OffsetUnit",
    "Template",
    "TemplateSubDeadlineBlueprint",
    "TemplateTriggerBlueprint",
    "Project",
    "SubDeadline",
    "Subtask",
    "Trigger",
    "new_id",
]
