"""Template models - reusable blueprints for projects.

A template never holds concrete dates. Sub-deadline and trigger blueprints
carry an Offset measured from an Anchor (the final deadline or a trigger
blueprint of the same template); the Instantiator turns them into dates.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class AnchorKind(str, Enum):
    FINAL_DEADLINE = "final_deadline"
    TRIGGER = "trigger"


class Anchor(BaseModel):
    """What an offset is measured from.

    Accepts the shorthand forms ``"final_deadline"`` and
    ``{"trigger": "<blueprint id>"}`` when parsed from a template file.
    """

    kind: AnchorKind = Field(..., description="final_deadline or trigger")
    trigger_id: Optional[str] = Field(None, description="Trigger blueprint id when kind is trigger")

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def _expand_shorthand(cls, data: Any) -> Any:
        if isinstance(data, str):
            if data == AnchorKind.FINAL_DEADLINE.value:
                return {"kind": AnchorKind.FINAL_DEADLINE}
            raise ValueError(f"Unknown anchor: {data!r}")
        if isinstance(data, dict) and "trigger" in data and "kind" not in data:
            return {"kind": AnchorKind.TRIGGER, "trigger_id": data["trigger"]}
        return data

    @model_validator(mode="after")
    def _check_trigger_reference(self) -> "Anchor":
        if self.kind is AnchorKind.TRIGGER and not self.trigger_id:
            raise ValueError("Trigger anchor requires a trigger_id")
        if self.kind is AnchorKind.FINAL_DEADLINE and self.trigger_id:
            raise ValueError("Final-deadline anchor cannot name a trigger")
        return self

    @classmethod
    def final_deadline(cls) -> "Anchor":
        return cls(kind=AnchorKind.FINAL_DEADLINE)

    @classmethod
    def trigger(cls, trigger_id: str) -> "Anchor":
        return cls(kind=AnchorKind.TRIGGER, trigger_id=trigger_id)


class OffsetUnit(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class Offset(BaseModel):
    """Signed distance from an anchor. Negative amounts fall before it."""

    anchor: Anchor = Field(default_factory=Anchor.final_deadline)
    amount: int = Field(..., description="Signed number of units; negative means before the anchor")
    unit: OffsetUnit = Field(default=OffsetUnit.DAY)

    model_config = {"frozen": True}

    @field_validator("unit", mode="before")
    @classmethod
    def _singular_unit(cls, v: Any) -> Any:
        # Template files commonly say "days"/"weeks"/"months"
        if isinstance(v, str):
            v = v.lower()
            if v.endswith("s"):
                v = v[:-1]
        return v

    @property
    def trigger_id(self) -> Optional[str]:
        """Trigger blueprint id this offset depends on, if any."""
        if self.anchor.kind is AnchorKind.TRIGGER:
            return self.anchor.trigger_id
        return None


class TemplateSubDeadlineBlueprint(BaseModel):
    id: str = Field(..., description="Blueprint id, unique within the template")
    title: str = Field(..., description="Default title for the generated sub-deadline")
    offset: Offset

    model_config = {"frozen": True}


class TemplateTriggerBlueprint(BaseModel):
    """A named event with no predetermined date.

    ``order_index`` is the authored sequence used to present triggers.
    ``offset`` is optional and only yields a planned date for display.
    """

    id: str = Field(..., description="Blueprint id, unique within the template")
    name: str
    order_index: int = Field(default=0, description="Authored presentation order")
    offset: Optional[Offset] = Field(None, description="Planned date relative to an anchor")

    model_config = {"frozen": True}


class Template(BaseModel):
    """Immutable project template."""

    id: str
    name: str
    sub_deadline_blueprints: tuple[TemplateSubDeadlineBlueprint, ...] = Field(default_factory=tuple)
    trigger_blueprints: tuple[TemplateTriggerBlueprint, ...] = Field(default_factory=tuple)

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "example": {
                "id": "monthly-video",
                "name": "Monthly Video",
                "trigger_blueprints": [
                    {"id": "animation-complete", "name": "Animation Complete", "order_index": 0},
                ],
                "sub_deadline_blueprints": [
                    {
                        "id": "script",
                        "title": "Script Due",
                        "offset": {"anchor": "final_deadline", "amount": -4, "unit": "weeks"},
                    },
                    {
                        "id": "animation-review",
                        "title": "Animation Review",
                        "offset": {
                            "anchor": {"trigger": "animation-complete"},
                            "amount": 5,
                            "unit": "days",
                        },
                    },
                ],
            }
        },
    }

    def sub_deadline_blueprint(self, blueprint_id: str) -> Optional[TemplateSubDeadlineBlueprint]:
        for bp in self.sub_deadline_blueprints:
            if bp.id == blueprint_id:
                return bp
        return None

    def trigger_blueprint(self, blueprint_id: str) -> Optional[TemplateTriggerBlueprint]:
        for bp in self.trigger_blueprints:
            if bp.id == blueprint_id:
                return bp
        return None
