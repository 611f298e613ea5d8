"""Template store - validated, immutable catalog of project templates.

Templates come from the built-in catalog plus an optional JSON/YAML file,
with runtime templates layered on top. A template that fails validation is
logged, recorded in ``rejected`` and left out of the usable set; loading
carries on with the rest.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Iterable, Optional, Union

import yaml
from pydantic import ValidationError

from ..errors import NotFoundError, TemplateIntegrityError
from ..models.project import Project, SubDeadline
from ..models.template import (
    Anchor,
    Offset,
    OffsetUnit,
    Template,
    TemplateSubDeadlineBlueprint,
    TemplateTriggerBlueprint,
)
from .builtin import BUILTIN_TEMPLATES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DependencyIndex:
    """Trigger blueprint id -> blueprint ids anchored to it.

    Built once per template. Anchors always point at a trigger blueprint or
    the final deadline, never at another offset, so one level is enough.
    """

    sub_deadlines: dict[str, tuple[str, ...]] = field(default_factory=dict)
    triggers: dict[str, tuple[str, ...]] = field(default_factory=dict)

    def sub_deadlines_for(self, trigger_blueprint_id: str) -> tuple[str, ...]:
        return self.sub_deadlines.get(trigger_blueprint_id, ())

    def triggers_for(self, trigger_blueprint_id: str) -> tuple[str, ...]:
        return self.triggers.get(trigger_blueprint_id, ())


def build_dependency_index(template: Template) -> DependencyIndex:
    subs: dict[str, list[str]] = {}
    for bp in template.sub_deadline_blueprints:
        if bp.offset.trigger_id:
            subs.setdefault(bp.offset.trigger_id, []).append(bp.id)

    trigs: dict[str, list[str]] = {}
    for bp in template.trigger_blueprints:
        if bp.offset is not None and bp.offset.trigger_id:
            trigs.setdefault(bp.offset.trigger_id, []).append(bp.id)

    return DependencyIndex(
        sub_deadlines={k: tuple(v) for k, v in subs.items()},
        triggers={k: tuple(v) for k, v in trigs.items()},
    )


def parse_template(raw: Union[Template, dict[str, Any]]) -> Template:
    """Build a Template from a raw mapping, or pass one through."""
    if isinstance(raw, Template):
        return raw
    try:
        return Template.model_validate(raw)
    except ValidationError as exc:
        template_id = raw.get("id") if isinstance(raw, dict) else None
        raise TemplateIntegrityError(
            f"Malformed template: {exc.error_count()} validation error(s)",
            template_id=template_id,
        ) from exc


def validate_template(template: Template) -> None:
    """Check the cross-reference invariants of a template.

    Raises:
        TemplateIntegrityError: naming the first offending blueprint.
    """
    seen: set[str] = set()
    for bp in (*template.trigger_blueprints, *template.sub_deadline_blueprints):
        if bp.id in seen:
            raise TemplateIntegrityError(
                "Duplicate blueprint id", template_id=template.id, blueprint_id=bp.id
            )
        seen.add(bp.id)

    trigger_ids = {bp.id for bp in template.trigger_blueprints}

    for bp in template.sub_deadline_blueprints:
        ref = bp.offset.trigger_id
        if ref is not None and ref not in trigger_ids:
            raise TemplateIntegrityError(
                f"Offset anchors to unknown trigger '{ref}'",
                template_id=template.id,
                blueprint_id=bp.id,
            )

    for bp in template.trigger_blueprints:
        if bp.offset is None or bp.offset.trigger_id is None:
            continue
        ref = bp.offset.trigger_id
        if ref == bp.id:
            raise TemplateIntegrityError(
                "Trigger offset anchors to itself", template_id=template.id, blueprint_id=bp.id
            )
        if ref not in trigger_ids:
            raise TemplateIntegrityError(
                f"Offset anchors to unknown trigger '{ref}'",
                template_id=template.id,
                blueprint_id=bp.id,
            )


def load_template_file(filepath: Union[str, Path]) -> list[dict[str, Any]]:
    """Read raw template mappings from a JSON or YAML file.

    Accepts either a top-level list or ``{"templates": [...]}``. Returns an
    empty list (with a warning) when the file is missing or unreadable.

    Raises:
        ValueError: for an unsupported file extension.
    """
    path = Path(filepath)
    if path.suffix not in (".json", ".yaml", ".yml"):
        raise ValueError(f"Unsupported file format: {path.suffix}. Use .json, .yaml, or .yml")
    if not path.exists():
        logger.warning("Templates file %s does not exist", path)
        return []

    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        logger.warning("Failed to read templates file %s: %s", path, exc)
        return []

    if isinstance(data, dict):
        data = data.get("templates", [])
    if not isinstance(data, list):
        logger.warning("Templates file %s has no template list", path)
        return []
    return data


class TemplateStore:
    """Catalog of usable templates plus their precomputed dependency maps.

    Two layers make up the catalog. Seed templates (built-in, templates file,
    ``extra_templates``) are read-only. User templates are the ones created,
    edited or imported at runtime; the service persists them through the
    project repository and hands them back to ``load``. A user template may
    override a seed template with the same id.
    """

    def __init__(
        self,
        templates_file: Optional[Union[str, Path]] = None,
        include_builtin: bool = True,
        extra_templates: Iterable[Union[Template, dict[str, Any]]] = (),
    ) -> None:
        self._templates_file = templates_file
        self._include_builtin = include_builtin
        self._extra = list(extra_templates)
        self._templates: dict[str, Template] = {}
        self._dependencies: dict[str, DependencyIndex] = {}
        self._seeds: dict[str, Template] = {}
        self._user_ids: set[str] = set()
        self.rejected: list[TemplateIntegrityError] = []

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self, user_templates: Iterable[Union[Template, dict[str, Any]]] = ()) -> list[Template]:
        """(Re)load every template source and return the usable templates.

        Args:
            user_templates: Previously saved runtime templates, applied on top
                of the seed templates.
        """
        self._templates.clear()
        self._dependencies.clear()
        self._seeds.clear()
        self._user_ids.clear()
        self.rejected.clear()

        candidates: list[Union[Template, dict[str, Any]]] = []
        if self._include_builtin:
            candidates.extend(BUILTIN_TEMPLATES)
        if self._templates_file:
            candidates.extend(load_template_file(self._templates_file))
        candidates.extend(self._extra)

        for raw in candidates:
            try:
                self.register(raw)
            except TemplateIntegrityError as exc:
                logger.warning("template_rejected %s", exc)
                self.rejected.append(exc)
        self._seeds = dict(self._templates)

        for raw in user_templates:
            try:
                self._put_user(self._checked(raw))
            except TemplateIntegrityError as exc:
                logger.warning("template_rejected source=user %s", exc)
                self.rejected.append(exc)

        logger.info(
            "Loaded %d template(s) (%d user), rejected %d",
            len(self._templates),
            len(self._user_ids),
            len(self.rejected),
        )
        return self.templates()

    def register(self, raw: Union[Template, dict[str, Any]]) -> Template:
        """Validate a template and add it to the catalog.

        Raises:
            TemplateIntegrityError: if the template is malformed or its id is taken.
        """
        template = self._checked(raw)
        if template.id in self._templates:
            raise TemplateIntegrityError("Duplicate template id", template_id=template.id)
        self._templates[template.id] = template
        self._dependencies[template.id] = build_dependency_index(template)
        logger.debug("Registered template %s (%s)", template.id, template.name)
        return template

    # ------------------------------------------------------------------
    # User layer
    # ------------------------------------------------------------------

    def add(self, raw: Union[Template, dict[str, Any]]) -> Template:
        """Register a runtime template. Its id must be free."""
        template = self.register(raw)
        self._user_ids.add(template.id)
        return template

    def replace(self, raw: Union[Template, dict[str, Any]]) -> tuple[Template, Template]:
        """Swap in a new version of an existing template.

        Returns:
            (previous, current) versions.

        Raises:
            NotFoundError: if no template has that id.
            TemplateIntegrityError: if the new version is malformed.
        """
        template = self._checked(raw)
        previous = self.template_by_id(template.id)
        self._put_user(template)
        logger.info("Replaced template %s (%s)", template.id, template.name)
        return previous, template

    def remove(self, template_id: str) -> Template:
        """Delete a runtime template.

        A user edit of a seed template is dropped and the seed comes back.

        Raises:
            NotFoundError: if no template has that id.
            TemplateIntegrityError: if the template is a seed template.
        """
        template = self.template_by_id(template_id)
        if template_id not in self._user_ids:
            raise TemplateIntegrityError("Seed templates cannot be deleted", template_id=template_id)
        self._user_ids.discard(template_id)
        seed = self._seeds.get(template_id)
        if seed is not None:
            self._templates[template_id] = seed
            self._dependencies[template_id] = build_dependency_index(seed)
            logger.info("Reverted template %s to its seed version", template_id)
        else:
            del self._templates[template_id]
            del self._dependencies[template_id]
            logger.info("Removed template %s", template_id)
        return template

    def user_templates(self) -> list[Template]:
        """Templates that need saving: created, edited or imported at runtime."""
        return [t for t in self._templates.values() if t.id in self._user_ids]

    def _checked(self, raw: Union[Template, dict[str, Any]]) -> Template:
        template = parse_template(raw)
        validate_template(template)
        return template

    def _put_user(self, template: Template) -> None:
        self._templates[template.id] = template
        self._dependencies[template.id] = build_dependency_index(template)
        self._user_ids.add(template.id)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def templates(self) -> list[Template]:
        return list(self._templates.values())

    def get(self, template_id: Optional[str]) -> Optional[Template]:
        if template_id is None:
            return None
        return self._templates.get(template_id)

    def template_by_id(self, template_id: str) -> Template:
        template = self.get(template_id)
        if template is None:
            raise NotFoundError("Template", template_id)
        return template

    def dependencies(self, template_id: str) -> DependencyIndex:
        index = self._dependencies.get(template_id)
        if index is None:
            raise NotFoundError("Template", template_id)
        return index


def derive_template_from_project(project: Project, name: str, template_id: str) -> Template:
    """Build a template that reproduces ``project``'s current schedule.

    Sub-deadlines become day offsets from the final deadline, except those
    still linked to one of the project's triggers: they keep their trigger
    offset, re-pointed at the new trigger blueprint.
    """
    trigger_bp_ids: dict[str, str] = {}
    trigger_bps: list[TemplateTriggerBlueprint] = []
    for i, trig in enumerate(project.triggers):
        bp_id = f"trigger-{i + 1}"
        trigger_bp_ids[trig.id] = bp_id
        offset = None
        if trig.planned_date is not None:
            offset = _days_from_deadline(trig.planned_date, project.final_deadline_date)
        trigger_bps.append(
            TemplateTriggerBlueprint(id=bp_id, name=trig.name, order_index=i, offset=offset)
        )

    sub_bps: list[TemplateSubDeadlineBlueprint] = []
    for i, sub in enumerate(sorted(project.sub_deadlines, key=lambda s: s.position)):
        offset = _trigger_anchored_offset(sub, trigger_bp_ids)
        if offset is None:
            offset = _days_from_deadline(sub.date, project.final_deadline_date)
        sub_bps.append(TemplateSubDeadlineBlueprint(id=f"step-{i + 1}", title=sub.title, offset=offset))

    template = Template(
        id=template_id,
        name=name,
        sub_deadline_blueprints=tuple(sub_bps),
        trigger_blueprints=tuple(trigger_bps),
    )
    validate_template(template)
    return template


def _days_from_deadline(when: date, final_deadline: date) -> Offset:
    return Offset(
        anchor=Anchor.final_deadline(),
        amount=(when - final_deadline).days,
        unit=OffsetUnit.DAY,
    )


def _trigger_anchored_offset(sub: SubDeadline, trigger_bp_ids: dict[str, str]) -> Optional[Offset]:
    if sub.trigger_id not in trigger_bp_ids or sub.offset is None or sub.offset.trigger_id is None:
        return None
    return Offset(
        anchor=Anchor.trigger(trigger_bp_ids[sub.trigger_id]),
        amount=sub.offset.amount,
        unit=sub.offset.unit,
    )
