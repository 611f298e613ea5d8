"""Scheduling engine: offset resolution, instantiation and trigger propagation."""

from .offsets import describe, resolve, resolve_against
from .instantiator import instantiate, link_to_template, unlink_sub_deadline, unresolved_placeholder
from .triggers import (
    TriggerEngine,
    apply_activation,
    apply_deactivation,
    apply_reanchor,
    remove_trigger,
)
from .sync import sync_project

__all__ = [
    "describe",
    "resolve",
    "resolve_against",
    "instantiate",
    "link_to_template",
    "unlink_sub_deadline",
    "unresolved_placeholder",
    "TriggerEngine",
    "apply_activation",
    "apply_deactivation",
    "apply_reanchor",
    "remove_trigger",
    "sync_project",
]
