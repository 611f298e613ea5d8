"""Template catalog: built-in templates, file loading and validation."""

from .builtin import BUILTIN_TEMPLATES, list_builtin_template_ids
from .store import (
    DependencyIndex,
    TemplateStore,
    build_dependency_index,
    derive_template_from_project,
    load_template_file,
    parse_template,
    validate_template,
)

__all__ = [
    "BUILTIN_TEMPLATES",
    "list_builtin_template_ids",
    "DependencyIndex",
    "TemplateStore",
    "build_dependency_index",
    "derive_template_from_project",
    "load_template_file",
    "parse_template",
    "validate_template",
]
