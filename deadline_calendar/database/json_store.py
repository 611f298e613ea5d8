"""Local JSON file storage and backup documents."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Union

from pydantic import BaseModel, Field, ValidationError

from ..errors import PersistenceError
from ..models import Project, Template
from .base import ProjectRepository

logger = logging.getLogger(__name__)

STORE_FORMAT_VERSION = 1


def _atomic_write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class JsonFileRepository(ProjectRepository):
    """Stores the project set in a single JSON document.

    Runtime templates go to a sibling file, ``<name>.templates.json``.

    Writes go to a temporary file that replaces the target, so a crash
    mid-write never leaves a truncated store behind.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self.templates_path = self.path.with_name(f"{self.path.stem}.templates{self.path.suffix}")

    @property
    def backend_name(self) -> str:
        return "json"

    def _read(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            logger.info("No project store at %s; starting empty", self.path)
            return []
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if isinstance(data, list):
            return data
        return data.get("projects", [])

    def _write(self, records: List[Dict[str, Any]]) -> None:
        _atomic_write_json(
            self.path,
            {
                "version": STORE_FORMAT_VERSION,
                "saved_at": datetime.now(timezone.utc).isoformat(),
                "projects": records,
            },
        )

    def _read_templates(self) -> List[Dict[str, Any]]:
        if not self.templates_path.exists():
            return []
        data = json.loads(self.templates_path.read_text(encoding="utf-8"))
        return data.get("templates", [])

    def _write_templates(self, records: List[Dict[str, Any]]) -> None:
        _atomic_write_json(
            self.templates_path,
            {
                "version": STORE_FORMAT_VERSION,
                "saved_at": datetime.now(timezone.utc).isoformat(),
                "templates": records,
            },
        )


class BackupData(BaseModel):
    """Full export of projects and templates."""

    version: int = Field(default=STORE_FORMAT_VERSION)
    exported_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    projects: list[Project] = Field(default_factory=list)
    # Raw mappings; the template store validates each one on import.
    # Older backups carry no templates.
    templates: list[dict[str, Any]] = Field(default_factory=list)


def export_backup(
    filepath: Union[str, Path],
    projects: List[Project],
    templates: List[Template],
) -> BackupData:
    """Write a backup document and return what was written.

    Raises:
        PersistenceError: if the file cannot be written.
    """
    backup = BackupData(
        projects=projects,
        templates=[t.model_dump(mode="json") for t in templates],
    )
    try:
        _atomic_write_json(Path(filepath), backup.model_dump(mode="json"))
    except OSError as exc:
        raise PersistenceError(f"Cannot write backup {filepath}: {exc}") from exc
    logger.info(
        "Exported backup to %s: %d projects, %d templates",
        filepath,
        len(backup.projects),
        len(backup.templates),
    )
    return backup


def import_backup(filepath: Union[str, Path]) -> BackupData:
    """Read a backup document.

    Raises:
        PersistenceError: if the file is missing, unreadable or invalid.
    """
    path = Path(filepath)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        backup = BackupData.model_validate(data)
    except (OSError, json.JSONDecodeError) as exc:
        raise PersistenceError(f"Cannot read backup {path}: {exc}") from exc
    except ValidationError as exc:
        raise PersistenceError(f"Backup {path} is invalid: {exc.error_count()} error(s)") from exc
    logger.info(
        "Imported backup from %s: %d projects, %d templates",
        path,
        len(backup.projects),
        len(backup.templates),
    )
    return backup
