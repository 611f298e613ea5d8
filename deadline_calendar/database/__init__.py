"""Persistence backends for the project set."""

from .base import InMemoryRepository, ProjectRepository
from .json_store import BackupData, JsonFileRepository, export_backup, import_backup

__all__ = [
    "InMemoryRepository",
    "ProjectRepository",
    "BackupData",
    "JsonFileRepository",
    "export_backup",
    "import_backup",
]
