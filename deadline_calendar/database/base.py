"""Base repository interface for project persistence.

The scheduling core treats storage as an opaque collaborator: load the whole
project set, save the whole project set. Runtime templates are stored beside
the projects in the same way. Concrete backends only implement raw record
I/O; retries, timing logs and error wrapping live here.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Tuple, Type

from pydantic import ValidationError
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..errors import PersistenceError
from ..models import Project, Template

logger = logging.getLogger(__name__)


class ProjectRepository(ABC):
    """Abstract base class for project-set storage backends."""

    # Errors worth retrying; anything else fails on the first attempt.
    retryable_errors: Tuple[Type[BaseException], ...] = (OSError,)
    max_attempts = 3
    retry_wait = wait_exponential(multiplier=1, min=1, max=10)

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Backend identifier (json, supabase)."""
        pass

    @abstractmethod
    def _read(self) -> List[Dict[str, Any]]:
        """Return every stored project as a JSON-compatible dict."""
        pass

    @abstractmethod
    def _write(self, records: List[Dict[str, Any]]) -> None:
        """Replace the stored set with ``records``."""
        pass

    @abstractmethod
    def _read_templates(self) -> List[Dict[str, Any]]:
        """Return every stored runtime template as a JSON-compatible dict."""
        pass

    @abstractmethod
    def _write_templates(self, records: List[Dict[str, Any]]) -> None:
        """Replace the stored runtime templates with ``records``."""
        pass

    def load_all(self) -> List[Project]:
        """Load the full project set.

        Raises:
            PersistenceError: if the backend fails or a record is invalid.
        """
        records = self._run("load", "projects", self._read)
        try:
            return [Project.model_validate(r) for r in records]
        except ValidationError as exc:
            raise PersistenceError(f"{self.backend_name}: stored project is invalid: {exc}") from exc

    def save_all(self, projects: Iterable[Project]) -> None:
        """Persist the full project set (write-through).

        Raises:
            PersistenceError: after retries are exhausted.
        """
        records = [p.model_dump(mode="json") for p in projects]
        self._run("save", "projects", self._write, records)

    def load_templates(self) -> List[Dict[str, Any]]:
        """Load saved runtime templates as raw mappings.

        Validation is left to the TemplateStore, which rejects bad entries
        one by one instead of failing the whole load.

        Raises:
            PersistenceError: if the backend fails.
        """
        return self._run("load", "templates", self._read_templates)

    def save_templates(self, templates: Iterable[Template]) -> None:
        """Persist the runtime templates.

        Raises:
            PersistenceError: after retries are exhausted.
        """
        records = [t.model_dump(mode="json") for t in templates]
        self._run("save", "templates", self._write_templates, records)

    def _run(self, op: str, kind: str, fn: Callable[..., Any], *args: Any) -> Any:
        start = time.monotonic()
        try:
            result = self._retrying()(fn, *args)
        except Exception as exc:
            duration_ms = (time.monotonic() - start) * 1000
            logger.error(
                "%s_complete backend=%s kind=%s result=failure error=%s duration_ms=%.0f",
                op,
                self.backend_name,
                kind,
                exc,
                duration_ms,
            )
            raise PersistenceError(f"{self.backend_name}: {op} {kind} failed: {exc}") from exc

        count = len(result) if result is not None else len(args[0])
        duration_ms = (time.monotonic() - start) * 1000
        logger.info(
            "%s_complete backend=%s result=success kind=%s count=%d duration_ms=%.0f",
            op,
            self.backend_name,
            kind,
            count,
            duration_ms,
        )
        return result

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.retry_wait,
            retry=retry_if_exception_type(self.retryable_errors),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )


class InMemoryRepository(ProjectRepository):
    """Non-persistent backend; keeps the last saved records in memory."""

    def __init__(
        self,
        records: Iterable[Dict[str, Any]] = (),
        template_records: Iterable[Dict[str, Any]] = (),
    ) -> None:
        self.records: List[Dict[str, Any]] = list(records)
        self.template_records: List[Dict[str, Any]] = list(template_records)
        self.save_count = 0

    @property
    def backend_name(self) -> str:
        return "memory"

    def _read(self) -> List[Dict[str, Any]]:
        return list(self.records)

    def _write(self, records: List[Dict[str, Any]]) -> None:
        self.records = list(records)
        self.save_count += 1

    def _read_templates(self) -> List[Dict[str, Any]]:
        return list(self.template_records)

    def _write_templates(self, records: List[Dict[str, Any]]) -> None:
        self.template_records = list(records)
