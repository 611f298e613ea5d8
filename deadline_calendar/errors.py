"""Error taxonomy for the scheduling core.

Every failure surfaced by the core is one of these types. None of them is
fatal: callers catch them (or inspect a returned NoOpWarning) and continue.
"""

from typing import Optional


class DeadlineCalendarError(Exception):
    """Base class for all scheduling-core errors."""
    pass


class CalendarOverflow(DeadlineCalendarError):
    """Offset arithmetic left the representable calendar range."""
    pass


class TemplateIntegrityError(DeadlineCalendarError):
    """A template failed validation and was excluded from the usable set."""

    def __init__(
        self,
        message: str,
        template_id: Optional[str] = None,
        blueprint_id: Optional[str] = None,
    ) -> None:
        self.template_id = template_id
        self.blueprint_id = blueprint_id
        location = f"template={template_id}"
        if blueprint_id:
            location += f" blueprint={blueprint_id}"
        super().__init__(f"{message} ({location})")


class InstantiationError(DeadlineCalendarError):
    """A template could not be turned into a Project; nothing was created."""
    pass


class NotFoundError(DeadlineCalendarError):
    """An unknown id was passed to a lookup."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class UnresolvedDateError(DeadlineCalendarError, ValueError):
    """A date was set on a sub-deadline still waiting on its trigger."""

    def __init__(self, sub_deadline_id: str, title: str) -> None:
        self.sub_deadline_id = sub_deadline_id
        super().__init__(f"Sub-deadline '{title}' waits on a pending trigger; its date cannot be set")


class PersistenceError(DeadlineCalendarError):
    """The persistence collaborator failed to load or save the project set."""
    pass


class NoOpWarning(UserWarning):
    """A redundant trigger transition. Returned as a status, never raised."""

    def __init__(self, trigger_id: str, state: str) -> None:
        self.trigger_id = trigger_id
        self.state = state
        super().__init__(f"Trigger {trigger_id} is already {state}")
