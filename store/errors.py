"""Error taxonomy for the registration flow.

Every store and identity failure is translated into one of these before it
reaches the wizard, so the UI only ever has to distinguish four kinds.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping


@dataclass
class RegistrationError(Exception):
    """Base exception for the registration wizard and its collaborators."""

    message: str
    fields: Mapping[str, str] | None = None
    original: Exception | None = None

    kind = "error"

    def __str__(self) -> str:
        return self.message


@dataclass
class ValidationError(RegistrationError):
    """A required field is missing or malformed; the step transition is blocked."""

    kind = "validation"


@dataclass
class NotReady(RegistrationError):
    """No SubjectId yet, so nothing may touch the store."""

    kind = "not_ready"


@dataclass
class Unavailable(RegistrationError):
    """Transient backend or network failure. Safe to retry."""

    kind = "unavailable"


@dataclass
class Denied(RegistrationError):
    """Permission refusal from the backend. Not retried automatically."""

    kind = "denied"


ERROR_KINDS: dict[str, type[RegistrationError]] = {
    cls.kind: cls for cls in (ValidationError, NotReady, Unavailable, Denied)
}
