"""RegistrationState schema — single source of truth for the wizard graph."""

from enum import Enum
from typing import Any, Dict, Optional, TypedDict


class Step(str, Enum):
    """Where the visitor is. Stored in the graph state as the plain string value."""

    LANDING = "landing"
    PERSONAL = "personal"
    VEHICLE = "vehicle"
    REVIEW = "review"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def form_number(self) -> Optional[int]:
        """1-3 for the numbered form steps, None otherwise."""
        return {Step.PERSONAL: 1, Step.VEHICLE: 2, Step.REVIEW: 3}.get(self)


# Steps in which a subscription push may still hydrate a pristine draft
EDITABLE_STEPS = (Step.PERSONAL.value, Step.VEHICLE.value, Step.REVIEW.value)


class RegistrationState(TypedDict):
    """Flat state dict for the registration wizard."""

    step: str                   # Step value
    draft: Dict[str, Any]       # in-progress form values, never persisted on its own
    dirty: bool                 # user changed at least one field since entering the wizard
    hydrated: bool              # draft was pre-filled from a stored record
    errors: Dict[str, str]      # {field: message} from the last rejected transition
    error_kind: Optional[str]   # validation | not_ready | unavailable | denied
    error_message: Optional[str]
    record: Optional[Dict[str, Any]]   # last record written or read, wire format


def initial_state() -> RegistrationState:
    """Factory — returns a clean starting state on the landing view."""
    return RegistrationState(
        step=Step.LANDING.value,
        draft={},
        dirty=False,
        hydrated=False,
        errors={},
        error_kind=None,
        error_message=None,
        record=None,
    )


def cleared_errors() -> Dict[str, Any]:
    return {"errors": {}, "error_kind": None, "error_message": None}
