"""Wizard nodes — one per state the visitor can be waiting in, plus submit.

Every waiting node pauses with interrupt() and handles exactly one action per
resume, then hands the new step to the router. Actions arrive as
{"action": ..., "fields": {...}, "record": {...} | None}.
"""

import logging
from typing import Any, Dict, Optional

from langgraph.types import interrupt

from graph.state import EDITABLE_STEPS, RegistrationState, Step, cleared_errors
from graph.validation import comparable_value, empty_draft, to_record_fields, validate_step
from store.errors import NotReady, RegistrationError, ValidationError
from store.models import ApplicantRecord
from store.records import RecordStore

logger = logging.getLogger(__name__)


# ── Shared helpers ──────────────────────────────────────────────────────
def _ask(state: RegistrationState) -> Dict[str, Any]:
    """Pause until the UI sends the next action."""
    command = interrupt({
        "type": "wizard_step",
        "step": state["step"],
        "draft": state["draft"],
        "errors": state["errors"],
        "error_kind": state["error_kind"],
    })
    if not isinstance(command, dict):
        command = {"action": str(command)}
    return command


def _stay(state: RegistrationState) -> Dict[str, Any]:
    return {"step": state["step"]}


def _go_home() -> Dict[str, Any]:
    """Leave the wizard; the in-memory draft is dropped, the stored record is not touched."""
    return {
        "step": Step.LANDING.value,
        "draft": {},
        "dirty": False,
        "hydrated": False,
        **cleared_errors(),
    }


def _merge_fields(state: RegistrationState, fields: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Apply edited values to the draft; it becomes dirty once a value changes after normalizing."""
    draft = dict(state["draft"])
    dirty = state["dirty"]
    for key, value in (fields or {}).items():
        if key not in draft:
            continue
        if comparable_value(key, draft[key]) != comparable_value(key, value):
            draft[key] = value
            dirty = True
    return {"draft": draft, "dirty": dirty}


def _draft_from_record(record: Optional[ApplicantRecord]) -> Dict[str, Any]:
    draft = empty_draft()
    if record is not None:
        draft.update(record.to_draft())
    return draft


def _record_wire(record: Optional[ApplicantRecord]) -> Optional[Dict[str, Any]]:
    return record.model_dump(mode="json", by_alias=True) if record is not None else None


def _remote_update(state: RegistrationState, payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    A subscription push. Hydrate only a draft the visitor has not touched yet;
    once they edit, later pushes never overwrite their work.
    """
    record = ApplicantRecord.from_document(payload)
    update: Dict[str, Any] = {"step": state["step"], "record": _record_wire(record)}
    if state["step"] not in EDITABLE_STEPS:
        return update
    if state["dirty"]:
        logger.debug("Ignoring remote push while draft has unsaved edits")
        return update
    if record is None:
        return update
    update["draft"] = _draft_from_record(record)
    update["hydrated"] = True
    return update


def _common(state: RegistrationState, command: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Actions every waiting node understands. None → node-specific handling."""
    action = command.get("action")
    if action == "home":
        return _go_home()
    if action == "remote":
        return _remote_update(state, command.get("record"))
    if action == "edit":
        return {"step": state["step"], **_merge_fields(state, command.get("fields"))}
    return None


def _rejected(update: Dict[str, Any], err: RegistrationError) -> Dict[str, Any]:
    return {
        **update,
        "errors": dict(err.fields or {}),
        "error_kind": err.kind,
        "error_message": str(err),
    }


def _advance(state: RegistrationState, command: Dict[str, Any], step_name: str, target: Step) -> Dict[str, Any]:
    """Merge the submitted fields and move on only if the step validates."""
    update = {"step": state["step"], **_merge_fields(state, command.get("fields"))}
    try:
        validate_step(step_name, update["draft"])
    except ValidationError as e:
        logger.debug("Step %s rejected: %s", step_name, e.fields)
        return _rejected(update, e)
    return {**update, "step": target.value, **cleared_errors()}


def _unknown(state: RegistrationState, command: Dict[str, Any]) -> Dict[str, Any]:
    logger.warning("Ignoring action %r in step %s", command.get("action"), state["step"])
    return _stay(state)


# ── Waiting nodes ───────────────────────────────────────────────────────
def landing_node(state: RegistrationState, records: RecordStore) -> Dict[str, Any]:
    """Landing view: waits for "start", then loads any stored record into the draft."""
    command = _ask(state)
    action = command.get("action")

    if action == "start":
        try:
            record = records.read()
        except RegistrationError as e:
            logger.warning("Could not load stored registration (%s); starting empty", e.kind)
            record = None
        return {
            "step": Step.PERSONAL.value,
            "draft": _draft_from_record(record),
            "dirty": False,
            "hydrated": record is not None,
            "record": _record_wire(record) if record is not None else state["record"],
            **cleared_errors(),
        }
    if action == "remote":
        return _remote_update(state, command.get("record"))
    if action == "home":
        return _go_home()
    return _unknown(state, command)


def personal_node(state: RegistrationState) -> Dict[str, Any]:
    """Step 1: name, email, phone, city."""
    command = _ask(state)
    update = _common(state, command)
    if update is not None:
        return update
    if command.get("action") == "next":
        return _advance(state, command, "personal", Step.VEHICLE)
    return _unknown(state, command)


def vehicle_node(state: RegistrationState) -> Dict[str, Any]:
    """Step 2: make, model, year, mileage, wrap coverage."""
    command = _ask(state)
    update = _common(state, command)
    if update is not None:
        return update
    action = command.get("action")
    if action == "next":
        return _advance(state, command, "vehicle", Step.REVIEW)
    if action == "back":
        # Keep whatever was typed, no validation going back
        return {**_merge_fields(state, command.get("fields")), "step": Step.PERSONAL.value, **cleared_errors()}
    return _unknown(state, command)


def review_node(state: RegistrationState) -> Dict[str, Any]:
    """Step 3: read-only summary, waits for "confirm" or "back"."""
    command = _ask(state)
    update = _common(state, command)
    if update is not None:
        return update
    action = command.get("action")
    if action == "confirm":
        return {"step": Step.SUBMITTING.value, **cleared_errors()}
    if action == "back":
        return {"step": Step.VEHICLE.value, **cleared_errors()}
    return _unknown(state, command)


def submit_node(state: RegistrationState, records: RecordStore) -> Dict[str, Any]:
    """Submitting: one merge-upsert of the full draft. No interrupt, so it runs exactly once."""
    try:
        record = records.upsert(to_record_fields(state["draft"]))
    except NotReady as e:
        logger.info("Submit blocked: identity not ready")
        return _rejected({"step": Step.REVIEW.value}, e)
    except ValidationError as e:
        logger.warning("Submit rejected by record validation: %s", e.fields)
        return _rejected({"step": Step.REVIEW.value}, e)
    except RegistrationError as e:
        logger.error("Submit failed (%s): %s", e.kind, e.original or e)
        # Draft stays so a retry does not lose anything
        return _rejected({"step": Step.FAILED.value}, e)

    return {
        "step": Step.SUCCESS.value,
        "record": _record_wire(record),
        "draft": {},
        "dirty": False,
        **cleared_errors(),
    }


def success_node(state: RegistrationState) -> Dict[str, Any]:
    """Terminal for this submission; only "home" leaves."""
    command = _ask(state)
    action = command.get("action")
    if action == "home":
        return _go_home()
    if action == "remote":
        return _remote_update(state, command.get("record"))
    return _unknown(state, command)


def failed_node(state: RegistrationState) -> Dict[str, Any]:
    """Terminal for this attempt; "retry" goes back to review, "home" abandons."""
    command = _ask(state)
    action = command.get("action")
    if action == "retry":
        return {"step": Step.REVIEW.value, **cleared_errors()}
    if action == "home":
        return _go_home()
    if action == "remote":
        return _remote_update(state, command.get("record"))
    return _unknown(state, command)
