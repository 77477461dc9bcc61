"""RegistrationJourney — drives the compiled wizard graph for one visitor."""

import logging
import uuid
from contextlib import nullcontext
from typing import Any, Dict, Optional

from langgraph.types import Command

from graph.builder import build_graph
from graph.state import RegistrationState, Step, initial_state
from store.errors import ERROR_KINDS
from store.models import ApplicantRecord
from store.records import RecordStore

logger = logging.getLogger(__name__)

# Actions whose rejection is reported to the caller as an exception: (steps that handle it, error kinds)
_REJECTABLE = {
    "next": ((Step.PERSONAL.value, Step.VEHICLE.value), ("validation",)),
    "confirm": ((Step.REVIEW.value,), ("validation", "not_ready")),
}


class RegistrationJourney:
    """
    Thin driver over the graph: one checkpointer thread per visitor, one
    action per call. Rejected "next"/"confirm" actions raise ValidationError
    or NotReady after the graph has recorded the rejection in its state.
    """

    def __init__(
        self,
        records: RecordStore,
        checkpointer=None,
        thread_id: Optional[str] = None,
        tracer=None,
    ) -> None:
        self.records = records
        self.graph = build_graph(records, checkpointer=checkpointer)
        self.thread_id = thread_id or str(uuid.uuid4())
        self.config = {"configurable": {"thread_id": self.thread_id}}
        self.tracer = tracer

    # ── State access ────────────────────────────────────────────────
    def _snapshot(self):
        return self.graph.get_state(self.config)

    @property
    def started(self) -> bool:
        snapshot = self._snapshot()
        return bool(snapshot and snapshot.values)

    @property
    def values(self) -> RegistrationState:
        snapshot = self._snapshot()
        return snapshot.values if snapshot and snapshot.values else initial_state()

    @property
    def step(self) -> Step:
        return Step(self.values["step"])

    @property
    def draft(self) -> Dict[str, Any]:
        return dict(self.values["draft"])

    @property
    def errors(self) -> Dict[str, str]:
        return dict(self.values["errors"])

    @property
    def record(self) -> Optional[ApplicantRecord]:
        return ApplicantRecord.from_document(self.values.get("record"))

    def pending_interrupt(self) -> Optional[dict]:
        """Extract the pending interrupt payload, if any."""
        snapshot = self._snapshot()
        if snapshot and snapshot.tasks:
            for task in snapshot.tasks:
                if hasattr(task, "interrupts") and task.interrupts:
                    return task.interrupts[0].value
        return None

    # ── Driving ─────────────────────────────────────────────────────
    def _trace(self):
        if self.tracer is None:
            return nullcontext()
        return self.tracer.flow(self.thread_id, self.records.session.subject_id or "")

    def begin(self) -> RegistrationState:
        """Run the graph up to the landing interrupt. No-op once started."""
        if not self.started:
            with self._trace():
                self.graph.invoke(initial_state(), self.config)
        return self.values

    def send(
        self,
        action: str,
        fields: Optional[Dict[str, Any]] = None,
        record: Optional[Dict[str, Any]] = None,
    ) -> RegistrationState:
        """Resume the graph with one action and return the new state."""
        self.begin()
        before = self.values["step"]
        with self._trace():
            self.graph.invoke(
                Command(resume={"action": action, "fields": dict(fields or {}), "record": record}),
                self.config,
            )
        values = self.values
        if values["step"] != before:
            logger.debug("%s: %s -> %s", action, before, values["step"])
        self._raise_rejection(action, before, values)
        return values

    def _raise_rejection(self, action: str, before: str, values: RegistrationState) -> None:
        if action not in _REJECTABLE:
            return
        steps, kinds = _REJECTABLE[action]
        kind = values.get("error_kind")
        if before in steps and kind in kinds:
            error_cls = ERROR_KINDS[kind]
            raise error_cls(values.get("error_message") or kind, fields=values.get("errors") or None)

    # ── Convenience actions ─────────────────────────────────────────
    def start(self) -> RegistrationState:
        return self.send("start")

    def edit(self, fields: Dict[str, Any]) -> RegistrationState:
        return self.send("edit", fields)

    def next(self, fields: Optional[Dict[str, Any]] = None) -> RegistrationState:
        return self.send("next", fields)

    def back(self, fields: Optional[Dict[str, Any]] = None) -> RegistrationState:
        return self.send("back", fields)

    def confirm(self) -> RegistrationState:
        return self.send("confirm")

    def retry(self) -> RegistrationState:
        return self.send("retry")

    def home(self) -> RegistrationState:
        values = self.send("home")
        if self.tracer is not None:
            self.tracer.clear(self.thread_id)
        return values

    def push_remote(self, record: Optional[ApplicantRecord]) -> RegistrationState:
        """Deliver a subscription push; the graph decides whether it hydrates the draft."""
        wire = record.model_dump(mode="json", by_alias=True) if record is not None else None
        return self.send("remote", record=wire)
