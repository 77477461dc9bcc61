"""LangSmith tracing — one registration flow = one trace across interrupts."""

import logging
import os
from contextlib import contextmanager

import langsmith as ls
from langsmith.run_trees import RunTree

from config import AppConfig

logger = logging.getLogger(__name__)


class FlowTracer:
    """Groups every graph invoke of one visitor's wizard under a parent run."""

    def __init__(self, config: AppConfig) -> None:
        self.enabled = config.langsmith_tracing
        self.project = config.langsmith_project
        # In-memory store: thread_id -> parent RunTree
        self._roots: dict[str, RunTree] = {}

    def _ensure_env(self) -> None:
        """Ensure LangSmith env vars are set when tracing is enabled."""
        os.environ.setdefault("LANGSMITH_TRACING", "true")
        os.environ.setdefault("LANGSMITH_PROJECT", self.project)

    @contextmanager
    def flow(self, thread_id: str, subject_id: str = ""):
        """
        Trace context for one invoke. The first call for a thread_id opens the
        parent run; later calls attach to it.
        """
        if not self.enabled:
            yield
            return

        self._ensure_env()
        root = self._roots.get(thread_id)
        if root is None:
            root = RunTree(name="registration_flow", run_type="chain")
            root.add_metadata({"thread_id": thread_id, "subject_id": subject_id or "<none>"})
            root.add_tags(["wraprewards", "registration"])
            root.post()
            self._roots[thread_id] = root

        with ls.tracing_context(
            project_name=self.project,
            enabled=True,
            parent=root,
            metadata={"thread_id": thread_id},
            tags=["wraprewards", "registration"],
        ):
            yield

    def clear(self, thread_id: str) -> None:
        """End the root run and remove from store when the flow completes or resets."""
        root = self._roots.pop(thread_id, None)
        if root is None:
            return
        try:
            root.end()
            root.patch()
        except Exception as e:
            # Tracing must never break the wizard
            logger.warning("Could not close trace for %s: %s", thread_id, e)
