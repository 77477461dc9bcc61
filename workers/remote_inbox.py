"""Thread-safe inbox for subscription pushes.

The document watch delivers records on a background thread. The Streamlit
script drains the inbox on the UI thread and feeds the latest push into the
wizard, so the graph is only ever driven from one thread.
"""

import threading
from typing import Optional

from store.models import ApplicantRecord

_MISSING = object()


class RemoteInbox:
    """Latest-wins slot: only the newest push matters for hydration."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest = _MISSING

    def put(self, record: Optional[ApplicantRecord]) -> None:
        """Called from the watch thread."""
        with self._lock:
            self._latest = record

    def pop_latest(self):
        """Return (True, record) if something arrived since the last pop, else (False, None)."""
        with self._lock:
            latest, self._latest = self._latest, _MISSING
        if latest is _MISSING:
            return False, None
        return True, latest

    def reset(self) -> None:
        """Clear all state. Used on session resets and identity changes."""
        with self._lock:
            self._latest = _MISSING
