"""Document backends: point-read, merge-write and watch of a single document."""

import copy
import logging
import os
import threading
from typing import Any, Callable, Dict, List, Optional, Protocol

from google.api_core import exceptions as gexc
from google.auth import default as google_auth_default
from google.cloud import firestore
from google.oauth2 import service_account

from config import AppConfig
from store.errors import Denied, Unavailable

logger = logging.getLogger(__name__)

Document = Dict[str, Any]
DocumentCallback = Callable[[Optional[Document]], None]
Unsubscribe = Callable[[], None]


class DocumentBackend(Protocol):
    def get(self, path: str) -> Optional[Document]: ...

    def set_merge(self, path: str, data: Document) -> None: ...

    def watch(self, path: str, callback: DocumentCallback) -> Unsubscribe: ...


# ── In-memory ───────────────────────────────────────────────────────────
class InMemoryBackend:
    """Dict-backed store for local runs and tests. Watchers are notified synchronously."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._docs: Dict[str, Document] = {}
        self._watchers: Dict[str, List[DocumentCallback]] = {}
        self.writes = 0

    def get(self, path: str) -> Optional[Document]:
        with self._lock:
            doc = self._docs.get(path)
            return copy.deepcopy(doc) if doc is not None else None

    def set_merge(self, path: str, data: Document) -> None:
        with self._lock:
            merged = dict(self._docs.get(path, {}))
            merged.update(copy.deepcopy(data))
            self._docs[path] = merged
            self.writes += 1
            watchers = list(self._watchers.get(path, []))
        for callback in watchers:
            callback(copy.deepcopy(merged))

    def watch(self, path: str, callback: DocumentCallback) -> Unsubscribe:
        with self._lock:
            self._watchers.setdefault(path, []).append(callback)
        callback(self.get(path))

        def _cancel() -> None:
            with self._lock:
                callbacks = self._watchers.get(path, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return _cancel

    def watcher_count(self, path: str) -> int:
        with self._lock:
            return len(self._watchers.get(path, []))


# ── Firestore ───────────────────────────────────────────────────────────
_DENIED = (gexc.PermissionDenied, gexc.Unauthenticated, gexc.Forbidden)


def _translate(err: Exception, action: str, path: str) -> Exception:
    if isinstance(err, _DENIED):
        return Denied(f"{action} refused for {path}", original=err)
    return Unavailable(f"{action} failed for {path}", original=err)


class FirestoreBackend:
    """google-cloud-firestore implementation."""

    def __init__(self, client: firestore.Client) -> None:
        self.client = client

    def get(self, path: str) -> Optional[Document]:
        try:
            snapshot = self.client.document(path).get()
        except gexc.GoogleAPIError as e:
            raise _translate(e, "read", path) from e
        return snapshot.to_dict() if snapshot.exists else None

    def set_merge(self, path: str, data: Document) -> None:
        try:
            self.client.document(path).set(data, merge=True)
        except gexc.GoogleAPIError as e:
            raise _translate(e, "write", path) from e

    def watch(self, path: str, callback: DocumentCallback) -> Unsubscribe:
        def _on_snapshot(snapshots, _changes, _read_time) -> None:
            # Runs on the Firestore watch thread
            for snapshot in snapshots:
                callback(snapshot.to_dict() if snapshot.exists else None)

        try:
            watch = self.client.document(path).on_snapshot(_on_snapshot)
        except gexc.GoogleAPIError as e:
            raise _translate(e, "subscribe", path) from e
        return watch.unsubscribe


def _build_creds(config: AppConfig):
    key_path = config.credentials_path
    scopes = ["https://www.googleapis.com/auth/datastore"]
    if key_path and os.path.exists(key_path):
        return service_account.Credentials.from_service_account_file(key_path, scopes=scopes)
    creds, _ = google_auth_default(scopes=scopes)
    return creds


def build_backend(config: AppConfig) -> DocumentBackend:
    """Select the document backend named in the config."""
    if config.store_backend == "firestore":
        logger.info("Using Firestore backend (project=%s)", config.gcp_project or "<default>")
        client = firestore.Client(
            project=config.gcp_project or None,
            credentials=_build_creds(config),
        )
        return FirestoreBackend(client)
    if config.store_backend != "memory":
        raise ValueError(f"Unknown STORE_BACKEND: {config.store_backend!r}")
    logger.info("Using in-memory backend; registrations are lost on restart")
    return InMemoryBackend()
