"""Identity session: who is filling in the form.

Tries the externally supplied bootstrap token first and falls back to an
anonymous subject. The session is "ready" once the first attempt has
finished, whatever its outcome, so the UI never hangs on a broken provider.
"""

import logging
import threading
import uuid
from typing import Callable, List, Optional, Protocol

import requests

from config import AppConfig
from store.errors import Denied, Unavailable

logger = logging.getLogger(__name__)

SubjectId = str
IdentityListener = Callable[[Optional[SubjectId]], None]
Unsubscribe = Callable[[], None]

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
REQUEST_TIMEOUT = 10


class IdentityProvider(Protocol):
    def authenticate(self, token: Optional[str] = None) -> SubjectId: ...

    def on_change(self, callback: IdentityListener) -> Unsubscribe: ...


class _Listeners:
    """Small callback registry shared by providers and the session."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._callbacks: List[IdentityListener] = []

    def add(self, callback: IdentityListener) -> Unsubscribe:
        with self._lock:
            self._callbacks.append(callback)

        def _remove() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return _remove

    def fire(self, subject_id: Optional[SubjectId]) -> None:
        with self._lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback(subject_id)


# ── Providers ───────────────────────────────────────────────────────────
class FirebaseIdentityProvider:
    """Firebase Auth over the Identity Toolkit REST API."""

    def __init__(self, api_key: str, session: Optional[requests.Session] = None) -> None:
        self.api_key = api_key
        self.http = session or requests.Session()
        self.id_token: Optional[str] = None
        self._subject: Optional[SubjectId] = None
        self._listeners = _Listeners()

    def authenticate(self, token: Optional[str] = None) -> SubjectId:
        subject = None
        if token:
            try:
                subject = self._sign_in_with_custom_token(token)
            except (requests.RequestException, Denied, KeyError, ValueError) as e:
                logger.warning("Custom token sign-in failed, falling back to anonymous: %s", e)
        if subject is None:
            subject = self._sign_in_anonymously()
        self._set_subject(subject)
        return subject

    def on_change(self, callback: IdentityListener) -> Unsubscribe:
        return self._listeners.add(callback)

    def _set_subject(self, subject: SubjectId) -> None:
        changed = subject != self._subject
        self._subject = subject
        if changed:
            self._listeners.fire(subject)

    def _post(self, endpoint: str, payload: dict) -> dict:
        resp = self.http.post(
            f"{IDENTITY_TOOLKIT_URL}/{endpoint}",
            params={"key": self.api_key},
            json=payload,
            timeout=REQUEST_TIMEOUT,
        )
        if resp.status_code in (400, 401, 403):
            # Identity Toolkit reports bad tokens / disabled sign-in methods as 400
            message = resp.json().get("error", {}).get("message", resp.text)
            raise Denied(f"identity provider refused {endpoint}: {message}")
        resp.raise_for_status()
        return resp.json()

    def _sign_in_with_custom_token(self, token: str) -> SubjectId:
        data = self._post("accounts:signInWithCustomToken", {"token": token, "returnSecureToken": True})
        self.id_token = data["idToken"]
        lookup = self._post("accounts:lookup", {"idToken": self.id_token})
        return lookup["users"][0]["localId"]

    def _sign_in_anonymously(self) -> SubjectId:
        try:
            data = self._post("accounts:signUp", {"returnSecureToken": True})
        except requests.RequestException as e:
            raise Unavailable("anonymous sign-in failed", original=e) from e
        self.id_token = data.get("idToken")
        return data["localId"]


class LocalIdentityProvider:
    """Offline provider for development: the token is the subject, otherwise a new anonymous id."""

    def __init__(self) -> None:
        self._subject: Optional[SubjectId] = None
        self._listeners = _Listeners()

    def authenticate(self, token: Optional[str] = None) -> SubjectId:
        subject = token.strip() if token and token.strip() else f"anon-{uuid.uuid4().hex}"
        if subject != self._subject:
            self._subject = subject
            self._listeners.fire(subject)
        return subject

    def on_change(self, callback: IdentityListener) -> Unsubscribe:
        return self._listeners.add(callback)


def build_identity_provider(config: AppConfig) -> IdentityProvider:
    if config.firebase_api_key:
        return FirebaseIdentityProvider(config.firebase_api_key)
    return LocalIdentityProvider()


# ── Session ─────────────────────────────────────────────────────────────
class IdentitySession:
    """Resolves and tracks the SubjectId for the current visitor."""

    def __init__(self, config: AppConfig, provider: IdentityProvider) -> None:
        self.config = config
        self.provider = provider
        self.subject_id: Optional[SubjectId] = None
        self._ready = False
        self._lock = threading.Lock()
        self._listeners = _Listeners()
        self._provider_unsubscribe = provider.on_change(self._on_provider_change)

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def has_subject(self) -> bool:
        """Ready with a non-empty subject; an empty id counts as not ready."""
        return self._ready and bool(self.subject_id and self.subject_id.strip())

    def resolve(self) -> Optional[SubjectId]:
        """Sign in once. Safe to call on every Streamlit rerun."""
        with self._lock:
            if self._ready:
                return self.subject_id
            token = self.config.auth_token or None
            try:
                subject = self.provider.authenticate(token)
            except Exception:
                # Provider unreachable or misconfigured: stay keyless but unblock the UI
                logger.exception("Identity provider failed; continuing without a subject")
                subject = None
            if subject is not None:
                self.subject_id = subject
            self._ready = True
        logger.info("Identity resolved: %s", self.subject_id or "<none>")
        self._listeners.fire(self.subject_id)
        return self.subject_id

    def on_change(self, callback: IdentityListener) -> Unsubscribe:
        return self._listeners.add(callback)

    def close(self) -> None:
        self._provider_unsubscribe()

    def _on_provider_change(self, subject_id: Optional[SubjectId]) -> None:
        previous = self.subject_id
        self.subject_id = subject_id
        # Before the first resolution finishes, resolve() announces the subject itself
        if not self._ready:
            return
        if previous != subject_id:
            logger.info("Identity changed from %s to %s", previous, subject_id)
            self._listeners.fire(subject_id)
