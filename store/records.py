"""Record store adapter: one ApplicantRecord document per SubjectId."""

import inspect
import logging
import weakref
from typing import Any, Callable, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from config import DOCUMENT_NAME, AppConfig
from store.backends import DocumentBackend, Unsubscribe
from store.errors import Denied, NotReady, Unavailable, ValidationError
from store.identity import IdentitySession
from store.models import ApplicantRecord, utcnow

logger = logging.getLogger(__name__)

RecordCallback = Callable[[Optional[ApplicantRecord]], None]


def _callback_ref(callback: RecordCallback) -> Callable[[], Optional[RecordCallback]]:
    """Weak reference for bound methods, a plain strong one for anything else."""
    if inspect.ismethod(callback):
        return weakref.WeakMethod(callback)
    return lambda: callback


def _cancel_watch(unsubscribe: Unsubscribe, path: str) -> None:
    unsubscribe()
    logger.debug("Unsubscribed from %s", path)


def document_path(namespace: str, subject_id: str) -> str:
    return f"{namespace.strip('/')}/users/{subject_id}/registrations/{DOCUMENT_NAME}"


class RecordStore:
    """
    Point read, live subscribe and merge-upsert against the visitor's document.
    Every call short-circuits with NotReady until the identity session has a subject.
    """

    def __init__(self, config: AppConfig, session: IdentitySession, backend: DocumentBackend) -> None:
        self.config = config
        self.session = session
        self.backend = backend

    def path(self) -> str:
        if not self.session.has_subject:
            raise NotReady("identity not resolved yet")
        return document_path(self.config.namespace, self.session.subject_id)

    def read(self) -> Optional[ApplicantRecord]:
        path = self.path()
        doc = self._call(self.backend.get, path)
        return self._parse(doc, path)

    def subscribe(self, callback: RecordCallback) -> Unsubscribe:
        """
        Push the current record now and on every remote change. Keep the handle.

        A bound-method callback is held weakly: once its owner is garbage
        collected (for example a browser session's inbox), the watch is
        cancelled without anyone calling the handle.
        """
        path = self.path()
        target = _callback_ref(callback)

        def _on_document(doc: Optional[dict]) -> None:
            deliver = target()
            if deliver is None:
                return
            try:
                record = self._parse(doc, path)
            except Unavailable:
                logger.exception("Ignoring unreadable push for %s", path)
                return
            deliver(record)

        unsubscribe = self._call(self.backend.watch, path, _on_document)
        logger.debug("Subscribed to %s", path)
        if not inspect.ismethod(callback):
            return unsubscribe
        finalizer = weakref.finalize(callback.__self__, _cancel_watch, unsubscribe, path)
        finalizer.atexit = False
        # Calling the finalizer cancels once and detaches it from the owner
        return finalizer

    def upsert(self, draft: Mapping[str, Any]) -> ApplicantRecord:
        """Merge the draft into the document, stamped with owner and time."""
        path = self.path()
        try:
            record = ApplicantRecord.model_validate(
                {**draft, "user_id": self.session.subject_id, "submitted_at": utcnow()}
            )
        except PydanticValidationError as e:
            fields = {str(err["loc"][0]): err["msg"] for err in e.errors() if err["loc"]}
            raise ValidationError("draft does not form a valid record", fields=fields, original=e) from e
        self._call(self.backend.set_merge, path, record.to_upsert())
        logger.info("Upserted registration for %s", self.session.subject_id)
        return record

    def _call(self, func, *args):
        try:
            return func(*args)
        except (NotReady, Unavailable, Denied):
            raise
        except Exception as e:
            logger.error("Store call %s failed: %s", getattr(func, "__name__", func), e)
            raise Unavailable("document store unavailable", original=e) from e

    @staticmethod
    def _parse(doc: Optional[dict], path: str) -> Optional[ApplicantRecord]:
        try:
            return ApplicantRecord.from_document(doc)
        except PydanticValidationError as e:
            raise Unavailable(f"stored document at {path} is malformed", original=e) from e
