from types import SimpleNamespace

import pytest
from google.api_core import exceptions as gexc

from config import AppConfig
from store.backends import FirestoreBackend, InMemoryBackend, build_backend
from store.errors import Denied, Unavailable

PATH = "artifacts/app/users/u1/registrations/vehicle_registration"


class _FakeDocument:
    def __init__(self, data=None, error: Exception | None = None) -> None:
        self.data = data
        self.error = error
        self.sets: list[tuple[dict, bool]] = []
        self.unsubscribed = False

    def get(self):
        if self.error:
            raise self.error
        return SimpleNamespace(exists=self.data is not None, to_dict=lambda: self.data)

    def set(self, data, merge=False):
        if self.error:
            raise self.error
        self.sets.append((data, merge))

    def on_snapshot(self, callback):
        if self.error:
            raise self.error
        snapshot = SimpleNamespace(exists=self.data is not None, to_dict=lambda: self.data)
        callback([snapshot], [], None)
        return SimpleNamespace(unsubscribe=self._unsubscribe)

    def _unsubscribe(self) -> None:
        self.unsubscribed = True


class _FakeClient:
    def __init__(self, document: _FakeDocument) -> None:
        self.doc = document
        self.paths: list[str] = []

    def document(self, path: str) -> _FakeDocument:
        self.paths.append(path)
        return self.doc


def test_firestore_get_returns_dict_or_none() -> None:
    assert FirestoreBackend(_FakeClient(_FakeDocument({"city": "Austin"}))).get(PATH) == {"city": "Austin"}
    assert FirestoreBackend(_FakeClient(_FakeDocument(None))).get(PATH) is None


def test_firestore_set_merge_always_merges() -> None:
    doc = _FakeDocument()
    client = _FakeClient(doc)

    FirestoreBackend(client).set_merge(PATH, {"city": "Austin"})

    assert doc.sets == [({"city": "Austin"}, True)]
    assert client.paths == [PATH]


def test_firestore_watch_pushes_and_cancels() -> None:
    doc = _FakeDocument({"city": "Austin"})
    pushes: list = []

    cancel = FirestoreBackend(_FakeClient(doc)).watch(PATH, pushes.append)
    cancel()

    assert pushes == [{"city": "Austin"}]
    assert doc.unsubscribed is True


@pytest.mark.parametrize(
    "error, expected",
    [
        (gexc.PermissionDenied("rules"), Denied),
        (gexc.Unauthenticated("token"), Denied),
        (gexc.ServiceUnavailable("down"), Unavailable),
        (gexc.DeadlineExceeded("slow"), Unavailable),
        (gexc.RetryError("gave up", cause=None), Unavailable),
    ],
)
def test_firestore_errors_are_classified(error: Exception, expected: type) -> None:
    backend = FirestoreBackend(_FakeClient(_FakeDocument(error=error)))

    with pytest.raises(expected) as excinfo:
        backend.set_merge(PATH, {"city": "Austin"})

    assert excinfo.value.original is error


def test_in_memory_merge_and_isolation() -> None:
    backend = InMemoryBackend()
    backend.set_merge(PATH, {"a": 1, "nested": {"x": 1}})
    backend.set_merge(PATH, {"b": 2})

    doc = backend.get(PATH)
    doc["nested"]["x"] = 99

    assert backend.get(PATH) == {"a": 1, "b": 2, "nested": {"x": 1}}
    assert backend.writes == 2


def test_build_backend_selects_memory_and_rejects_unknown() -> None:
    assert isinstance(build_backend(AppConfig(store_backend="memory")), InMemoryBackend)
    with pytest.raises(ValueError):
        build_backend(AppConfig(store_backend="carrier-pigeon"))
