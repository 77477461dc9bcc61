import gc

import pytest

from config import AppConfig
from store.backends import InMemoryBackend
from store.errors import Denied, NotReady, Unavailable, ValidationError
from store.identity import IdentitySession
from store.models import ApplicantRecord
from store.records import RecordStore, document_path
from tests.utils import CIVIC_VEHICLE, JANE_PERSONAL, BrokenProvider, FailingBackend
from workers.remote_inbox import RemoteInbox

DRAFT = {**JANE_PERSONAL, **CIVIC_VEHICLE, "wrap_coverage": "full_wrap"}


class EmptySubjectProvider:
    def authenticate(self, token=None):
        return ""

    def on_change(self, callback):
        return lambda: None


def test_document_path_is_fixed_per_subject() -> None:
    assert (
        document_path("artifacts/app", "uid-1")
        == "artifacts/app/users/uid-1/registrations/vehicle_registration"
    )
    assert document_path("/artifacts/app/", "uid-1").startswith("artifacts/app/users/")


def test_read_of_absent_record_is_none(records: RecordStore) -> None:
    assert records.read() is None


def test_upsert_then_read_round_trip(records: RecordStore) -> None:
    written = records.upsert(DRAFT)

    stored = records.read()

    assert stored is not None
    for key, value in DRAFT.items():
        assert getattr(stored, key) == value
    assert stored.user_id == records.session.subject_id
    assert stored.submitted_at == written.submitted_at


def test_upsert_is_idempotent(records: RecordStore, backend: InMemoryBackend) -> None:
    records.upsert(DRAFT)
    first = backend.get(records.path())
    records.upsert(DRAFT)
    second = backend.get(records.path())

    first.pop("submittedAt")
    second.pop("submittedAt")
    assert first == second


def test_upsert_merges_instead_of_overwriting(records: RecordStore, backend: InMemoryBackend) -> None:
    backend.set_merge(records.path(), {"approved": True, "campaignId": "c-42"})

    records.upsert(DRAFT)

    stored = backend.get(records.path())
    assert stored["approved"] is True
    assert stored["campaignId"] == "c-42"
    assert stored["fullName"] == "Jane Doe"


def test_upsert_rejects_unparseable_numbers(records: RecordStore, backend: InMemoryBackend) -> None:
    with pytest.raises(ValidationError) as excinfo:
        records.upsert({**DRAFT, "mileage": "-3"})

    assert "mileage" in excinfo.value.fields
    assert backend.writes == 0


def test_subscribe_pushes_now_and_on_change(records: RecordStore, backend: InMemoryBackend) -> None:
    pushes = []

    cancel = records.subscribe(pushes.append)
    records.upsert(DRAFT)
    cancel()
    records.upsert({**DRAFT, "city": "Dallas"})

    assert pushes[0] is None
    assert isinstance(pushes[1], ApplicantRecord)
    assert pushes[1].city == "Austin"
    assert len(pushes) == 2
    assert backend.watcher_count(records.path()) == 0


@pytest.mark.parametrize("provider", [BrokenProvider(), EmptySubjectProvider()])
def test_operations_short_circuit_without_subject(app_config: AppConfig, backend: InMemoryBackend, provider) -> None:
    identity = IdentitySession(app_config, provider)
    identity.resolve()
    store = RecordStore(app_config, identity, backend)

    assert identity.ready is True
    with pytest.raises(NotReady):
        store.read()
    with pytest.raises(NotReady):
        store.subscribe(lambda _record: None)
    with pytest.raises(NotReady):
        store.upsert(DRAFT)
    assert backend.writes == 0


@pytest.mark.parametrize(
    "error, expected",
    [
        (TimeoutError("slow"), Unavailable),
        (Unavailable("down"), Unavailable),
        (Denied("nope"), Denied),
    ],
)
def test_backend_errors_are_classified(records: RecordStore, error: Exception, expected: type) -> None:
    records.backend = FailingBackend(records.backend, error)

    with pytest.raises(expected):
        records.upsert(DRAFT)


def test_malformed_document_reads_as_unavailable(records: RecordStore, backend: InMemoryBackend) -> None:
    backend.set_merge(records.path(), {"year": "not a year"})

    with pytest.raises(Unavailable):
        records.read()


def test_watch_ends_when_subscriber_is_collected(records: RecordStore, backend: InMemoryBackend) -> None:
    inbox = RemoteInbox()
    records.subscribe(inbox.put)
    path = records.path()
    assert backend.watcher_count(path) == 1

    del inbox
    gc.collect()

    assert backend.watcher_count(path) == 0
    records.upsert(DRAFT)


def test_bound_method_subscription_cancels_once(records: RecordStore, backend: InMemoryBackend) -> None:
    inbox = RemoteInbox()
    cancel = records.subscribe(inbox.put)
    records.upsert(DRAFT)
    assert inbox.pop_latest()[1].city == "Austin"

    cancel()
    cancel()
    records.upsert({**DRAFT, "city": "Dallas"})

    assert backend.watcher_count(records.path()) == 0
    assert inbox.pop_latest() == (False, None)
