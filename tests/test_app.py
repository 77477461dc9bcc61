from pathlib import Path

import pytest
from streamlit.testing.v1 import AppTest

from graph.state import Step
from store.errors import Unavailable
from store.records import document_path
from tests.utils import FailingBackend

APP_PATH = str(Path(__file__).resolve().parents[1] / "app.py")

PERSONAL_INPUTS = {
    "Full name": "Jane Doe",
    "Email address": "jane@x.com",
    "Phone number": "+15551234567",
    "City": "Austin",
}
VEHICLE_INPUTS = {"Make": "Honda", "Model": "Civic", "Year": "2020", "Mileage": "30000"}


@pytest.fixture
def app(monkeypatch: pytest.MonkeyPatch) -> AppTest:
    monkeypatch.setenv("STORE_BACKEND", "memory")
    monkeypatch.setenv("FIREBASE_API_KEY", "")
    monkeypatch.setenv("INITIAL_AUTH_TOKEN", "")
    monkeypatch.setenv("LANGSMITH_TRACING", "false")
    monkeypatch.setenv("WRAP_NAMESPACE", "artifacts/app-test")
    at = AppTest.from_file(APP_PATH, default_timeout=30)
    at.run()
    assert not at.exception
    return at


def _press(at: AppTest, label: str) -> None:
    next(b for b in at.button if b.label == label).click().run()
    assert not at.exception


def _fill(at: AppTest, values: dict) -> None:
    for label, value in values.items():
        next(t for t in at.text_input if t.label == label).input(value)


def _fill_to_review(at: AppTest) -> None:
    _press(at, "🚀 Start Earning Now")
    _fill(at, PERSONAL_INPUTS)
    at.button(key="personal_next").click().run()
    _fill(at, VEHICLE_INPUTS)
    at.button(key="vehicle_next").click().run()
    assert at.session_state["journey"].step == Step.REVIEW


def test_landing_has_no_live_subscription(app: AppTest) -> None:
    records = app.session_state["records"]

    assert app.session_state["journey"].step == Step.LANDING
    assert records.backend.watcher_count(records.path()) == 0


def test_start_subscribes_and_home_cancels(app: AppTest) -> None:
    records = app.session_state["records"]
    path = records.path()

    _press(app, "🚀 Start Earning Now")
    assert app.session_state["journey"].step == Step.PERSONAL
    assert records.backend.watcher_count(path) == 1

    app.button(key="personal_home").click().run()

    assert app.session_state["journey"].step == Step.LANDING
    assert records.backend.watcher_count(path) == 0


def test_success_then_home_cancels_subscription(app: AppTest) -> None:
    records = app.session_state["records"]
    path = records.path()
    _fill_to_review(app)

    _press(app, "✅ Confirm & submit")
    assert app.session_state["journey"].step == Step.SUCCESS
    assert records.backend.watcher_count(path) == 1

    _press(app, "🏠 Back to home")

    assert app.session_state["journey"].step == Step.LANDING
    assert records.backend.watcher_count(path) == 0
    assert records.read().city == "Austin"


def test_failed_then_home_cancels_subscription(app: AppTest) -> None:
    records = app.session_state["records"]
    backend = records.backend
    path = records.path()
    _fill_to_review(app)
    records.backend = FailingBackend(backend, Unavailable("store offline"))

    _press(app, "✅ Confirm & submit")
    assert app.session_state["journey"].step == Step.FAILED
    assert backend.watcher_count(path) == 1

    _press(app, "🏠 Home")

    assert app.session_state["journey"].step == Step.LANDING
    assert backend.watcher_count(path) == 0


def test_identity_change_in_form_resubscribes_and_hydrates(app: AppTest) -> None:
    records = app.session_state["records"]
    old_path = records.path()
    new_path = document_path(records.config.namespace, "returning-user")
    records.backend.set_merge(new_path, {"fullName": "Sam Lee", "city": "Reno"})
    _press(app, "🚀 Start Earning Now")

    app.session_state["identity"].provider.authenticate("returning-user")
    app.run()

    assert records.path() == new_path
    assert records.backend.watcher_count(old_path) == 0
    assert records.backend.watcher_count(new_path) == 1
    assert app.session_state["journey"].draft["full_name"] == "Sam Lee"


def test_push_arriving_with_form_submit_keeps_submitted_values(app: AppTest) -> None:
    records = app.session_state["records"]
    _press(app, "🚀 Start Earning Now")
    _fill(app, PERSONAL_INPUTS)
    records.backend.set_merge(records.path(), {"fullName": "Remote Name", "city": "Boise"})

    app.button(key="personal_next").click().run()

    journey = app.session_state["journey"]
    assert journey.step == Step.VEHICLE
    assert journey.draft["full_name"] == "Jane Doe"
    assert journey.draft["city"] == "Austin"
    assert journey.record.full_name == "Remote Name"


def test_form_notes_prefill_until_first_edit(app: AppTest) -> None:
    records = app.session_state["records"]
    records.backend.set_merge(records.path(), {"fullName": "Sam Lee", "city": "Reno"})

    _press(app, "🚀 Start Earning Now")

    assert any("saved registration" in c.value for c in app.caption)

    _fill(app, {"City": "Elko"})
    app.button(key="personal_next").click().run()
    assert not any("saved registration" in c.value for c in app.caption)
