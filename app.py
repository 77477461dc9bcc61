"""Streamlit UI — WrapRewards landing page and registration wizard."""

import logging
import threading
import weakref

import streamlit as st

from config import configure_logging, load_config
from graph.journey import RegistrationJourney
from graph.router import view_for
from graph.state import Step
from langsmith_tracing import FlowTracer
from store.backends import build_backend
from store.errors import NotReady, RegistrationError, ValidationError
from store.identity import IdentitySession, build_identity_provider
from store.records import RecordStore
from views import form as form_views
from views.landing import render_landing
from workers.remote_inbox import RemoteInbox

# ── Page config ─────────────────────────────────────────────────────────
st.set_page_config(page_title="WrapRewards", page_icon="🚗", layout="centered")

CONFIG = load_config()
configure_logging(CONFIG.log_level)
logger = logging.getLogger("wraprewards.app")


@st.cache_resource
def _shared_backend():
    """One document backend per server process, shared by all browser sessions."""
    return build_backend(CONFIG)


# ── Session state init ──────────────────────────────────────────────────
def _close_session(identity: IdentitySession, tracer: FlowTracer, thread_id: str) -> None:
    """Runs when a browser session's state is garbage collected."""
    tracer.clear(thread_id)
    identity.close()
    logger.debug("Closed session for wizard thread %s", thread_id)


def _init_session():
    if "journey" in st.session_state:
        return
    identity = IdentitySession(CONFIG, build_identity_provider(CONFIG))
    records = RecordStore(CONFIG, identity, _shared_backend())
    journey = RegistrationJourney(records, tracer=FlowTracer(CONFIG))
    identity_changed = threading.Event()
    # Fires on the provider's thread; the rerun below does the actual work
    identity.on_change(lambda _subject: identity_changed.set())

    st.session_state.identity = identity
    st.session_state.records = records
    st.session_state.journey = journey
    st.session_state.inbox = RemoteInbox()
    st.session_state.identity_changed = identity_changed
    st.session_state.unsubscribe = None
    # The record watch is dropped with the inbox; the rest goes with the journey
    weakref.finalize(journey, _close_session, identity, journey.tracer, journey.thread_id).atexit = False

    with st.spinner("Connecting…"):
        identity.resolve()
    identity_changed.clear()
    journey.begin()

    # Show an existing registration on the landing page
    try:
        journey.push_remote(records.read())
    except RegistrationError as e:
        logger.warning("Could not load registration for landing page: %s", e)


_init_session()

journey: RegistrationJourney = st.session_state.journey
records: RecordStore = st.session_state.records
inbox: RemoteInbox = st.session_state.inbox


# ── Subscription lifecycle ──────────────────────────────────────────────
def _unsubscribe():
    cancel = st.session_state.get("unsubscribe")
    if cancel is not None:
        cancel()
        st.session_state.unsubscribe = None
    inbox.reset()


def _subscribe():
    _unsubscribe()
    try:
        st.session_state.unsubscribe = records.subscribe(inbox.put)
    except RegistrationError as e:
        logger.warning("Live updates unavailable (%s): %s", e.kind, e)


def _dispatch(action: str, fields: dict | None = None):
    """Send one action to the wizard, then keep the subscription in step with the view."""
    try:
        journey.send(action, fields)
    except (ValidationError, NotReady):
        pass  # Recorded in the wizard state; rendered inline on the next run
    if view_for(journey.step) == "landing":
        _unsubscribe()
    elif action == "start":
        _subscribe()
    st.rerun()


if st.session_state.identity_changed.is_set():
    st.session_state.identity_changed.clear()
    if view_for(journey.step) == "form":
        _subscribe()

# A push waits while a step form is being submitted so it cannot replace the submitted values
if not form_views.form_submit_pending():
    arrived, pushed = inbox.pop_latest()
    if arrived:
        journey.push_remote(pushed)


# ── Views ───────────────────────────────────────────────────────────────
values = journey.values
step = journey.step

if view_for(step) == "landing":
    if render_landing(journey.record, st.session_state.identity.ready):
        _dispatch("start")
else:
    form_views.render_progress(step)
    if step in (Step.PERSONAL, Step.VEHICLE):
        form_views.render_prefill_notice(values["hydrated"], values["dirty"])
    with st.sidebar:
        if st.button("ℹ️ What happens next?"):
            form_views.show_next_steps_dialog()

    if step == Step.PERSONAL:
        chosen = form_views.render_personal(values["draft"], values["errors"])
    elif step == Step.VEHICLE:
        chosen = form_views.render_vehicle(values["draft"], values["errors"])
    elif step == Step.REVIEW:
        chosen = form_views.render_review(values["draft"], values["error_kind"], values["error_message"])
    elif step == Step.SUCCESS:
        chosen = form_views.render_success(journey.record)
    elif step == Step.FAILED:
        chosen = form_views.render_failed(values["error_kind"])
    else:
        st.info("Submitting…")
        chosen = None

    if chosen is not None:
        _dispatch(*chosen)
