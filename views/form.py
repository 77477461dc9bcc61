"""Form view components — progress, the three steps, and the terminal screens.

Each render function only draws what it is given and returns the action the
visitor chose (plus any submitted field values); the wizard graph decides
what the action means.
"""

from typing import Any, Dict, Optional, Tuple

import streamlit as st

from config import TOTAL_FORM_STEPS
from graph.state import Step
from graph.validation import STEP_DEFS, field_label, looks_like_email
from store.models import ApplicantRecord, WrapCoverage

Action = Optional[Tuple[str, Dict[str, Any]]]

COVERAGE_OPTIONS = [c.value for c in WrapCoverage]

# Keys of the buttons that submit a step form
FORM_SUBMIT_KEYS = ("personal_home", "personal_next", "vehicle_back", "vehicle_next")


def form_submit_pending() -> bool:
    """True on the rerun triggered by a step form submit, before the form is drawn."""
    return any(st.session_state.get(key) for key in FORM_SUBMIT_KEYS)


def render_prefill_notice(hydrated: bool, dirty: bool) -> None:
    if hydrated and not dirty:
        st.caption("📄 We filled in the details from your saved registration.")


def render_progress(step: Step) -> None:
    number = step.form_number
    if number is None:
        return
    st.progress(number / TOTAL_FORM_STEPS, text=f"Step {number} of {TOTAL_FORM_STEPS}")


def _error_for(errors: Dict[str, str], key: str) -> None:
    if key in errors:
        st.error(f"{field_label(key)}: {errors[key]}", icon="⚠️")


def render_personal(draft: Dict[str, Any], errors: Dict[str, str]) -> Action:
    """Step 1 form."""
    fields = STEP_DEFS["personal"]["fields"]
    with st.form("personal"):
        st.subheader(STEP_DEFS["personal"]["title"])
        values = {}
        for key, label in fields.items():
            values[key] = st.text_input(label, value=str(draft.get(key, "")))
            _error_for(errors, key)
        if values["email"].strip() and not looks_like_email(values["email"]):
            st.caption("That email address looks unusual. Double-check it before continuing.")
        home_col, next_col = st.columns(2)
        home = home_col.form_submit_button("🏠 Home", key="personal_home")
        nxt = next_col.form_submit_button("Next →", type="primary", key="personal_next")
    if home:
        return "home", {}
    if nxt:
        return "next", values
    return None


def render_vehicle(draft: Dict[str, Any], errors: Dict[str, str]) -> Action:
    """Step 2 form. Year and mileage stay text so the empty string can mean "unset"."""
    fields = STEP_DEFS["vehicle"]["fields"]
    with st.form("vehicle"):
        st.subheader(STEP_DEFS["vehicle"]["title"])
        values = {}
        for key in ("make", "model", "year", "mileage"):
            values[key] = st.text_input(fields[key], value=str(draft.get(key, "")))
            _error_for(errors, key)
        current = draft.get("wrap_coverage") or WrapCoverage.NO_PREFERENCE.value
        values["wrap_coverage"] = st.selectbox(
            fields["wrap_coverage"],
            COVERAGE_OPTIONS,
            index=COVERAGE_OPTIONS.index(current) if current in COVERAGE_OPTIONS else 0,
            format_func=lambda v: WrapCoverage(v).label,
        )
        _error_for(errors, "wrap_coverage")
        back_col, next_col = st.columns(2)
        back = back_col.form_submit_button("← Back", key="vehicle_back")
        nxt = next_col.form_submit_button("Next →", type="primary", key="vehicle_next")
    if back:
        return "back", values
    if nxt:
        return "next", values
    return None


def render_review(draft: Dict[str, Any], error_kind: Optional[str], error_message: Optional[str]) -> Action:
    """Step 3: read-only summary of the draft."""
    st.subheader("Review & submit")
    for step_def in STEP_DEFS.values():
        st.markdown(f"**{step_def['title']}**")
        for key, label in step_def["fields"].items():
            value = draft.get(key, "")
            if key == "wrap_coverage" and value:
                value = WrapCoverage(value).label
            st.caption(f"{label}: {value if value != '' else '(not set)'}")

    if error_kind == "not_ready":
        st.warning("⏳ Still connecting to your account. Please try again in a moment.")
    elif error_kind == "validation" and error_message:
        st.error(error_message)

    back_col, confirm_col = st.columns(2)
    if back_col.button("← Back", use_container_width=True):
        return "back", {}
    if confirm_col.button("✅ Confirm & submit", type="primary", use_container_width=True):
        return "confirm", {}
    return None


def render_success(record: Optional[ApplicantRecord]) -> Action:
    st.balloons()
    st.success("🎉 Your registration has been submitted!")
    if record is not None:
        st.caption(f"Saved for {record.full_name} · {record.make} {record.model} · status: {record.status_label}")
    if st.button("🏠 Back to home", use_container_width=True):
        return "home", {}
    return None


def render_failed(error_kind: Optional[str]) -> Action:
    """Failure screen. Unavailable is retryable; denied is terminal for this attempt."""
    if error_kind == "denied":
        st.error(
            "We couldn't save your registration because access was refused. "
            "Please try again later or contact support."
        )
    else:
        st.error("We couldn't reach our servers. Your answers are kept, so you can try again.")
    retry_col, home_col = st.columns(2)
    if retry_col.button("🔁 Try again", type="primary", use_container_width=True):
        return "retry", {}
    if home_col.button("🏠 Home", use_container_width=True):
        return "home", {}
    return None


@st.dialog("What happens next?")
def show_next_steps_dialog() -> None:
    st.write(
        "Once you submit, our team reviews your vehicle and driving area and matches you "
        "with a brand campaign. You can come back any time to update your details."
    )
    if st.button("Close", use_container_width=True):
        st.rerun()
