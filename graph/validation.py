"""Step field definitions and validation.

The wizard uses these rules ONLY for:
  ✅ Deciding whether "next" may leave a step
  ✅ Turning raw form values into typed record values
  ❌ NOT for routing (that's the router's job)
"""

import math
import re
from typing import Any, Callable, Dict, List, Optional, Union

from store.errors import ValidationError
from store.models import WrapCoverage

# ── Step definitions (data-driven) ──────────────────────────────────────
# Each form step has "fields" (key → label) and "required" (keys that must be filled in)
STEP_DEFS: Dict[str, dict] = {
    "personal": {
        "title": "Personal details",
        "fields": {
            "full_name": "Full name",
            "email": "Email address",
            "phone": "Phone number",
            "city": "City",
        },
        "required": ["full_name", "email", "phone", "city"],
    },
    "vehicle": {
        "title": "Vehicle details",
        "fields": {
            "make": "Make",
            "model": "Model",
            "year": "Year",
            "mileage": "Mileage",
            "wrap_coverage": "Wrap coverage",
        },
        "required": ["make", "model", "year", "mileage"],
    },
}

FORM_FIELDS: List[str] = [key for step in STEP_DEFS.values() for key in step["fields"]]


def empty_draft() -> Dict[str, Any]:
    """All-empty draft; the empty string is the "unset" sentinel for every field."""
    draft = {key: "" for key in FORM_FIELDS}
    draft["wrap_coverage"] = WrapCoverage.NO_PREFERENCE.value
    return draft


def _is_blank(val: Any) -> bool:
    return val is None or not str(val).strip()


# ── Field normalizers ───────────────────────────────────────────────────
# Each returns the normalized value or None when the value is unusable.
def _normalize_text(val: Any) -> Optional[str]:
    return None if _is_blank(val) else str(val).strip()


def _normalize_email(val: Any) -> Optional[str]:
    if _is_blank(val):
        return None
    return str(val).strip().lower()


def looks_like_email(val: Any) -> bool:
    """Advisory format check for the UI; never blocks a step."""
    return bool(re.match(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", str(val or "").strip()))


def _parse_number(val: Any) -> Optional[float]:
    if isinstance(val, bool) or _is_blank(val):
        return None
    try:
        num = float(str(val).replace(",", "").strip())
    except ValueError:
        return None
    if not math.isfinite(num) or num < 0:
        return None
    return num


def _normalize_number(val: Any) -> Optional[Union[int, float]]:
    num = _parse_number(val)
    if num is None:
        return None
    return int(num) if num.is_integer() else num


def _normalize_coverage(val: Any) -> Optional[str]:
    if _is_blank(val):
        return WrapCoverage.NO_PREFERENCE.value
    try:
        return WrapCoverage(str(val).strip()).value
    except ValueError:
        return None


FIELD_NORMALIZERS: Dict[str, Callable[[Any], Any]] = {
    "email": _normalize_email,
    "year": _normalize_number,
    "mileage": _normalize_number,
    "wrap_coverage": _normalize_coverage,
}

FIELD_MESSAGES: Dict[str, str] = {
    "year": "enter a number of zero or more",
    "mileage": "enter a number of zero or more",
    "wrap_coverage": "pick one of the listed options",
}


def comparable_value(key: str, val: Any) -> Any:
    """Normalized form of a field value, so "2018" and 2018 compare equal."""
    normalized = FIELD_NORMALIZERS.get(key, _normalize_text)(val)
    if normalized is not None:
        return normalized
    return "" if _is_blank(val) else str(val).strip()


def step_errors(step_name: str, draft: Dict[str, Any]) -> Dict[str, str]:
    """Return {field: message} for every required-or-invalid field of a step."""
    step_def = STEP_DEFS.get(step_name, {})
    errors: Dict[str, str] = {}
    for key in step_def.get("fields", {}):
        raw = draft.get(key)
        required = key in step_def.get("required", [])
        if _is_blank(raw):
            if required:
                errors[key] = "required"
            continue
        normalizer = FIELD_NORMALIZERS.get(key, _normalize_text)
        if normalizer(raw) is None:
            errors[key] = FIELD_MESSAGES.get(key, "invalid value")
    return errors


def validate_step(step_name: str, draft: Dict[str, Any]) -> None:
    """Raise ValidationError if the step's fields do not allow moving on."""
    errors = step_errors(step_name, draft)
    if errors:
        title = STEP_DEFS.get(step_name, {}).get("title", step_name)
        raise ValidationError(f"{title}: please fix {', '.join(errors)}", fields=errors)


def to_record_fields(draft: Dict[str, Any]) -> Dict[str, Any]:
    """Typed record values for a draft that passed every step."""
    out: Dict[str, Any] = {}
    for key in FORM_FIELDS:
        normalizer = FIELD_NORMALIZERS.get(key, _normalize_text)
        out[key] = normalizer(draft.get(key))
    return out


def field_label(key: str) -> str:
    for step_def in STEP_DEFS.values():
        if key in step_def["fields"]:
            return step_def["fields"][key]
    return key.replace("_", " ").title()
