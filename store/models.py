"""ApplicantRecord: the one persisted document per visitor."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class WrapCoverage(str, Enum):
    """How much of the vehicle the driver is willing to have wrapped."""

    FULL_WRAP = "full_wrap"
    PARTIAL_WRAP = "partial_wrap"
    REAR_WINDOW = "rear_window"
    NO_PREFERENCE = "no_preference"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


# Keys the client is allowed to write. `approved` is operator-controlled.
CLIENT_FIELDS = (
    "full_name", "email", "phone", "city",
    "make", "model", "year", "mileage", "wrap_coverage",
)


class ApplicantRecord(BaseModel):
    """Vehicle registration document, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    full_name: str = ""
    email: str = ""
    phone: str = ""
    city: str = ""
    make: str = ""
    model: str = ""
    year: Optional[Union[int, float]] = None
    mileage: Optional[Union[int, float]] = None
    wrap_coverage: WrapCoverage = WrapCoverage.NO_PREFERENCE

    user_id: Optional[str] = None
    submitted_at: Optional[datetime] = None
    approved: bool = False

    @field_validator("year", "mileage")
    @classmethod
    def _non_negative(cls, value):
        if value is not None and value < 0:
            raise ValueError("must be zero or more")
        return value

    @classmethod
    def from_document(cls, data: Optional[Dict[str, Any]]) -> Optional["ApplicantRecord"]:
        """Absent document → None."""
        if not data:
            return None
        return cls.model_validate(data)

    def to_upsert(self) -> Dict[str, Any]:
        """Payload for a merge write: client fields plus owner and timestamp, never `approved`."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            include=set(CLIENT_FIELDS) | {"user_id", "submitted_at"},
        )

    def to_draft(self) -> Dict[str, Any]:
        """Editable form values. Unset numbers come back as the empty string."""
        draft: Dict[str, Any] = {}
        for key in CLIENT_FIELDS:
            value = getattr(self, key)
            if value is None:
                value = ""
            elif isinstance(value, WrapCoverage):
                value = value.value
            elif isinstance(value, float) and value.is_integer():
                value = int(value)
            draft[key] = value
        return draft

    @property
    def status_label(self) -> str:
        return "approved" if self.approved else "pending review"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
