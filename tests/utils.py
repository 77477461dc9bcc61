"""Shared sample data and fakes for the wizard tests."""

from typing import Optional

JANE_PERSONAL = {
    "full_name": "Jane Doe",
    "email": "jane@x.com",
    "phone": "+15551234567",
    "city": "Austin",
}
CIVIC_VEHICLE = {"make": "Honda", "model": "Civic", "year": 2020, "mileage": 30000}


class BrokenProvider:
    """Identity provider that is entirely unreachable."""

    def authenticate(self, token: Optional[str] = None) -> str:
        raise ConnectionError("identity provider down")

    def on_change(self, callback):
        return lambda: None


class FailingBackend:
    """Wraps a backend and raises on writes."""

    def __init__(self, inner, error: Exception) -> None:
        self.inner = inner
        self.error = error
        self.write_attempts = 0

    def get(self, path):
        return self.inner.get(path)

    def set_merge(self, path, data):
        self.write_attempts += 1
        raise self.error

    def watch(self, path, callback):
        return self.inner.watch(path, callback)
