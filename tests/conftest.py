from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import AppConfig
from graph.journey import RegistrationJourney
from store.backends import InMemoryBackend
from store.identity import IdentitySession, LocalIdentityProvider
from store.records import RecordStore


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(namespace="artifacts/test-app")


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def identity(app_config: AppConfig) -> IdentitySession:
    session = IdentitySession(app_config, LocalIdentityProvider())
    session.resolve()
    return session


@pytest.fixture
def records(app_config: AppConfig, identity: IdentitySession, backend: InMemoryBackend) -> RecordStore:
    return RecordStore(app_config, identity, backend)


@pytest.fixture
def journey(records: RecordStore) -> RegistrationJourney:
    j = RegistrationJourney(records)
    j.begin()
    return j
