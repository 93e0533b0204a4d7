"""Shared test fixtures."""
import os
from datetime import date, time

import pytest
from langchain_core.language_models import FakeListChatModel

from clinicflow import config
from clinicflow.app_state import ClinicState
from clinicflow.clinic import Clinic
from clinicflow.commands import CommandIssuer
from clinicflow.identity import LocalIdentityProvider
from clinicflow.models import Appointment, AppointmentStatus, User, UserRole
from clinicflow.store import SQLDocumentStore, StoreUnavailableError
from clinicflow.text_generation import ClinicTextGenerator

MEMORY_DB = "sqlite:///:memory:"


@pytest.fixture(autouse=True)
def setup_env():
    """Set up environment variables for tests."""
    os.environ["OPENAI_API_KEY"] = "test-key"
    os.environ["LANGCHAIN_TRACING_V2"] = "false"
    yield


class FlakyStore(SQLDocumentStore):
    """SQL store whose writes can be switched off to simulate an outage."""

    def __init__(self, database_url: str = MEMORY_DB):
        super().__init__(database_url)
        self.available = True

    def _check(self):
        if not self.available:
            raise StoreUnavailableError("database offline")

    def _insert(self, collection, key, data):
        self._check()
        super()._insert(collection, key, data)

    def _replace(self, collection, key, data, upsert):
        self._check()
        super()._replace(collection, key, data, upsert)

    def _remove(self, collection, key):
        self._check()
        super()._remove(collection, key)


@pytest.fixture
def store():
    """FlakyStore over an in-memory database."""
    return FlakyStore()


@pytest.fixture
def state(store):
    """ClinicState subscribed to the test store."""
    clinic_state = ClinicState()
    clinic_state.attach(store)
    yield clinic_state
    clinic_state.detach()


@pytest.fixture
def issuer(store, state):
    return CommandIssuer(store, state)


@pytest.fixture
def admin():
    return User(email="emily.carter@clinicflow.com", name="Dr. Emily Carter", role=UserRole.ADMIN)


@pytest.fixture
def receptionist():
    return User(email="rita@clinicflow.com", name="Rita Moss", role=UserRole.RECEPTIONIST)


@pytest.fixture
def seeded(store):
    """Two patients, two doctors and both staff profiles."""
    store.set(config.PATIENTS, "p1", {"name": "Ahmed Mahmoud", "phone": "555-0101", "age": 39})
    store.set(config.PATIENTS, "p2", {"name": "Fatima Ali", "phone": "555-0102", "age": 32})
    store.set(config.DOCTORS, "d1", {
        "name": "Dr. Ben Hanson",
        "specialty": "Pediatrics",
        "service_price": 200.0,
        "free_return_period": 14,
    })
    store.set(config.DOCTORS, "d2", {"name": "Dr. Olivia Chen", "specialty": "Dermatology"})
    store.set(config.USERS, "emily.carter@clinicflow.com", {
        "name": "Dr. Emily Carter", "role": "Admin",
    })
    store.set(config.USERS, "rita@clinicflow.com", {"name": "Rita Moss", "role": "Receptionist"})
    return store


@pytest.fixture
def make_appointment():
    """Factory for Appointment models with sensible defaults."""
    def _make(**overrides) -> Appointment:
        data = {
            "id": "a1",
            "patient_id": "p1",
            "doctor_id": "d1",
            "date": date(2024, 7, 10),
            "start_time": time(9, 0),
            "end_time": time(9, 30),
            "status": AppointmentStatus.SCHEDULED,
            "reason": "Annual check-up",
        }
        data.update(overrides)
        return Appointment(**data)
    return _make


@pytest.fixture
def fake_llm():
    """Fake chat model returning canned JSON replies in order."""
    def _create(*responses: str) -> FakeListChatModel:
        return FakeListChatModel(responses=list(responses))
    return _create


@pytest.fixture
def identity():
    """LocalIdentityProvider over its own in-memory database."""
    return LocalIdentityProvider(MEMORY_DB)


@pytest.fixture
def clinic(store, identity):
    """Started Clinic over the test store and an in-memory identity provider."""
    text_generator = ClinicTextGenerator(
        llm=FakeListChatModel(responses=['{"explanation": "A fast heart rate."}']),
        max_retries=0,
    )
    app_clinic = Clinic(store, identity, text_generator)
    app_clinic.start()
    yield app_clinic
    app_clinic.close()
