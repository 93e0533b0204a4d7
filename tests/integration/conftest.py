"""Fixtures for API tests against an overridden clinic."""
import pytest
from fastapi.testclient import TestClient

from clinicflow.api.dependencies import get_clinic
from clinicflow.api_server import app

PASSWORD = "s3cret-pass"


@pytest.fixture
def client(seeded, clinic):
    """TestClient whose requests use the test clinic."""
    app.dependency_overrides[get_clinic] = lambda: clinic
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def login(client, clinic):
    """Create credentials for a seeded profile and return auth headers."""
    def _login(email: str) -> dict:
        if not clinic.identity.account_exists(email):
            clinic.identity.create_account(email, PASSWORD)
        response = client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
        assert response.status_code == 200, response.json()
        return {"X-Session-Token": response.json()["token"]}
    return _login


@pytest.fixture
def admin_headers(login):
    return login("emily.carter@clinicflow.com")


@pytest.fixture
def receptionist_headers(login):
    return login("rita@clinicflow.com")
