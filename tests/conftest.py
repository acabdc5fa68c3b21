"""
Shared fixtures: isolated data directory, fresh hosted store, API client
"""
from datetime import date

import pytest
from fastapi.testclient import TestClient

from careboard.core import config
from careboard.database.cache import get_records_cache
from careboard.database.schemas import Patient
from careboard.database.sync import InMemoryPatientStore, reset_session

TEST_PASSWORD = "test-clinic-key"


@pytest.fixture(autouse=True)
def temp_data_dir(tmp_path, monkeypatch):
    """Point the local mirror at a temporary directory and start from an empty store"""
    data_dir = tmp_path / "data"
    monkeypatch.setattr(config, "DATA_DIR", str(data_dir))
    monkeypatch.setattr(config, "CLINIC_PASSWORD", TEST_PASSWORD)
    get_records_cache().clear()
    reset_session(InMemoryPatientStore())

    yield data_dir

    reset_session()
    get_records_cache().clear()


@pytest.fixture
def client():
    """Test client sending the clinic key"""
    from careboard.main import app
    test_client = TestClient(app)
    test_client.headers.update({"X-Clinic-Key": TEST_PASSWORD})
    return test_client


@pytest.fixture
def anonymous_client():
    """Test client without the clinic key"""
    from careboard.main import app
    return TestClient(app)


def make_patient(**overrides) -> Patient:
    fields = {
        "id": "p-1",
        "name": "Kim Minji",
        "treatment_start_date": date(2024, 1, 1),
    }
    fields.update(overrides)
    return Patient(**fields)
