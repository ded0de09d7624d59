import os
import sys
from pathlib import Path
import pytest
from fastapi.testclient import TestClient

# Ensure project root is on sys.path so 'src' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("ENV", "development")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("AUTH_LOGIN_LATENCY_SECONDS", "0")
os.environ.setdefault("PROFILE_FETCH_RETRY_DELAY", "0")


@pytest.fixture(scope="session")
def app():
    # lazy import after env configured
    from src.main import create_app

    return create_app()


@pytest.fixture(scope="session")
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture(autouse=True)
def fresh_profile():
    # every test starts from the seeded record
    from src.infrastructure.database.repositories.profile_repository import reset_profile_repository

    return reset_profile_repository()


@pytest.fixture()
def storage(tmp_path):
    from src.infrastructure.session.local_storage import LocalStorage

    return LocalStorage(tmp_path / "client")


@pytest.fixture()
def session_store(storage):
    from src.infrastructure.session.session_store import SessionStore

    return SessionStore(storage, latency=0)
