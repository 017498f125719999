# tests/conftest.py
import os

# Must be set before the app (and its settings) are imported.
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DB_AUTO_CREATE", "false")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.api.dependencies.stats import get_stats_service  # noqa: E402
from app.main import create_app  # noqa: E402
from app.services.stats_service import StatsService  # noqa: E402
from tests.factories import FakeMeetingRepository, fixed_clock  # noqa: E402


@pytest.fixture
def repository() -> FakeMeetingRepository:
    return FakeMeetingRepository()


@pytest.fixture
def client(repository):
    """
    TestClient whose statistics endpoints run against the in-memory
    repository and a fixed clock.
    """
    app = create_app()
    app.dependency_overrides[get_stats_service] = lambda: StatsService(
        repository, clock=fixed_clock
    )
    with TestClient(app) as test_client:
        yield test_client
