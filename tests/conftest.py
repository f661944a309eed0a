"""
Pytest configuration and fixtures for Gym Membership tests
"""

import pytest
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from fakes import FakeGymDB  # noqa: E402


@pytest.fixture(scope="function")
def now():
    """기준 시각 (오늘 UTC 12:00)"""
    return datetime.now(timezone.utc).replace(hour=12, minute=0, second=0, microsecond=0)


@pytest.fixture(scope="function")
def settings():
    from lifecycle.config import GymSettings
    return GymSettings(timezone="UTC", upcoming_window_days=5, access_code_max_attempts=10)


@pytest.fixture(scope="function")
def fake_db():
    return FakeGymDB()


@pytest.fixture(scope="function")
def services(fake_db, settings):
    from app.gym.dependencies import build_services
    return build_services(db=fake_db, settings=settings)


@pytest.fixture(scope="function")
def client_row(fake_db):
    """기본 회원 (체육관 gym-1)"""
    return fake_db.add_client(first_name="김", last_name="민수", gym_id="gym-1", email="minsu@example.com")


@pytest.fixture(scope="function")
def active_membership(fake_db, client_row, now):
    """종료일이 20일 남은 active 멤버십"""
    return fake_db.add_membership(client_row["id"], end_date=now + timedelta(days=20))


@pytest.fixture(scope="function")
def api(services):
    """
    FastAPI TestClient (in-memory 저장소)

    with 블록 없이 생성하므로 startup 이벤트(Supabase 연결, 스케줄러)는 실행되지 않습니다.
    """
    from fastapi.testclient import TestClient
    from app.server import app

    app.state.services = services
    app.state.scheduler = None
    yield TestClient(app)
    app.state.services = None
