"""
Config / Dates / Passwords / Models Tests - 설정 및 유틸리티 테스트
"""
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from lifecycle.config import GymSettings, SchedulerConfig
from lifecycle.dates import add_months, days_remaining, ensure_aware, local_day, start_of_day
from lifecycle.errors import InvalidStateError, NotFoundError
from lifecycle.models import AccessCodeValidate, ClientCreate, Membership
from lifecycle.passwords import hash_password, verify_password


class TestSettings:
    """설정 기본값"""

    def test_gym_defaults(self):
        settings = GymSettings()
        assert settings.upcoming_window_days == 5
        assert settings.access_code_bytes == 8
        assert settings.access_code_max_attempts == 10
        assert settings.default_code_horizon_days == 365

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("GYM_TIMEZONE", "Asia/Seoul")
        monkeypatch.setenv("GYM_UPCOMING_WINDOW_DAYS", "7")
        settings = GymSettings()
        assert settings.timezone == "Asia/Seoul"
        assert settings.upcoming_window_days == 7

    def test_scheduler_defaults(self):
        config = SchedulerConfig()
        assert config.sweep_hour == 0
        assert config.sweep_minute == 0


class TestDates:
    """날짜 유틸리티"""

    def test_local_day_uses_zone(self):
        # UTC 3/10 20:00 = 서울 3/11 05:00
        value = datetime(2025, 3, 10, 20, 0, tzinfo=timezone.utc)
        assert local_day(value, ZoneInfo("UTC")) == date(2025, 3, 10)
        assert local_day(value, ZoneInfo("Asia/Seoul")) == date(2025, 3, 11)

    def test_naive_value_is_local(self):
        seoul = ZoneInfo("Asia/Seoul")
        value = ensure_aware(datetime(2025, 3, 10, 9, 0), seoul)
        assert value.utcoffset() == timedelta(hours=9)

    def test_start_of_day(self):
        value = datetime(2025, 3, 10, 15, 30, tzinfo=timezone.utc)
        assert start_of_day(value, ZoneInfo("UTC")) == datetime(2025, 3, 10, tzinfo=timezone.utc)

    @pytest.mark.parametrize("delta,expected", [
        (timedelta(days=3), 3),
        (timedelta(days=2, hours=1), 3),
        (timedelta(hours=1), 1),
        (timedelta(0), 0),
    ])
    def test_days_remaining_rounds_up(self, delta, expected):
        now = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
        assert days_remaining(now + delta, now) == expected

    def test_add_months_clamps_day(self):
        assert add_months(datetime(2025, 1, 31), 1) == datetime(2025, 2, 28)
        assert add_months(datetime(2024, 1, 31), 1) == datetime(2024, 2, 29)
        assert add_months(datetime(2025, 11, 15), 3) == datetime(2026, 2, 15)


class TestPasswords:
    """비밀번호 해시"""

    def test_hash_and_verify(self):
        hashed = hash_password("secret123", rounds=4)
        assert hashed != "secret123"
        assert verify_password("secret123", hashed) is True
        assert verify_password("wrong", hashed) is False

    def test_salted(self):
        assert hash_password("secret123", rounds=4) != hash_password("secret123", rounds=4)

    def test_broken_hash(self):
        assert verify_password("secret123", "not-a-hash") is False
        assert verify_password("", "") is False


class TestModels:
    """요청/응답 모델"""

    def test_validate_code_normalized(self):
        assert AccessCodeValidate(code=" ab12cd ").code == "AB12CD"

    def test_client_create_email_requires_password(self):
        with pytest.raises(ValueError):
            ClientCreate(first_name="김", last_name="민수", email="minsu@example.com")

    def test_membership_camel_case_output(self):
        membership = Membership(
            id="m-1",
            client_id="c-1",
            kind="monthly",
            start_date="2025-03-01T00:00:00+00:00",
            end_date="2025-04-01T00:00:00+00:00",
            status="active",
            client={"id": "c-1", "first_name": "김", "last_name": "민수", "gym_id": "gym-1"},
        )
        data = membership.to_api()
        assert data["clientId"] == "c-1"
        assert data["endDate"].startswith("2025-04-01")
        assert data["client"]["gymId"] == "gym-1"
        assert membership.client.full_name == "김 민수"


class TestErrors:
    """도메인 예외"""

    def test_invalid_state_to_dict(self):
        error = InvalidStateError("expired", "만료", expired_on=date(2025, 3, 10))
        assert error.status_code == 400
        assert error.to_dict() == {"message": "만료", "reason": "expired", "expiredOn": "2025-03-10"}

    def test_not_found_status(self):
        assert NotFoundError("없음").status_code == 404
