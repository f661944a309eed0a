"""
멤버십/출입코드 설정
"""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()


class SupabaseConfig(BaseSettings):
    """Supabase 설정"""

    supabase_url: str = Field(default="", description="Supabase Project URL")
    supabase_key: str = Field(default="", description="Supabase service key")

    class Config:
        env_prefix = ""
        case_sensitive = False


class SchedulerConfig(BaseSettings):
    """스케줄러 설정"""

    scheduler_enabled: bool = Field(default=True, description="만료 점검 스케줄러 활성화")
    sweep_hour: int = Field(default=0, description="매일 만료 점검 시각 (시)")
    sweep_minute: int = Field(default=0, description="매일 만료 점검 시각 (분)")
    run_on_startup: bool = Field(default=True, description="서버 시작 시 1회 즉시 점검")

    class Config:
        env_prefix = ""
        case_sensitive = False


class GymSettings(BaseSettings):
    """멤버십 수명주기 설정"""

    # 날짜 절삭(만료일 당일 포함)과 자정 스케줄 모두 이 타임존 기준
    timezone: str = Field(default="UTC", description="기준 타임존 (IANA)")

    upcoming_window_days: int = Field(default=5, description="만료 예정 알림 기간 (일)")
    access_code_bytes: int = Field(default=8, description="출입코드 난수 바이트 수 (hex 2배 길이)")
    access_code_max_attempts: int = Field(default=10, description="코드 충돌 시 최대 재시도 횟수")
    default_code_horizon_days: int = Field(default=365, description="멤버십 종료일이 없을 때 코드 유효기간 (일)")

    debug: bool = Field(default=False, description="개발 모드 (에러 응답에 스택 포함)")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)

    class Config:
        env_prefix = "GYM_"
        case_sensitive = False


@lru_cache()
def get_gym_settings() -> GymSettings:
    return GymSettings()


# 전역 설정 인스턴스
supabase_config = SupabaseConfig()
scheduler_config = SchedulerConfig()
