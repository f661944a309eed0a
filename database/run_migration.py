"""
Supabase 마이그레이션 실행 스크립트

Supabase Python 클라이언트는 임의 SQL 실행을 지원하지 않으므로
테이블 존재 여부를 확인하고, 없으면 Dashboard에서 실행할 SQL을 출력합니다.
"""
import sys
from pathlib import Path
from typing import List

from loguru import logger
from supabase import Client

from database.supabase_client import get_supabase_client

MIGRATIONS_DIR = Path(__file__).parent / "migrations"
MIGRATION_FILE = MIGRATIONS_DIR / "001_gym_core.sql"

REQUIRED_TABLES = ["clients", "plan_templates", "memberships", "access_codes", "notifications"]


def find_missing_tables(client: Client, tables: List[str] = REQUIRED_TABLES) -> List[str]:
    """존재하지 않는 테이블 목록"""
    missing = []
    for table in tables:
        try:
            client.table(table).select("id").limit(1).execute()
        except Exception as e:
            if "does not exist" in str(e) or "relation" in str(e).lower():
                missing.append(table)
            else:
                logger.warning(f"{table} 테이블 확인 중 오류: {e}")
    return missing


def run_migration(client: Client = None) -> bool:
    """마이그레이션 확인 및 SQL 출력"""
    if not MIGRATION_FILE.exists():
        logger.error(f"마이그레이션 파일을 찾을 수 없습니다: {MIGRATION_FILE}")
        return False

    try:
        client = client or get_supabase_client()
    except ValueError as e:
        logger.error(str(e))
        return False

    missing = find_missing_tables(client)
    if not missing:
        logger.info("✅ 모든 테이블이 이미 존재합니다")
        return True

    logger.info(f"생성이 필요한 테이블: {', '.join(missing)}")

    sql_content = MIGRATION_FILE.read_text(encoding="utf-8")

    logger.info("=" * 60)
    logger.info("Supabase Dashboard에서 아래 SQL을 실행해주세요:")
    logger.info("=" * 60)
    logger.info("1. https://supabase.com/dashboard 접속")
    logger.info("2. 프로젝트 선택 → SQL Editor")
    logger.info("3. 아래 SQL 복사하여 실행")
    logger.info("=" * 60)
    print("\n" + sql_content + "\n")
    logger.info("=" * 60)

    return False


if __name__ == "__main__":
    logger.remove()
    logger.add(sys.stdout, format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}")
    sys.exit(0 if run_migration() else 1)
