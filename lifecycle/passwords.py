"""
회원 비밀번호 해시 (bcrypt, 솔트 포함)

평문 비교는 사용하지 않습니다.
"""
import bcrypt


def _to_bcrypt_secret(password: str) -> bytes:
    """
    bcrypt는 앞 72 바이트만 사용하므로 명시적으로 잘라서 전달
    """
    pw = password.encode("utf-8")
    if len(pw) > 72:
        pw = pw[:72]
    return pw


def hash_password(password: str, rounds: int = 12) -> str:
    """bcrypt 해시 문자열 반환 (DB 저장용)"""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_to_bcrypt_secret(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(_to_bcrypt_secret(password), password_hash.encode("utf-8"))
    except ValueError:
        # 손상된 해시
        return False
