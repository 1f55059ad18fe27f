import bcrypt


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash password with bcrypt and a fresh per-hash salt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("utf-8")


def check_password(password_hash: str, password: str) -> bool:
    """Verify password against stored hash. A missing or malformed hash never matches."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False
