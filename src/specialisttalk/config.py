from pydantic_settings import BaseSettings

from specialisttalk.core.modules.user.validators import PasswordPolicy


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str  # MongoDB URL, the path names the database, e.g. mongodb://localhost/specialisttalk
    redis_url: str  # Session store, e.g. redis://localhost:6379/0
    host: str
    port: int
    debug: bool
    cors_origins: list[str] = []
    session_ttl_seconds: int = 30 * 24 * 60 * 60
    session_cookie_secure: bool = False  # Set to True in production with HTTPS
    disconnect_channel: str = "disconnect"  # Redis pub/sub channel read by chat workers on sign-out
    bcrypt_rounds: int = 12
    password_min_length: int = 8
    password_require_lowercase: bool = True
    password_require_uppercase: bool = True
    password_require_digit: bool = True
    password_require_symbol: bool = True

    model_config = {
        "env_file": [".env"],
        "env_prefix": "SPECIALISTTALK_",
        "extra": "ignore",
    }

    @property
    def password_policy(self) -> PasswordPolicy:
        return PasswordPolicy(
            min_length=self.password_min_length,
            require_lowercase=self.password_require_lowercase,
            require_uppercase=self.password_require_uppercase,
            require_digit=self.password_require_digit,
            require_symbol=self.password_require_symbol,
        )
