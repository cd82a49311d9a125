import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    log_level: str

    password_hash_method: str
    token_max_age: int


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///portal.db"),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
        password_hash_method=_getenv("PASSWORD_HASH_METHOD", "scrypt"),
        token_max_age=int(_getenv("TOKEN_MAX_AGE", str(30 * 24 * 3600))),
    )


def load_config() -> dict:
    s = load_settings()
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "LOG_LEVEL": s.log_level,
        "PASSWORD_HASH_METHOD": s.password_hash_method,
        "TOKEN_MAX_AGE": s.token_max_age,
        # request body limit (1MB)
        "MAX_CONTENT_LENGTH": 1 * 1024 * 1024,
    }
