"""
Environment-aware configuration.
Values come from the process environment (and .env when present).
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present

DEV_ACCESS_SECRET = "dev-access-secret-change-me"
DEV_REFRESH_SECRET = "dev-refresh-secret-change-me"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else default


class BaseConfig:
    DEBUG = False
    TESTING = False
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Token signing
    JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET", DEV_ACCESS_SECRET)
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", DEV_REFRESH_SECRET)
    JWT_ALGORITHM = "HS256"
    ACCESS_TOKEN_TTL = timedelta(minutes=_env_int("ACCESS_TOKEN_TTL_MINUTES", 15))
    REFRESH_TOKEN_TTL = timedelta(days=_env_int("REFRESH_TOKEN_TTL_DAYS", 7))
    REFRESH_TOKEN_BYTES = _env_int("REFRESH_TOKEN_BYTES", 32)
    # "on_expiry": rotate only when the refresh token is within the window of expiry
    # "always": rotate on every exchange
    REFRESH_ROTATION_POLICY = os.getenv("REFRESH_ROTATION_POLICY", "on_expiry")
    REFRESH_ROTATION_WINDOW = timedelta(hours=_env_int("REFRESH_ROTATION_WINDOW_HOURS", 24))

    # Refresh cookie
    REFRESH_COOKIE_NAME = os.getenv("REFRESH_COOKIE_NAME", "refresh_token")
    REFRESH_COOKIE_SECURE = _env_bool("REFRESH_COOKIE_SECURE", False)
    REFRESH_COOKIE_SAMESITE = os.getenv("REFRESH_COOKIE_SAMESITE", "Lax")
    REFRESH_COOKIE_PATH = "/"

    # Storage
    STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "sql")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///auth.db")
    DB_STATEMENT_TIMEOUT_MS = _env_int("DB_STATEMENT_TIMEOUT_MS", 5000)
    DB_POOL_TIMEOUT_SECONDS = _env_int("DB_POOL_TIMEOUT_SECONDS", 5)
    DB_ECHO = _env_bool("DB_ECHO", False)

    # Argon2 cost; None keeps argon2-cffi defaults
    ARGON2_TIME_COST = _env_int("ARGON2_TIME_COST", 0) or None
    ARGON2_MEMORY_COST = _env_int("ARGON2_MEMORY_COST", 0) or None
    ARGON2_PARALLELISM = _env_int("ARGON2_PARALLELISM", 0) or None

    @classmethod
    def validate(cls):
        pass


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    # In dev, propagate exceptions so our error handler has full context
    PROPAGATE_EXCEPTIONS = True


class TestingConfig(BaseConfig):
    TESTING = True
    LOG_LEVEL = "WARNING"
    STORAGE_BACKEND = "memory"
    DATABASE_URL = "sqlite://"
    JWT_ACCESS_SECRET = "test-access-secret-0123456789abcdef"
    JWT_REFRESH_SECRET = "test-refresh-secret-0123456789abcdef"
    ACCESS_TOKEN_TTL = timedelta(minutes=15)
    REFRESH_TOKEN_TTL = timedelta(days=7)
    REFRESH_TOKEN_BYTES = 32
    REFRESH_ROTATION_POLICY = "on_expiry"
    REFRESH_ROTATION_WINDOW = timedelta(hours=24)
    REFRESH_COOKIE_NAME = "refresh_token"
    REFRESH_COOKIE_SECURE = False
    # cheap hashing for tests
    ARGON2_TIME_COST = 1
    ARGON2_MEMORY_COST = 8
    ARGON2_PARALLELISM = 1


class ProductionConfig(BaseConfig):
    DEBUG = False
    REFRESH_COOKIE_SECURE = _env_bool("REFRESH_COOKIE_SECURE", True)

    @classmethod
    def validate(cls):
        missing = [
            name for name in ("JWT_ACCESS_SECRET", "JWT_REFRESH_SECRET", "DATABASE_URL")
            if not os.getenv(name)
        ]
        if missing:
            raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")
        if cls.JWT_ACCESS_SECRET == DEV_ACCESS_SECRET or cls.JWT_REFRESH_SECRET == DEV_REFRESH_SECRET:
            raise RuntimeError("Refusing to start with development JWT secrets")


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
