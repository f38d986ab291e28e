"""
Environment-aware configuration.
Values come from the process environment (and .env via python-dotenv);
get_config() picks the class, validate_config() rejects unsafe settings at startup.
"""
import os
import re
from dotenv import load_dotenv

from utils.durations import parse_duration

load_dotenv()  # Read .env if present

MIN_SECRET_LENGTH = 32


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> list[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    APP_ENV = os.getenv("APP_ENV", "dev")

    CORS_ORIGINS = _env_list("CORS_ORIGINS", "http://localhost:3000")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///authkit.db")
    SQLALCHEMY_ECHO = _env_bool("SQLALCHEMY_ECHO", False)

    JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET", "dev-access-secret-change-me-before-deploying")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "authkit-api")
    JWT_ACCESS_EXPIRES_IN = os.getenv("JWT_ACCESS_EXPIRES_IN", "15m")
    JWT_REFRESH_EXPIRES_IN = os.getenv("JWT_REFRESH_EXPIRES_IN", "7d")

    RATELIMIT_ENABLED = _env_bool("RATELIMIT_ENABLED", True)
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "100 per minute")
    RATELIMIT_AUTH = os.getenv("RATELIMIT_AUTH", "10 per minute")
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_HEADERS_ENABLED = True

    SECURITY_HEADERS_ENABLED = _env_bool("SECURITY_HEADERS_ENABLED", True)
    COMPRESS_REGISTER = _env_bool("COMPRESS_ENABLED", True)

    # Optional AES-256-GCM field encryption, off unless a key is set
    CRYPTO_KEY = os.getenv("CRYPTO_KEY") or None
    CRYPTO_IV_LENGTH = int(os.getenv("CRYPTO_IV_LENGTH", "16"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    SEED_RBAC = _env_bool("SEED_RBAC", True)


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")


class TestingConfig(BaseConfig):
    TESTING = True
    APP_ENV = "test"
    DATABASE_URL = "sqlite://"
    JWT_ACCESS_SECRET = "test-access-secret-min-32-chars!!"
    RATELIMIT_ENABLED = False
    CRYPTO_KEY = None
    LOG_LEVEL = "WARNING"


class ProductionConfig(BaseConfig):
    DEBUG = False
    APP_ENV = "prod"
    DATABASE_URL = os.getenv("DATABASE_URL")


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/prod/test).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig


def validate_config(config) -> None:
    """Raise RuntimeError listing every problem with the loaded configuration."""
    problems = []
    for key in ("JWT_ACCESS_EXPIRES_IN", "JWT_REFRESH_EXPIRES_IN"):
        try:
            if parse_duration(config.get(key)).total_seconds() <= 0:
                problems.append(f"{key}: must be positive")
        except ValueError as exc:
            problems.append(f"{key}: {exc}")

    crypto_key = config.get("CRYPTO_KEY")
    if crypto_key and not re.fullmatch(r"[0-9a-fA-F]{64}", crypto_key):
        problems.append("CRYPTO_KEY: must be 64 hex characters (32 bytes)")
    if not 8 <= int(config.get("CRYPTO_IV_LENGTH", 16)) <= 128:
        problems.append("CRYPTO_IV_LENGTH: must be between 8 and 128 bytes")

    if str(config.get("APP_ENV", "")).lower() in ("prod", "production"):
        if len(config.get("JWT_ACCESS_SECRET") or "") < MIN_SECRET_LENGTH:
            problems.append(f"JWT_ACCESS_SECRET: must be at least {MIN_SECRET_LENGTH} characters")
        if not config.get("DATABASE_URL"):
            problems.append("DATABASE_URL: required in production")

    if problems:
        formatted = "\n".join(f"  - {p}" for p in problems)
        raise RuntimeError(f"Invalid configuration:\n{formatted}")
