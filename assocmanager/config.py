# config.py: environment driven settings for AssocManager
import os


def _normalize_db_url(raw: str) -> str:
    if not raw:
        return ""
    if raw.startswith("postgres://"):
        return raw.replace("postgres://", "postgresql+psycopg://", 1)
    if raw.startswith("postgresql://") and "+psycopg" not in raw:
        return raw.replace("postgresql://", "postgresql+psycopg://", 1)
    return raw


def _flag(name: str, default: str = "1") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


DATA_DIR = os.getenv("DATA_DIR", "data")
DEFAULT_DB_NAME = os.getenv("DEFAULT_DB_NAME", "assocmanager.db")
PLATFORM_DATABASE_URL = _normalize_db_url(os.getenv("PLATFORM_DATABASE_URL", ""))
JWT_SECRET = os.getenv("JWT_SECRET", "default_secret_change_this")
TOKEN_TTL_DAYS = int(os.getenv("TOKEN_TTL_DAYS", "30"))
PLATFORM_TOKEN_TTL_HOURS = int(os.getenv("PLATFORM_TOKEN_TTL_HOURS", "24"))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "10"))
FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
SEED_ON_STARTUP = _flag("SEED_ON_STARTUP")

# bootstrap accounts (init-db / init-platform)
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@assocmanager.local")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin")
SUPERADMIN_EMAIL = os.getenv("SUPERADMIN_EMAIL", "superadmin@platform.local")
SUPERADMIN_PASSWORD = os.getenv("SUPERADMIN_PASSWORD", "superadmin")


class Config:
    DATA_DIR = DATA_DIR
    DEFAULT_DB_NAME = DEFAULT_DB_NAME
    PLATFORM_DATABASE_URL = PLATFORM_DATABASE_URL
    JWT_SECRET = JWT_SECRET
    TOKEN_TTL_DAYS = TOKEN_TTL_DAYS
    PLATFORM_TOKEN_TTL_HOURS = PLATFORM_TOKEN_TTL_HOURS
    BCRYPT_ROUNDS = BCRYPT_ROUNDS
    FRONTEND_ORIGIN = FRONTEND_ORIGIN
    LOG_LEVEL = LOG_LEVEL
    SEED_ON_STARTUP = SEED_ON_STARTUP
    ADMIN_EMAIL = ADMIN_EMAIL
    ADMIN_PASSWORD = ADMIN_PASSWORD
    SUPERADMIN_EMAIL = SUPERADMIN_EMAIL
    SUPERADMIN_PASSWORD = SUPERADMIN_PASSWORD

    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}
    SQLALCHEMY_TRACK_MODIFICATIONS = False
