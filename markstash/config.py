import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "default-secret-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", f"sqlite:///{BASE_DIR / 'markstash.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    IDENTITY_PROVIDER = os.environ.get("IDENTITY_PROVIDER", "local").lower()
    IDENTITY_TIMEOUT = float(os.environ.get("IDENTITY_TIMEOUT", "10"))
    LOCAL_MIN_PASSWORD_LENGTH = int(os.environ.get("LOCAL_MIN_PASSWORD_LENGTH", "6"))
    LOCAL_SESSION_TTL_SECONDS = int(
        os.environ.get("LOCAL_SESSION_TTL_SECONDS", str(7 * 24 * 3600))
    )
    SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
    SUPABASE_ANON_KEY = os.environ.get("SUPABASE_ANON_KEY", "")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    IDENTITY_PROVIDER = "local"
    LOG_LEVEL = "DEBUG"
