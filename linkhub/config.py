import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "default-secret-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", f"sqlite:///{BASE_DIR / 'linkhub.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LINKS_FILE = os.environ.get("LINKS_FILE", str(BASE_DIR / "data" / "links.json"))
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")
    SCHEDULER_ENABLED = os.environ.get("SCHEDULER_ENABLED", "1") == "1"
    LINK_CHECK_TIMEOUT = float(os.environ.get("LINK_CHECK_TIMEOUT", "10"))
    LINK_CHECK_WORKERS = int(os.environ.get("LINK_CHECK_WORKERS", "8"))
    LINK_CHECK_INTERVAL_MINUTES = int(
        os.environ.get("LINK_CHECK_INTERVAL_MINUTES", "1440")
    )


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SCHEDULER_ENABLED = False
