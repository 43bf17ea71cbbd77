"""Application settings and validation."""

import os
from pathlib import Path

BASE = Path(__file__).resolve().parent.parent


class Settings:
    ENV: str
    SESSION_SECRET: str
    ALLOW_INSECURE_SESSION: bool
    DATABASE_URL: str
    LOG_LEVEL: str
    OBSERVABILITY_DIR: str
    DEMO_USERNAME: str
    DEMO_PASSWORD: str

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.SESSION_SECRET = os.getenv("SESSION_SECRET", "change_me_for_prod")
        self.ALLOW_INSECURE_SESSION = os.getenv("ALLOW_INSECURE_SESSION", "false").lower() == "true"
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE / 'petclinic.db'}")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.OBSERVABILITY_DIR = os.getenv("OBSERVABILITY_DIR", "").strip()
        self.DEMO_USERNAME = os.getenv("DEMO_USERNAME", "").strip()
        self.DEMO_PASSWORD = os.getenv("DEMO_PASSWORD", "")
        self._validate()

    def _validate(self):
        if self.ENV != "dev" and not self.ALLOW_INSECURE_SESSION and self.SESSION_SECRET == "change_me_for_prod":
            raise RuntimeError("SESSION_SECRET must be set to a non-default value in non-dev environments")


settings = Settings()
