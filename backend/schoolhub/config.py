"""Application settings and validation."""

import os


DEFAULT_JWT_SECRET = "change_me_for_prod"
DEFAULT_ADMIN_SECRET_KEY = "admin_2024_secret"
DEFAULT_BCS_SECRET_KEY = "bcs_2024_secret"


class Settings:
    ENV: str
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_EXPIRE_HOURS: int
    DATABASE_URL: str
    ADMIN_SECRET_KEY: str
    BCS_SECRET_KEY: str
    LOCALE: str
    TIMEZONE: str
    ALLOW_INSECURE_JWT: bool
    ALLOW_DEV_CORS: bool
    LOGIN_MAX_FAILURES: int
    LOGIN_WINDOW_SECONDS: int

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.JWT_SECRET = os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_EXPIRE_HOURS = int(os.getenv("JWT_EXPIRE_HOURS", "24"))
        self.DATABASE_URL = os.getenv("DATABASE_URL", "")
        self.ADMIN_SECRET_KEY = os.getenv("ADMIN_SECRET_KEY", DEFAULT_ADMIN_SECRET_KEY)
        self.BCS_SECRET_KEY = os.getenv("BCS_SECRET_KEY", DEFAULT_BCS_SECRET_KEY)
        self.LOCALE = os.getenv("LOCALE", "vi").lower()
        self.TIMEZONE = os.getenv("TIMEZONE", "Asia/Ho_Chi_Minh")
        self.ALLOW_INSECURE_JWT = os.getenv("ALLOW_INSECURE_JWT", "false").lower() == "true"
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self.LOGIN_MAX_FAILURES = int(os.getenv("LOGIN_MAX_FAILURES", "5"))
        self.LOGIN_WINDOW_SECONDS = int(os.getenv("LOGIN_WINDOW_SECONDS", "300"))
        self._validate()

    def _validate(self):
        if self.ENV == "dev":
            return
        if not self.ALLOW_INSECURE_JWT and self.JWT_SECRET == DEFAULT_JWT_SECRET:
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")
        if self.ADMIN_SECRET_KEY == DEFAULT_ADMIN_SECRET_KEY or self.BCS_SECRET_KEY == DEFAULT_BCS_SECRET_KEY:
            raise RuntimeError("ADMIN_SECRET_KEY and BCS_SECRET_KEY must be set in non-dev environments")
        if self.ADMIN_SECRET_KEY == self.BCS_SECRET_KEY:
            raise RuntimeError("ADMIN_SECRET_KEY and BCS_SECRET_KEY must differ")


settings = Settings()
