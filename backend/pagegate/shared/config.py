from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Set
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[2]  # backend/
(BASE_DIR / "_data").mkdir(exist_ok=True)


def _split_csv(raw: str) -> List[str]:
    return [o.strip() for o in raw.split(",") if o.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_ENV: str = "dev"
    API_PREFIX: str = "/api"
    DATABASE_URL: str = "sqlite:///./_data/dev.db"
    CORS_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173"
    JWT_SECRET: str = "change-me"
    JWT_ALG: str = "HS256"
    ACCESS_TTL_MIN: int = 60
    LOG_LEVEL: str = "INFO"

    # referer allow-list, hostnames compared exactly
    ALLOWED_HOSTS: str = "localhost,127.0.0.1"
    # request paths reachable without a referer, e.g. "/api/auth/login"
    BYPASS_PATTERNS: str = ""
    # referer path patterns the login form must be posted from; empty = not enforced
    LOGIN_REFERER_PATTERNS: str = ""

    LOCK_TTL_SECONDS: int = 300

    @property
    def cors_origins_list(self) -> List[str]:
        return _split_csv(self.CORS_ORIGINS)

    @property
    def allowed_hosts_set(self) -> Set[str]:
        return set(_split_csv(self.ALLOWED_HOSTS))

    @property
    def bypass_patterns_list(self) -> List[str] | None:
        # None (not an empty list) means "no bypass configured"
        return _split_csv(self.BYPASS_PATTERNS) or None

    @property
    def login_referer_patterns_list(self) -> List[str]:
        return _split_csv(self.LOGIN_REFERER_PATTERNS)


settings = Settings()
