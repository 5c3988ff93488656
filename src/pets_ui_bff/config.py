# src/pets_ui_bff/config.py

import logging
from pathlib import Path
from typing import Any, List, Union

from dotenv import load_dotenv
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# .env is at the project root, two levels up from src/pets_ui_bff/
CONFIG_FILE_DIR = Path(__file__).resolve().parent
PROJECT_ROOT_DIR = CONFIG_FILE_DIR.parent.parent
ENV_FILE_PATH = PROJECT_ROOT_DIR / ".env"

if ENV_FILE_PATH.exists():
    load_dotenv(dotenv_path=ENV_FILE_PATH, override=False)
    logger.info("PetsUI-BFF: loaded .env file from %s", ENV_FILE_PATH)
else:
    logger.debug("PetsUI-BFF: no .env file at %s, relying on environment variables", ENV_FILE_PATH)


class Settings(BaseSettings):
    # === Upstream REST API ===
    API_BASE_URL: str = "http://localhost:3000/api"

    # === Session cookies ===
    ENVIRONMENT: str = "development"
    SESSION_MAX_AGE: int = 60 * 60 * 24  # 24 hours

    # Pydantic first sees the raw env string; the validator turns it into List[str]
    PROTECTED_PREFIXES: Union[str, List[str]] = "/dashboard,/profile,/admin"

    # === Server ===
    HOST: str = "127.0.0.1"
    PORT: int = 5173
    LOG_LEVEL: str = "INFO"

    @property
    def COOKIE_SECURE(self) -> bool:
        return self.ENVIRONMENT.strip().lower() == "production"

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False
    )

    @field_validator("API_BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("PROTECTED_PREFIXES", mode='before')
    @classmethod
    def parse_comma_separated_prefixes(cls, v: Any) -> List[str]:
        if isinstance(v, str):
            if not v.strip():
                return []
            return [prefix.strip() for prefix in v.split(',') if prefix.strip()]
        if isinstance(v, (list, tuple)):
            return list(v)
        raise TypeError('PROTECTED_PREFIXES: Expected a comma-separated string or a list.')

    @model_validator(mode='after')
    def check_prefixes_are_paths(self) -> 'Settings':
        for prefix in self.PROTECTED_PREFIXES:
            if not isinstance(prefix, str) or not prefix.startswith("/"):
                raise ValueError(f"PROTECTED_PREFIXES entries must be absolute paths, got {prefix!r}")
        return self


settings = Settings()
