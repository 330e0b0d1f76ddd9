from functools import lru_cache
from typing import Optional
import os

from pydantic_settings import BaseSettings
from pydantic import validator
from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: str) -> float:
    return float(os.getenv(name, default))


class Settings(BaseSettings):
    # Application settings
    PROJECT_NAME: str = "Kanban Placement Engine"
    DEBUG: bool = os.getenv("DEBUG", "False").lower() in ("true", "1", "t")

    # Logging settings
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    # Directory for log files; console only when empty
    LOG_DIR: Optional[str] = os.getenv("LOG_DIR") or None

    # Position index settings
    POSITION_START: float = _env_float("POSITION_START", "1024")
    POSITION_STEP: float = _env_float("POSITION_STEP", "1024")
    POSITION_MIN_GAP: float = _env_float("POSITION_MIN_GAP", "0.000001")

    # Persistence settings (0 disables the timeout)
    PERSISTENCE_TIMEOUT_SECONDS: float = _env_float("PERSISTENCE_TIMEOUT_SECONDS", "0")

    # Card types whose lifecycle is driven by an external automation
    AUTOMATED_CARD_TYPES: list[str] = ["onboarding"]

    @validator("LOG_LEVEL")
    def normalize_log_level(cls, value):
        return value.upper()

    @validator("POSITION_STEP", "POSITION_MIN_GAP")
    def must_be_positive(cls, value):
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()
