from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SQLMAPPER_", env_file=".env", env_ignore_empty=True, extra="ignore"
    )

    # sqlglot read dialect; None parses with the generic dialect
    DIALECT: Optional[str] = None
    CONDITION_STRATEGY: Literal["tree", "text"] = "tree"

    DEFAULT_PARAMETER_TYPE: str = "string"
    PRETTY_FORMAT: bool = False

    MAX_PAGE_SIZE: int = 1000

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "./"
    LOG_FILE: Optional[str] = None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return the process-wide settings instance.
    """

    return Settings()


__all__ = ["Settings", "get_settings"]
