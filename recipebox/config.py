import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="RECIPEBOX_", env_file=".env")

    database_url: str = "sqlite:///./recipebox.db"
    db_timeout: float = 5.0
    default_page_size: int = 25
    max_page_size: int = 100
    autocomplete_limit: int = 10
    placeholder_image: str = "placeholder.jpg"
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=(level or get_settings().log_level).upper(), format=LOG_FORMAT)
