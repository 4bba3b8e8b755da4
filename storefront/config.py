import logging.config
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Настройки из окружения, префикс STOREFRONT_"""

    model_config = SettingsConfigDict(env_prefix="STOREFRONT_")

    page_size: int = 6
    transaction_max_attempts: int = 5
    log_level: str = "INFO"
    log_json: bool = False
    seed_path: str = "data/catalog.json"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def logging_config(settings: Settings) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {
                "format": "{levelname} {asctime} {name} {message}",
                "style": "{",
            },
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json" if settings.log_json else "verbose",
            },
        },
        "loggers": {
            "storefront": {
                "handlers": ["console"],
                "level": settings.log_level.upper(),
                "propagate": False,
            },
        },
    }


def configure_logging(settings: Optional[Settings] = None) -> None:
    logging.config.dictConfig(logging_config(settings or get_settings()))
