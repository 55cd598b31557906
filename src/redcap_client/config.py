"""
Configuration management for the REDCap client.

Settings come from ``REDCAP_*`` environment variables or a ``.env`` file.
The same settings drive the level of the ``redcap_client`` logger.
"""

import logging
from typing import Optional

from pydantic import ConfigDict, field_validator
from pydantic_settings import BaseSettings

DEFAULT_TIMEOUT_SECONDS = 1200
DEFAULT_CONNECTION_TIMEOUT_SECONDS = 20

LOGGER_NAME = "redcap_client"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseSettings):
    model_config = ConfigDict(env_file=".env", env_prefix="REDCAP_")

    api_url: Optional[str] = None
    api_token: Optional[str] = None
    super_token: Optional[str] = None

    ssl_verify: bool = True
    ca_certificate_file: Optional[str] = None

    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    connection_timeout_seconds: int = DEFAULT_CONNECTION_TIMEOUT_SECONDS

    debug: bool = False
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level '{value}'")
        return level

    @property
    def logging_level(self) -> int:
        """Numeric level for the client logger; ``debug`` forces DEBUG."""
        if self.debug:
            return logging.DEBUG
        return logging.getLevelName(self.log_level)


def get_settings() -> Settings:
    return Settings()


def configure_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """
    Set the client logger's level from ``settings`` and give it a stream
    handler if it has none yet. Returns the configured logger.
    """
    if settings is None:
        settings = get_settings()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(settings.logging_level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Child of the client logger for one module."""
    return logging.getLogger(LOGGER_NAME).getChild(name)
