import logging
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    APP_ENV: str = "development"
    BASE_URL: str = "http://localhost:8000"
    DATABASE_URL: str = "sqlite:///./data/audit.db"
    DEVICE_CODE_PREFIX: str = "CHR"
    DEVICE_CODE_WIDTH: int = 3
    UNSPECIFIED_LABEL: str = "unspecified"
    REPORT_TIMEZONE: str = "UTC"
    DEFAULT_OPERATOR: str = "anonymous"

    model_config = SettingsConfigDict(env_file=".env")


settings = Settings()

if not settings.DEVICE_CODE_PREFIX:
    logger.warning("DEVICE_CODE_PREFIX is empty, numeric tokens will not be expanded to device codes")
