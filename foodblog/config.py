from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings, read from FOODBLOG_* variables or .env."""

    model_config = SettingsConfigDict(
        env_prefix="FOODBLOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = Field(default="sqlite:///./foodblog.db")

    jwt_secret: str = Field(default="change-this-development-secret-key")
    jwt_algorithm: str = Field(default="HS256")
    jwt_expire_minutes: int = Field(default=60)

    # Uploaded recipe images
    upload_dir: str = Field(default="public/images")
    images_path: str = Field(default="/images")

    default_page_size: int = Field(default=10)

    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    log_level: str = Field(default="INFO")

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
