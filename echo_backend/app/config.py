from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EchoSettings(BaseSettings):
    ECHO_REAL_KEY: Optional[str] = Field(
        None,
        description="When set, requests must carry this value in X-APP_KEY",
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache()
def get_settings() -> EchoSettings:
    return EchoSettings()
