import os
from functools import lru_cache
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel


class Settings(BaseModel):
    easypaisa_api_url: str = "http://localhost:9000"
    easypaisa_merchant_id: str = ""
    easypaisa_secret_key: str = ""
    app_base_url: str = "http://localhost:8000"
    gateway_timeout_seconds: float = 10.0
    payment_confirmation_delay_seconds: float = 3.0

    confirmation_backend: Literal["local", "temporal"] = "local"
    store_backend: Literal["memory", "http"] = "memory"
    store_api_url: Optional[str] = None
    store_api_key: Optional[str] = None

    temporal_host: str = "localhost"
    temporal_port: str = "7233"
    temporal_namespace: str = "default"
    confirmation_task_queue: str = "payment-confirmation-task-queue"

    api_host: str = "localhost"
    api_port: int = 8000
    log_level: str = "INFO"

    @property
    def callback_url(self) -> str:
        return f"{self.app_base_url.rstrip('/')}/payment-callback"

    @property
    def temporal_address(self) -> str:
        return f"{self.temporal_host}:{self.temporal_port}"

    @classmethod
    def from_env(cls) -> "Settings":
        """Reads settings from the environment, with .env values as fallback."""
        load_dotenv()
        values = {}
        for name in cls.model_fields:
            raw = os.getenv(name.upper())
            if raw is not None and raw != "":
                values[name] = raw
        return cls(**values)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
