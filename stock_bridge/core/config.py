from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SHOPIFY_SCOPES = "read_products,read_locations,read_inventory,write_inventory"


class Settings(BaseSettings):
    """
    Environment defaults.

    Runtime values (credentials, interval, webhook secret) are stored in the
    ``config`` table and fall back to these when a key has never been saved.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    database_url: str = "sqlite:///./sync.db"
    port: int = 3000
    base_url: Optional[str] = None
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

    # Tiny ERP
    tiny_api_base_url: str = "https://api.tiny.com.br/api2"
    tiny_api_token: str = ""
    tiny_api_format: str = "json"
    tiny_webhook_secret: str = ""

    # Shopify
    shopify_store: str = ""
    shopify_access_token: str = ""
    shopify_api_version: str = "2026-01"
    shopify_client_id: str = ""
    shopify_client_secret: str = ""
    shopify_scopes: str = DEFAULT_SHOPIFY_SCOPES
    shopify_redirect_uri: str = ""

    # Sync
    sync_interval_minutes: int = Field(default=180, ge=1)
    http_timeout_seconds: float = 30.0
    discover_sample_products: int = 150

    @property
    def public_base_url(self) -> str:
        return self.base_url or f"http://localhost:{self.port}"


settings = Settings()
