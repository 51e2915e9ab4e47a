"""Shopify Admin GraphQL client."""

import logging
import re
from typing import Any, Dict, Optional

import httpx

from stock_bridge.constants.sync import ConfigKey
from stock_bridge.core.exceptions import ConfigurationError, ShopifyGraphQLError, TransportError
from stock_bridge.services.config_service import ConfigService
from stock_bridge.utils.parsing import normalize_text

logger = logging.getLogger(__name__)

GID_PREFIX = "gid://"


def to_gid(resource: str, value: Any) -> str:
    """Promote a bare id to ``gid://shopify/<resource>/<id>``; gids pass through."""
    text = str(value).strip()
    if text.startswith(GID_PREFIX):
        return text
    return f"gid://shopify/{resource}/{text}"


def to_location_gid(location_id: Any) -> str:
    return to_gid("Location", location_id)


def to_inventory_item_gid(inventory_item_id: Any) -> str:
    return to_gid("InventoryItem", inventory_item_id)


def gid_numeric_id(gid: str) -> str:
    return str(gid).rsplit("/", 1)[-1]


def normalize_shop_domain(raw_shop: Any) -> str:
    """
    ``https://My-Store.myshopify.com/admin`` or ``my-store`` ->
    ``my-store.myshopify.com``. Empty input stays empty.
    """
    trimmed = normalize_text(raw_shop)
    trimmed = re.sub(r"^https?://", "", trimmed, flags=re.IGNORECASE)
    trimmed = re.sub(r"/.*$", "", trimmed).lower()
    if not trimmed:
        return ""
    return trimmed if trimmed.endswith(".myshopify.com") else f"{trimmed}.myshopify.com"


class ShopifyClient:
    """Async GraphQL transport; credentials come from the config provider per call."""

    def __init__(
        self,
        config: ConfigService,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0
    ):
        self.config = config
        self._http = http_client
        self._owns_http = http_client is None
        self.timeout = timeout

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    def get_store(self) -> str:
        return normalize_shop_domain(self.config.get(ConfigKey.SHOPIFY_STORE))

    def get_token(self) -> str:
        return self.config.get(ConfigKey.SHOPIFY_ACCESS_TOKEN) or ""

    def get_api_version(self) -> str:
        return self.config.get(ConfigKey.SHOPIFY_API_VERSION) or "2026-01"

    async def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Run a GraphQL document and return its ``data``.

        Raises:
            ConfigurationError: Store or access token missing (checked before any I/O)
            TransportError: Network failure or non-2xx status
            ShopifyGraphQLError: Top-level ``errors`` in the response
        """
        store = self.get_store()
        token = self.get_token()
        if not store or not token:
            raise ConfigurationError("SHOPIFY_STORE/SHOPIFY_ACCESS_TOKEN is not configured")

        url = f"https://{store}/admin/api/{self.get_api_version()}/graphql.json"
        try:
            response = await self.http.post(
                url,
                json={"query": query, "variables": variables or {}},
                headers={"X-Shopify-Access-Token": token},
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Shopify request failed: {e}") from e

        if not response.is_success:
            raise TransportError(f"Shopify HTTP {response.status_code}", response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise ShopifyGraphQLError("Invalid Shopify response") from e

        if not isinstance(payload, dict):
            raise ShopifyGraphQLError("Invalid Shopify response")

        errors = payload.get("errors")
        if errors:
            if isinstance(errors, list):
                text = "; ".join(str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors)
            else:
                text = str(errors)
            raise ShopifyGraphQLError(f"Shopify GraphQL: {text}")

        data = payload.get("data") or {}
        if not isinstance(data, dict):
            raise ShopifyGraphQLError("Invalid Shopify response")
        return data

    async def aclose(self) -> None:
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None
