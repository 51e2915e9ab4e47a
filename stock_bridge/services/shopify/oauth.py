"""
Shopify OAuth install flow.

The authorize URL carries a random ``state`` kept in memory for ten minutes;
the callback consumes it, checks the query HMAC and swaps the ``code`` for an
offline access token that is saved into the runtime config.
"""
import hashlib
import hmac
import logging
import secrets
import threading
import time
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode

import httpx

from stock_bridge.constants.sync import ConfigKey
from stock_bridge.core.config import DEFAULT_SHOPIFY_SCOPES, Settings
from stock_bridge.core.exceptions import ConfigurationError, TransportError, ValidationError
from stock_bridge.services.config_service import ConfigService
from stock_bridge.services.shopify.client import normalize_shop_domain
from stock_bridge.utils.parsing import normalize_text

logger = logging.getLogger(__name__)

OAUTH_STATE_TTL_SECONDS = 10 * 60


def validate_shopify_hmac(query: Mapping[str, Any], client_secret: str) -> bool:
    """
    Verify the ``hmac`` Shopify appends to redirect query strings.

    The message is every other parameter except ``signature``, sorted by
    key and joined as ``k=v&k=v``.
    """
    incoming = normalize_text(query.get("hmac"))
    if not incoming or not client_secret:
        return False

    message = "&".join(
        f"{key}={normalize_text(query[key])}"
        for key in sorted(query.keys())
        if key not in ("hmac", "signature")
    )
    digest = hmac.new(client_secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()
    return hmac.compare_digest(digest.encode("utf-8"), incoming.encode("utf-8"))


class OAuthStateStore:
    """Single-use, expiring ``state -> shop`` registry."""

    def __init__(self, ttl_seconds: int = OAUTH_STATE_TTL_SECONDS, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._states: Dict[str, tuple] = {}
        self._lock = threading.Lock()

    def put(self, state: str, store: str) -> None:
        now = self._clock()
        with self._lock:
            for key in [key for key, (_, expires_at) in self._states.items() if expires_at < now]:
                del self._states[key]
            self._states[state] = (store, now + self.ttl_seconds)

    def __len__(self) -> int:
        return len(self._states)

    def consume(self, state: str) -> Optional[str]:
        """Shop bound to ``state``; None if unknown or expired. Always removes it."""
        with self._lock:
            item = self._states.pop(state, None)
        if item is None:
            return None
        store, expires_at = item
        if expires_at < self._clock():
            return None
        return store


class ShopifyOAuth:
    """Builds authorize URLs and completes the callback."""

    def __init__(
        self,
        config: ConfigService,
        settings: Settings,
        states: Optional[OAuthStateStore] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.config = config
        self.settings = settings
        self.states = states or OAuthStateStore()
        self._http = http_client
        self._owns_http = http_client is None

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.settings.http_timeout_seconds)
        return self._http

    def get_client_id(self) -> str:
        return self.config.get(ConfigKey.SHOPIFY_CLIENT_ID) or ""

    def get_client_secret(self) -> str:
        return self.config.get(ConfigKey.SHOPIFY_CLIENT_SECRET) or ""

    def get_scopes(self) -> str:
        return self.config.get(ConfigKey.SHOPIFY_SCOPES) or DEFAULT_SHOPIFY_SCOPES

    def get_redirect_uri(self) -> str:
        return (
            self.config.get(ConfigKey.SHOPIFY_REDIRECT_URI)
            or f"{self.settings.public_base_url}/auth/shopify/callback"
        )

    def resolve_store(self, requested: Optional[str] = None) -> str:
        return normalize_shop_domain(requested or self.config.get(ConfigKey.SHOPIFY_STORE))

    def status(self) -> Dict[str, Any]:
        cfg = self.config.as_dict()
        store = normalize_shop_domain(cfg.get(ConfigKey.SHOPIFY_STORE) or self.settings.shopify_store)
        token = cfg.get(ConfigKey.SHOPIFY_ACCESS_TOKEN) or ""
        scopes = (
            cfg.get(ConfigKey.SHOPIFY_INSTALLED_SCOPES)
            or cfg.get(ConfigKey.SHOPIFY_SCOPES)
            or self.settings.shopify_scopes
        )
        return {
            "connected": bool(token and store),
            "store": store,
            "scopes": scopes or DEFAULT_SHOPIFY_SCOPES,
            "has_client_id": bool(self.get_client_id()),
            "has_client_secret": bool(self.get_client_secret()),
        }

    def build_authorize_url(self, store: str) -> str:
        """
        Register a new state for ``store`` and return the Shopify authorize URL.

        Raises:
            ValidationError: No store given or configured
            ConfigurationError: Client id or secret missing
        """
        if not store:
            raise ValidationError("shopify_store is required for OAuth")
        client_id = self.get_client_id()
        if not client_id:
            raise ConfigurationError("shopify_client_id is not configured")
        if not self.get_client_secret():
            raise ConfigurationError("shopify_client_secret is not configured")

        state = secrets.token_hex(24)
        self.states.put(state, store)

        params = urlencode({
            "client_id": client_id,
            "scope": self.get_scopes(),
            "redirect_uri": self.get_redirect_uri(),
            "state": state,
        })
        return f"https://{store}/admin/oauth/authorize?{params}"

    async def exchange_code_for_token(self, shop: str, code: str) -> Dict[str, Any]:
        """
        Trade the callback ``code`` for an access token and persist it.

        Returns:
            Token payload from Shopify (``access_token``, ``scope``)
        """
        try:
            response = await self.http.post(
                f"https://{shop}/admin/oauth/access_token",
                json={
                    "client_id": self.get_client_id(),
                    "client_secret": self.get_client_secret(),
                    "code": code,
                },
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Shopify token exchange failed: {e}") from e

        if not response.is_success:
            raise TransportError(
                f"Token exchange failed (HTTP {response.status_code})", response.status_code
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise TransportError("Invalid OAuth token response") from e
        if not isinstance(payload, dict):
            raise TransportError("Invalid OAuth token response")

        access_token = payload.get("access_token")
        if not access_token:
            raise TransportError("OAuth response has no access_token")

        self.config.set(ConfigKey.SHOPIFY_STORE, shop)
        self.config.set(ConfigKey.SHOPIFY_ACCESS_TOKEN, access_token)
        if payload.get("scope"):
            self.config.set(ConfigKey.SHOPIFY_INSTALLED_SCOPES, payload["scope"])

        logger.info(f"Stored Shopify access token for {shop}")
        return payload

    async def aclose(self) -> None:
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None
