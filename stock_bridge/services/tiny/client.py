"""Tiny ERP API v2 client."""

import json
import logging
from typing import Any, Dict, Optional

import httpx

from stock_bridge.constants.sync import ConfigKey
from stock_bridge.core.exceptions import ConfigurationError, TinyAPIError, TransportError
from stock_bridge.services.config_service import ConfigService

logger = logging.getLogger(__name__)


def normalize_tiny_response(payload: Any) -> Dict[str, Any]:
    """
    Unwrap the ``retorno`` envelope of a Tiny response.

    Tiny reports application errors with HTTP 200 and an ``erros`` list
    (or a bare ``error``) inside the envelope.

    Raises:
        TinyAPIError: If the payload is not an object or carries errors
    """
    if not isinstance(payload, dict):
        raise TinyAPIError("Invalid Tiny response")

    root = payload.get("retorno") or payload
    if not isinstance(root, dict):
        raise TinyAPIError("Invalid Tiny response")
    errors = root.get("erros") or root.get("error")
    if errors:
        if isinstance(errors, list):
            parts = []
            for item in errors:
                if isinstance(item, dict):
                    parts.append(str(item.get("erro") or item.get("msg") or json.dumps(item, ensure_ascii=False)))
                else:
                    parts.append(str(item))
            err_text = "; ".join(parts)
        else:
            err_text = json.dumps(errors, ensure_ascii=False)
        code = root.get("codigo_erro")
        raise TinyAPIError(f"Tiny error: {err_text}", code=str(code) if code is not None else None)

    return root


class TinyClient:
    """
    Thin async wrapper over Tiny's form-encoded POST endpoints.

    Credentials are read from the config provider on every call so a token
    saved through the API takes effect without a restart.
    """

    def __init__(
        self,
        config: ConfigService,
        base_url: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0
    ):
        self.config = config
        self.base_url = base_url.rstrip("/")
        self._http = http_client
        self._owns_http = http_client is None
        self.timeout = timeout

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    def get_token(self) -> str:
        return self.config.get(ConfigKey.TINY_API_TOKEN) or ""

    def get_format(self) -> str:
        return self.config.get(ConfigKey.TINY_API_FORMAT) or "json"

    async def call(self, endpoint: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        POST ``data`` to ``endpoint`` and return the unwrapped ``retorno``.

        Raises:
            ConfigurationError: No API token configured (checked before any I/O)
            TransportError: Network failure or non-2xx status
            TinyAPIError: Error payload inside a 200 response
        """
        token = self.get_token()
        if not token:
            raise ConfigurationError("TINY_API_TOKEN is not configured")

        form = {"token": token, "formato": self.get_format()}
        for key, value in (data or {}).items():
            if value is None:
                continue
            form[key] = str(value)

        url = f"{self.base_url}/{endpoint}"
        logger.debug(f"Tiny request: {endpoint} {data or {}}")
        try:
            response = await self.http.post(url, data=form)
        except httpx.HTTPError as e:
            raise TransportError(f"Tiny request failed: {e}") from e

        if not response.is_success:
            raise TransportError(f"Tiny HTTP {response.status_code}", response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise TinyAPIError("Invalid Tiny response") from e

        return normalize_tiny_response(payload)

    async def aclose(self) -> None:
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None
