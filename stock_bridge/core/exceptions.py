"""
Error taxonomy for the sync engine.

Transport failures (network, non-2xx) and remote application failures
(an error payload inside a 200 response) are kept apart so callers and the
audit log can tell a flaky connection from a rejected request.
"""
from typing import Optional


class StockBridgeError(Exception):
    """Base class for every error raised by the service."""


class ConfigurationError(StockBridgeError):
    """A credential or setting required for a remote call is missing."""


class ValidationError(StockBridgeError):
    """Operator-supplied data failed validation."""


class TransportError(StockBridgeError):
    """The remote endpoint could not be reached or answered non-2xx."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteApplicationError(StockBridgeError):
    """The remote API answered successfully but reported an error."""


class TinyAPIError(RemoteApplicationError):
    """Tiny returned ``erros`` inside its ``retorno`` envelope."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class ShopifyGraphQLError(RemoteApplicationError):
    """Shopify returned top-level GraphQL ``errors``."""


class ShopifyUserError(RemoteApplicationError):
    """A Shopify mutation returned field-level ``userErrors``."""
