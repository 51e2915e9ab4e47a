"""Shared-secret check for inbound Tiny webhooks."""
import hmac
from typing import Any, Mapping, Optional

WEBHOOK_SECRET_HEADERS = ("x-webhook-secret", "x-tiny-webhook-secret")


def extract_webhook_secret(
    headers: Mapping[str, str],
    query: Mapping[str, Any],
    body: Optional[Mapping[str, Any]] = None
) -> str:
    """Secret presented by the caller: headers first, then ``?secret=``, then ``body.secret``."""
    for header in WEBHOOK_SECRET_HEADERS:
        if headers.get(header):
            return str(headers[header])
    if query.get("secret"):
        return str(query["secret"])
    if isinstance(body, Mapping) and body.get("secret"):
        return str(body["secret"])
    return ""


def is_webhook_authorized(
    configured_secret: Optional[str],
    headers: Mapping[str, str],
    query: Mapping[str, Any],
    body: Optional[Mapping[str, Any]] = None
) -> bool:
    """
    True when no secret is configured, or when the caller presents it.
    """
    if not configured_secret:
        return True
    incoming = extract_webhook_secret(headers, query, body)
    return hmac.compare_digest(incoming.encode("utf-8"), str(configured_secret).encode("utf-8"))
