"""API endpoints for the Shopify OAuth install flow."""

import html
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from stock_bridge.api.deps import get_audit, get_oauth
from stock_bridge.constants.sync import LogStatus, LogType
from stock_bridge.core.exceptions import StockBridgeError
from stock_bridge.services.audit import AuditLogger
from stock_bridge.services.shopify.client import normalize_shop_domain
from stock_bridge.services.shopify.oauth import ShopifyOAuth, validate_shopify_hmac
from stock_bridge.utils.parsing import normalize_text

logger = logging.getLogger(__name__)

# Mounted under /api/shopify/oauth
api_router = APIRouter()
# Mounted under /auth/shopify
auth_router = APIRouter()

_RESULT_PAGE = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>Shopify OAuth</title>
    <style>
      body {{ font-family: Arial, sans-serif; padding: 24px; color: #22313f; }}
      .ok {{ color: #0f766e; }}
      .error {{ color: #b91c1c; }}
    </style>
  </head>
  <body>
    <h2 class="{css_class}">{title}</h2>
    <p>{message}</p>
    <script>
      if (window.opener) {{
        window.opener.postMessage({event}, window.location.origin);
      }}
      setTimeout(() => window.close(), 300);
    </script>
  </body>
</html>"""


def render_oauth_result_page(
    ok: bool,
    message: str,
    store: str = "",
    scope: str = "",
    status_code: int = status.HTTP_200_OK
) -> HTMLResponse:
    """Popup page that reports the outcome to the opener window and closes itself."""
    event = {"type": "shopify_oauth", "ok": ok, "store": store, "scope": scope, "message": message}
    page = _RESULT_PAGE.format(
        css_class="ok" if ok else "error",
        title="Connection complete" if ok else "Connection failed",
        message=html.escape(message),
        # Keep "</script>" out of the inline JSON
        event=json.dumps(event).replace("<", "\\u003c"),
    )
    return HTMLResponse(content=page, status_code=status_code)


@api_router.get("/status")
def oauth_status(oauth: ShopifyOAuth = Depends(get_oauth)):
    """Whether a store and token are configured, plus the granted scopes."""
    return oauth.status()


@api_router.get("/start")
def oauth_start(store: Optional[str] = None, oauth: ShopifyOAuth = Depends(get_oauth)):
    """Authorize URL for the UI to open in a popup."""
    try:
        url = oauth.build_authorize_url(oauth.resolve_store(store))
    except StockBridgeError as e:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"ok": False, "error": str(e)})
    return {"ok": True, "url": url}


@auth_router.get("/start")
def oauth_start_redirect(store: Optional[str] = None, oauth: ShopifyOAuth = Depends(get_oauth)):
    try:
        url = oauth.build_authorize_url(oauth.resolve_store(store))
    except StockBridgeError as e:
        return render_oauth_result_page(False, str(e), status_code=status.HTTP_400_BAD_REQUEST)
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


@auth_router.get("/callback")
async def oauth_callback(
    request: Request,
    oauth: ShopifyOAuth = Depends(get_oauth),
    audit: AuditLogger = Depends(get_audit)
):
    """
    Shopify redirect target.

    Checks, in order: required parameters, the single-use state (bound to
    the shop), the query HMAC. Then exchanges the code for a token.
    """
    query = dict(request.query_params)
    code = normalize_text(query.get("code"))
    shop = normalize_shop_domain(query.get("shop"))
    state = normalize_text(query.get("state"))

    if not code or not shop or not state:
        return render_oauth_result_page(
            False, "Incomplete OAuth callback", status_code=status.HTTP_400_BAD_REQUEST
        )

    if oauth.states.consume(state) != shop:
        return render_oauth_result_page(
            False, "Invalid or expired state", status_code=status.HTTP_400_BAD_REQUEST
        )

    if not validate_shopify_hmac(query, oauth.get_client_secret()):
        return render_oauth_result_page(
            False, "Invalid HMAC signature", status_code=status.HTTP_401_UNAUTHORIZED
        )

    try:
        payload = await oauth.exchange_code_for_token(shop, code)
    except (StockBridgeError, ValueError) as e:
        audit.record(LogType.SHOPIFY_OAUTH, LogStatus.ERROR, str(e), {"store": shop}, log=logger)
        return render_oauth_result_page(
            False, str(e), store=shop, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    scope = payload.get("scope") or ""
    audit.record(
        LogType.SHOPIFY_OAUTH,
        LogStatus.OK,
        "Shopify token issued via OAuth",
        {"store": shop, "scope": scope},
        log=logger,
    )
    return render_oauth_result_page(True, f"Token saved for {shop}", store=shop, scope=scope)
