"""
Normalization of Tiny webhook bodies.

Tiny posts either JSON or form fields, sometimes with the real document
JSON-encoded inside a ``payload`` or ``json`` field. Everything here turns
that into plain records; unknown shapes produce empty results, not errors.
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from stock_bridge.utils.parsing import first_present, first_truthy, safe_number

_EMBEDDED_DOCUMENT_FIELDS = ("payload", "json")


def _loads_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        decoded = json.loads(text)
    except ValueError:
        return None
    return decoded if isinstance(decoded, dict) else None


def decode_body(body: Any) -> Dict[str, Any]:
    """Raw request body (str, bytes, dict or None) as a dict."""
    if not body:
        return {}

    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")

    if isinstance(body, str):
        decoded = _loads_object(body)
        return decoded if decoded is not None else {"raw": body}

    if not isinstance(body, dict):
        return {"raw": body}

    return body


def parse_webhook_body(body: Any) -> Dict[str, Any]:
    """
    Webhook document carried by ``body``.

    A JSON string inside a ``payload`` or ``json`` field replaces the outer
    body; if it does not decode to an object the outer body is kept.
    """
    body = decode_body(body)
    for field in _EMBEDDED_DOCUMENT_FIELDS:
        embedded = body.get(field)
        if isinstance(embedded, str):
            decoded = _loads_object(embedded)
            return decoded if decoded is not None else body

    return body


@dataclass
class StockWebhookEvent:
    """A single stock change announced by Tiny."""
    deposito_id: str = ""
    sku: str = ""
    product_id: str = ""
    saldo: Optional[float] = None

    @property
    def has_quantity(self) -> bool:
        return self.saldo is not None


def normalize_stock_payload(payload: Any) -> StockWebhookEvent:
    if not isinstance(payload, dict):
        return StockWebhookEvent()

    data = payload.get("dados") or payload
    if not isinstance(data, dict):
        return StockWebhookEvent()

    raw_saldo = data.get("saldo")
    has_saldo = raw_saldo is not None and raw_saldo != ""

    return StockWebhookEvent(
        deposito_id=str(first_truthy(data, "idDeposito", "iddeposito", "depositoId", default="")).strip(),
        sku=str(first_present(data, "sku", default="") or "").strip(),
        product_id=str(first_truthy(data, "idProduto", "idproduto", default="")).strip(),
        saldo=safe_number(raw_saldo) if has_saldo else None,
    )


def _sales_items(payload: Dict[str, Any]) -> Any:
    dados = payload.get("dados")
    if isinstance(dados, dict):
        pedido = dados.get("pedido")
        items = dados.get("itens") or (pedido.get("itens") if isinstance(pedido, dict) else None)
        if items:
            return items
    pedido = payload.get("pedido")
    if isinstance(pedido, dict) and pedido.get("itens"):
        return pedido["itens"]
    return payload.get("itens") or []


def extract_sales_skus(payload: Any) -> List[str]:
    """Distinct SKUs of a sales webhook, in first-seen order."""
    if not isinstance(payload, dict):
        return []

    items = _sales_items(payload)
    if not isinstance(items, list):
        return []

    skus: List[str] = []
    for raw_item in items:
        if not isinstance(raw_item, dict):
            continue
        item = raw_item.get("item") if isinstance(raw_item.get("item"), dict) else raw_item
        sku = str(first_truthy(item, "sku", "codigo", default="")).strip()
        if sku and sku not in skus:
            skus.append(sku)
    return skus
