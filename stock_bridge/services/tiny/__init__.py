"""Tiny ERP services package."""

from stock_bridge.services.tiny.client import TinyClient, normalize_tiny_response
from stock_bridge.services.tiny.products import (
    TinyCatalog,
    extract_deposits,
    normalize_deposit,
    parse_product_row,
)

__all__ = [
    "TinyClient",
    "normalize_tiny_response",
    "TinyCatalog",
    "extract_deposits",
    "normalize_deposit",
    "parse_product_row",
]
