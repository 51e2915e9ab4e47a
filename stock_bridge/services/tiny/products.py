"""
Tiny catalog and stock reads.

Tiny's payloads vary between accounts and API revisions (wrapped rows,
single objects instead of lists, alternate key casing); everything here is
normalized into the records in ``stock_bridge.schemas.tiny``.
"""
import logging
from typing import Any, Dict, List, Optional

from stock_bridge.core.exceptions import TinyAPIError
from stock_bridge.schemas.tiny import (
    DepositReference,
    ProductPage,
    TinyDeposit,
    TinyProduct,
    TinyProductStock,
)
from stock_bridge.services.tiny.client import TinyClient
from stock_bridge.utils.parsing import first_present, first_truthy, normalize_text, safe_number

logger = logging.getLogger(__name__)

PRODUCTS_SEARCH_ENDPOINT = "produtos.pesquisa.php"
PRODUCT_STOCK_ENDPOINT = "produto.obter.estoque.php"
# "A consulta nao retornou registros": Tiny answers an empty page with an error
NO_RECORDS_ERROR_CODE = "20"


def parse_product_row(row: Dict[str, Any]) -> TinyProduct:
    """Product list row, with or without the ``produto`` wrapper."""
    if not isinstance(row, dict):
        return TinyProduct()
    product = row.get("produto")
    if not isinstance(product, dict):
        product = row
    sku = product.get("sku")
    return TinyProduct(
        id=str(first_present(product, "id", "idProduto", default="")),
        sku=str(sku).strip() if sku else "",
        nome=normalize_text(product.get("nome")),
    )


def normalize_deposit(raw: Dict[str, Any]) -> TinyDeposit:
    nome = first_truthy(raw, "nome", "nomeDeposito", "deposito", default="")
    return TinyDeposit(
        deposito_id=str(first_present(raw, "idDeposito", "iddeposito", "id", "codigo", default="")),
        deposito_nome=nome if isinstance(nome, str) else "",
        saldo=safe_number(first_present(raw, "saldo", "saldoFisico", "quantidade", "estoque", default=0)),
    )


def extract_deposits(root: Dict[str, Any]) -> List[TinyDeposit]:
    """
    Deposit breakdown from a stock response.

    Accepts ``depositos`` or ``deposito`` under ``produto`` or the root, as a
    list or a single object, each entry optionally wrapped in ``deposito``.
    """
    product = root.get("produto")
    if not isinstance(product, dict):
        product = {}
    raw = (
        product.get("depositos")
        or product.get("deposito")
        or root.get("depositos")
        or root.get("deposito")
        or []
    )
    entries = raw if isinstance(raw, list) else [raw]

    deposits = []
    for entry in entries:
        if not entry or not isinstance(entry, dict):
            continue
        inner = entry.get("deposito")
        deposits.append(normalize_deposit(inner if isinstance(inner, dict) else entry))
    return deposits


class TinyCatalog:
    """Source connector: paginated catalog and per-deposit stock."""

    def __init__(self, client: TinyClient):
        self.client = client

    async def list_products(self, page: int = 1) -> ProductPage:
        try:
            root = await self.client.call(PRODUCTS_SEARCH_ENDPOINT, {"pagina": page})
        except TinyAPIError as e:
            if e.code == NO_RECORDS_ERROR_CODE:
                return ProductPage(page=page, total_pages=page, products=[])
            raise
        rows = root.get("produtos")
        products = [parse_product_row(row) for row in rows] if isinstance(rows, list) else []
        total_pages = int(safe_number(first_truthy(root, "numero_paginas", "numeroPaginas", default=1), 1))
        return ProductPage(page=page, total_pages=max(total_pages, 1), products=products)

    async def get_product_stock(self, product_id: str) -> TinyProductStock:
        root = await self.client.call(PRODUCT_STOCK_ENDPOINT, {"id": product_id})
        product = root.get("produto")
        if not isinstance(product, dict):
            product = {}
        sku = product.get("sku")
        return TinyProductStock(
            product_id=str(first_present(product, "id", default=product_id)),
            sku=str(sku).strip() if sku else "",
            nome=normalize_text(product.get("nome")),
            deposits=extract_deposits(root),
        )

    async def find_product_by_sku(self, sku: str) -> Optional[TinyProduct]:
        """
        Scan the catalog page by page for an exact SKU match.

        Worst case reads the whole catalog; only the sales webhook uses it.
        Returns None once every page has been read without a match.
        """
        if not sku:
            return None

        page = 1
        while True:
            result = await self.list_products(page)
            for product in result.products:
                if product.sku == sku:
                    return product

            if page >= result.total_pages:
                break
            page += 1

        logger.info(f"SKU {sku} not found in Tiny after {page} page(s)")
        return None

    async def discover_deposits(self, sample_products: int = 150) -> List[DepositReference]:
        """
        Collect the distinct deposits seen in the stock of the first
        ``sample_products`` products. A mapping UI aid, not a complete list.
        """
        found: Dict[str, DepositReference] = {}
        seen_products = 0
        page = 1

        def _sorted() -> List[DepositReference]:
            return sorted(found.values(), key=lambda d: d.nome.casefold())

        while True:
            result = await self.list_products(page)
            if not result.products:
                break

            for product in result.products:
                if not product.id:
                    continue
                stock = await self.get_product_stock(product.id)
                for deposit in stock.deposits:
                    if deposit.deposito_id and deposit.deposito_id not in found:
                        found[deposit.deposito_id] = DepositReference(
                            id=deposit.deposito_id,
                            nome=deposit.deposito_nome or f"Deposit {deposit.deposito_id}",
                        )

                seen_products += 1
                if seen_products >= sample_products:
                    return _sorted()

            if page >= result.total_pages:
                break
            page += 1

        return _sorted()
