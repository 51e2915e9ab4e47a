"""Canonical records produced by the Tiny connector."""
from typing import List

from pydantic import BaseModel


class TinyProduct(BaseModel):
    id: str = ""
    sku: str = ""
    nome: str = ""


class ProductPage(BaseModel):
    page: int
    total_pages: int = 1
    products: List[TinyProduct] = []


class TinyDeposit(BaseModel):
    deposito_id: str = ""
    deposito_nome: str = ""
    saldo: float = 0


class TinyProductStock(BaseModel):
    product_id: str
    sku: str = ""
    nome: str = ""
    deposits: List[TinyDeposit] = []

    def find_deposit(self, deposito_id: str):
        """Deposit entry for ``deposito_id`` or ``None``."""
        for deposit in self.deposits:
            if str(deposit.deposito_id) == str(deposito_id):
                return deposit
        return None


class DepositReference(BaseModel):
    id: str
    nome: str
