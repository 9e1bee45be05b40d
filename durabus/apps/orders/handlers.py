"""Handlers for the order pipeline demo."""

from typing import Any


class InsufficientStockError(Exception):
    """Raised when an order asks for more units than the warehouse holds."""


class Warehouse:
    """In-memory stock keeper used by the demo handlers."""

    def __init__(self, stock: dict[str, int]) -> None:
        self.stock = dict(stock)
        self.reserved: list[int] = []

    def reserve(self, payload: dict[str, Any]) -> None:
        sku = payload["sku"]
        quantity = payload["quantity"]
        available = self.stock.get(sku, 0)
        if quantity > available:
            raise InsufficientStockError("insufficient stock")
        self.stock[sku] = available - quantity
        self.reserved.append(payload["id"])

    def restock(self, sku: str, quantity: int) -> None:
        self.stock[sku] = self.stock.get(sku, 0) + quantity


class Notifier:
    """Collects confirmation messages instead of sending them."""

    def __init__(self) -> None:
        self.sent: list[str] = []

    async def confirm(self, payload: dict[str, Any]) -> None:
        self.sent.append(f"Order {payload['id']} confirmed")
