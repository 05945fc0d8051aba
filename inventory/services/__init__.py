"""Service layer for the inventory app."""

from . import kpis, purchase_order_service, receiving_service, stock_service

__all__ = [
    "kpis",
    "purchase_order_service",
    "receiving_service",
    "stock_service",
]
