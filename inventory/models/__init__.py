from .orders import POLineItem, PurchaseOrder
from .products import Product
from .stock import StockMovement
from .suppliers import Supplier

__all__ = [
    "Product",
    "Supplier",
    "PurchaseOrder",
    "POLineItem",
    "StockMovement",
]
