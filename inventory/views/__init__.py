from .api import (
    DashboardViewSet,
    ProductViewSet,
    PurchaseOrderViewSet,
    StockMovementViewSet,
    SupplierViewSet,
)

__all__ = [
    "DashboardViewSet",
    "ProductViewSet",
    "SupplierViewSet",
    "StockMovementViewSet",
    "PurchaseOrderViewSet",
]
