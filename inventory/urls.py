"""API routes for the inventory app."""

from rest_framework.routers import DefaultRouter

from .views import (
    DashboardViewSet,
    ProductViewSet,
    PurchaseOrderViewSet,
    StockMovementViewSet,
    SupplierViewSet,
)

router = DefaultRouter()
router.register(r"products", ProductViewSet)
router.register(r"suppliers", SupplierViewSet)
router.register(r"stock-movements", StockMovementViewSet)
router.register(r"purchase-orders", PurchaseOrderViewSet)
router.register(r"dashboard", DashboardViewSet, basename="dashboard")

urlpatterns = router.urls
