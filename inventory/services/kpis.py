from decimal import Decimal
from typing import Any, Dict, List

from django.db.models import Count, DecimalField, ExpressionWrapper, F, Sum

from inventory.models import Product, PurchaseOrder

PENDING_PO_STATUSES = [
    PurchaseOrder.DRAFT,
    PurchaseOrder.ORDERED,
    PurchaseOrder.PARTIAL,
]


def stock_value() -> Decimal:
    """Total value of stock on hand at product cost."""
    value = ExpressionWrapper(
        F("stock") * F("cost"),
        output_field=DecimalField(max_digits=14, decimal_places=2),
    )
    return Product.objects.aggregate(total=Sum(value))["total"] or Decimal("0")


def total_units() -> int:
    """Total units on hand across all products."""
    return Product.objects.aggregate(total=Sum("stock"))["total"] or 0


def _low_stock_queryset():
    return Product.objects.filter(is_active=True, stock__lte=F("reorder_point"))


def low_stock_count() -> int:
    """Number of active products at or below their reorder point."""
    return _low_stock_queryset().count()


def low_stock_items(limit: int = 5) -> List[str]:
    """Return names of active products at or below their reorder point."""
    qs = _low_stock_queryset().order_by("name")
    return list(qs.values_list("name", flat=True)[:limit])


def pending_po_status_counts() -> Dict[str, int]:
    """Return counts of purchase orders still awaiting goods, by status."""
    qs = PurchaseOrder.objects.filter(status__in=PENDING_PO_STATUSES)
    counts = {
        row["status"]: row["total"]
        for row in qs.values("status").annotate(total=Count("id"))
    }
    return {status: counts.get(status, 0) for status in PENDING_PO_STATUSES}


def categories() -> List[str]:
    """Distinct non-blank product categories."""
    return list(
        Product.objects.exclude(category="")
        .order_by("category")
        .values_list("category", flat=True)
        .distinct()
    )


def dashboard_stats() -> Dict[str, Any]:
    """Headline inventory and purchasing figures in one dict."""
    pending = pending_po_status_counts()
    return {
        "stock_value": stock_value(),
        "total_units": total_units(),
        "product_count": Product.objects.count(),
        "low_stock_count": low_stock_count(),
        "low_stock_items": low_stock_items(),
        "draft_po_count": pending[PurchaseOrder.DRAFT],
        "pending_po_count": pending[PurchaseOrder.ORDERED] + pending[PurchaseOrder.PARTIAL],
        "po_status_counts": pending,
        "categories": categories(),
    }
