from decimal import Decimal

from django.db import models
from django.db.models import F, Q

from .products import Product
from .suppliers import Supplier


class PurchaseOrder(models.Model):
    """Orders products from a supplier and tracks their receipt."""

    DRAFT = "draft"
    ORDERED = "ordered"
    PARTIAL = "partial"
    RECEIVED = "received"
    CANCELLED = "cancelled"
    STATUS_CHOICES = [
        (DRAFT, "Draft"),
        (ORDERED, "Ordered"),
        (PARTIAL, "Partially Received"),
        (RECEIVED, "Received"),
        (CANCELLED, "Cancelled"),
    ]

    po_number = models.CharField(max_length=50, unique=True)
    supplier = models.ForeignKey(
        Supplier,
        models.SET_NULL,
        blank=True,
        null=True,
        related_name="purchase_orders",
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=DRAFT)
    expected_date = models.DateField(blank=True, null=True)
    received_date = models.DateField(blank=True, null=True)
    # Cached at creation/edit time; may include additional costs such as shipping.
    total_amount = models.DecimalField(
        max_digits=12, decimal_places=2, blank=True, null=True
    )
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def subtotal(self) -> Decimal:
        return sum(
            (line.line_total for line in self.line_items.all()), Decimal("0")
        )

    def __str__(self) -> str:  # pragma: no cover - simple representation
        return self.po_number

    class Meta:
        db_table = "purchase_orders"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status"], name="idx_po_status"),
        ]


class POLineItem(models.Model):
    """One product, quantity and unit cost within a purchase order."""

    purchase_order = models.ForeignKey(
        PurchaseOrder, models.CASCADE, related_name="line_items"
    )
    product = models.ForeignKey(
        Product, models.PROTECT, related_name="po_line_items"
    )
    quantity = models.PositiveIntegerField()
    unit_cost = models.DecimalField(max_digits=12, decimal_places=2)
    received_qty = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    @property
    def line_total(self) -> Decimal:
        return self.unit_cost * self.quantity

    @property
    def outstanding_qty(self) -> int:
        return max(self.quantity - self.received_qty, 0)

    @property
    def is_fully_received(self) -> bool:
        return self.received_qty >= self.quantity

    def __str__(self) -> str:  # pragma: no cover - simple representation
        return f"{self.purchase_order} - {self.product}"

    class Meta:
        db_table = "po_line_items"
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gt=0), name="po_line_quantity_positive"
            ),
            models.CheckConstraint(
                condition=Q(unit_cost__gte=0), name="po_line_unit_cost_non_negative"
            ),
            models.CheckConstraint(
                condition=Q(received_qty__gte=0) & Q(received_qty__lte=F("quantity")),
                name="po_line_received_within_ordered",
            ),
        ]
