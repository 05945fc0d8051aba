from decimal import Decimal

from django.db import models
from django.db.models import Q


class Product(models.Model):
    """An inventory product and its on-hand stock."""

    name = models.CharField(max_length=255)
    sku = models.CharField(max_length=100, unique=True)
    category = models.CharField(max_length=100, default="General")
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    stock = models.IntegerField(default=0)
    reorder_point = models.IntegerField(default=10)
    unit = models.CharField(max_length=20, default="pcs")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.reorder_point

    def __str__(self) -> str:  # pragma: no cover - simple representation
        return f"{self.name} ({self.sku})"

    class Meta:
        db_table = "products"
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=Q(stock__gte=0), name="products_stock_non_negative"
            ),
        ]
