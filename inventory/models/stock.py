from django.db import models

from .products import Product


class StockMovement(models.Model):
    """Append-only audit record of a change to a product's stock."""

    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"
    TYPE_CHOICES = [
        (IN, "In"),
        (OUT, "Out"),
        (ADJUSTMENT, "Adjustment"),
    ]

    product = models.ForeignKey(
        Product, models.CASCADE, related_name="stock_movements"
    )
    movement_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    quantity = models.IntegerField()
    reference = models.CharField(max_length=100, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:  # pragma: no cover - simple representation
        return f"{self.movement_type} {self.quantity} of {self.product}"

    class Meta:
        db_table = "stock_movements"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["product"], name="idx_movements_product"),
            models.Index(fields=["-created_at"], name="idx_movements_created"),
        ]
