from django.db import models


class Supplier(models.Model):
    """Stores vendor contact details and lead time."""

    name = models.CharField(max_length=255)
    contact_email = models.CharField(max_length=254, blank=True, default="")
    phone = models.CharField(max_length=50, blank=True, default="")
    address = models.TextField(blank=True, default="")
    lead_time_days = models.PositiveIntegerField(default=14)
    notes = models.TextField(blank=True, default="")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:  # pragma: no cover - simple representation
        return self.name or f"Supplier {self.pk}"

    class Meta:
        db_table = "suppliers"
        ordering = ["name"]
