import os
import sys
from decimal import Decimal

import django
import pytest

# Ensure project root is on sys.path
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "mrp_app.settings")
django.setup()

from inventory.models import Product, Supplier  # noqa: E402
from inventory.services import purchase_order_service  # noqa: E402


@pytest.fixture
def supplier_factory():
    def create_supplier(**kwargs):
        defaults = {"name": "Vendor", "contact_email": "orders@vendor.test"}
        defaults.update(kwargs)
        return Supplier.objects.create(**defaults)

    return create_supplier


@pytest.fixture
def product_factory():
    counter = {"n": 0}

    def create_product(**kwargs):
        counter["n"] += 1
        defaults = {
            "name": f"Product {counter['n']}",
            "sku": f"SKU-{counter['n']:03d}",
            "stock": 0,
            "reorder_point": 10,
            "cost": Decimal("1.00"),
        }
        defaults.update(kwargs)
        return Product.objects.create(**defaults)

    return create_product


@pytest.fixture
def supplier(supplier_factory):
    return supplier_factory()


@pytest.fixture
def po_factory(supplier):
    """Create a PO through the service from ``(product, qty, unit_cost)`` lines."""

    def create_po(lines, status="ordered", **po_data):
        po_data.setdefault("supplier_id", supplier.pk)
        po_data["status"] = status
        items = [
            {"product_id": product.pk, "quantity": qty, "unit_cost": cost}
            for product, qty, cost in lines
        ]
        return purchase_order_service.create_po(po_data, items)

    return create_po


@pytest.fixture
def api_client(db, django_user_model):
    from rest_framework.test import APIClient

    user = django_user_model.objects.create_user(username="buyer", password="buyer")
    client = APIClient()
    client.force_authenticate(user=user)
    return client
