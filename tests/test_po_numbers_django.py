from datetime import date
from unittest.mock import patch

import pytest

from inventory.exceptions import InvalidInputError
from inventory.models import PurchaseOrder
from inventory.services import purchase_order_service
from inventory.services.purchase_order_service import generate_po_number


@pytest.mark.django_db
def test_generate_po_number_pads_sequence(po_factory, product_factory):
    assert generate_po_number() == "PO-0001"
    po_factory([(product_factory(), 1, 1)], po_number="PO-0041")
    assert generate_po_number() == "PO-0042"


@pytest.mark.django_db
def test_generate_po_number_year_scoped(settings, po_factory, product_factory):
    settings.PO_NUMBER_YEAR_SCOPED = True
    po_factory([(product_factory(), 1, 1)], po_number="PO-2025-0009")
    assert generate_po_number(today=date(2026, 3, 1)) == "PO-2026-0001"
    assert generate_po_number(today=date(2025, 3, 1)) == "PO-2025-0010"


@pytest.mark.django_db
def test_generated_number_taken_concurrently_is_regenerated(
    supplier, product_factory, po_factory
):
    product = product_factory()
    po_factory([(product, 1, 1)], po_number="PO-0001")
    items = [{"product_id": product.pk, "quantity": 2, "unit_cost": 1}]

    # The first scan returns a number another writer has just inserted.
    with patch.object(
        purchase_order_service,
        "generate_po_number",
        side_effect=["PO-0001", "PO-0002"],
    ):
        po = purchase_order_service.create_po({"supplier_id": supplier.pk}, items)

    assert po.po_number == "PO-0002"
    assert po.line_items.count() == 1
    assert PurchaseOrder.objects.count() == 2


@pytest.mark.django_db
def test_duplicate_regenerates_a_taken_number(product_factory, po_factory):
    source = po_factory([(product_factory(), 1, 1)], po_number="PO-0001")
    with patch.object(
        purchase_order_service,
        "generate_po_number",
        side_effect=["PO-0001", "PO-0002"],
    ):
        copy = purchase_order_service.duplicate_po(source.pk)
    assert copy.po_number == "PO-0002"


@pytest.mark.django_db
def test_number_collisions_give_up_after_retries(supplier, product_factory, po_factory):
    product = product_factory()
    po_factory([(product, 1, 1)], po_number="PO-0001")
    items = [{"product_id": product.pk, "quantity": 2, "unit_cost": 1}]
    with patch.object(
        purchase_order_service, "generate_po_number", return_value="PO-0001"
    ) as generate:
        with pytest.raises(InvalidInputError):
            purchase_order_service.create_po({"supplier_id": supplier.pk}, items)
    assert generate.call_count == purchase_order_service.PO_NUMBER_ATTEMPTS
    assert PurchaseOrder.objects.count() == 1
