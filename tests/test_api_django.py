import pytest
from rest_framework.test import APIClient

from inventory.models import PurchaseOrder, StockMovement

API = "/api/purchase-orders/"


def _create(api_client, supplier, lines, **extra):
    payload = {
        "supplier_id": supplier.pk,
        "status": "ordered",
        "line_items": [
            {"product_id": product.pk, "quantity": qty, "unit_cost": cost}
            for product, qty, cost in lines
        ],
    }
    payload.update(extra)
    return api_client.post(API, payload, format="json")


@pytest.mark.django_db
def test_create_purchase_order(api_client, supplier, product_factory):
    widget = product_factory(name="Widget")
    resp = _create(api_client, supplier, [(widget, 10, "2.50")], po_number="PO-0500")
    assert resp.status_code == 201
    body = resp.json()
    assert body["po_number"] == "PO-0500"
    assert body["status"] == "ordered"
    assert body["supplier_name"] == supplier.name
    assert body["total_amount"] == "25.00"
    assert body["line_items"][0]["received_qty"] == 0
    assert body["line_items"][0]["outstanding_qty"] == 10


@pytest.mark.django_db
def test_create_purchase_order_without_lines_is_rejected(api_client, supplier):
    resp = _create(api_client, supplier, [])
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_input"
    assert not PurchaseOrder.objects.exists()


@pytest.mark.django_db
def test_partial_then_full_receive(api_client, supplier, product_factory):
    product = product_factory(stock=0)
    po_id = _create(api_client, supplier, [(product, 10, 1)]).json()["id"]
    line_id = PurchaseOrder.objects.get(pk=po_id).line_items.get().pk

    resp = api_client.post(
        f"{API}{po_id}/partial-receive/",
        {"lines": [{"line_item_id": line_id, "quantity": 4}]},
        format="json",
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "partial"
    assert resp.json()["line_items"][0]["received_qty"] == 4

    resp = api_client.post(f"{API}{po_id}/receive/")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "received"
    assert body["received_date"] is not None
    product.refresh_from_db()
    assert product.stock == 10


@pytest.mark.django_db
def test_over_receipt_returns_400(api_client, supplier, product_factory):
    po_id = _create(api_client, supplier, [(product_factory(), 2, 1)]).json()["id"]
    line_id = PurchaseOrder.objects.get(pk=po_id).line_items.get().pk
    resp = api_client.post(
        f"{API}{po_id}/partial-receive/",
        {"lines": [{"line_item_id": line_id, "quantity": 3}]},
        format="json",
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "over_receipt"


@pytest.mark.django_db
def test_receive_twice_and_delete_received_conflict(api_client, supplier, product_factory):
    po_id = _create(api_client, supplier, [(product_factory(), 2, 1)]).json()["id"]
    assert api_client.post(f"{API}{po_id}/receive/").status_code == 200

    again = api_client.post(f"{API}{po_id}/receive/")
    assert again.status_code == 409
    assert again.json()["code"] == "already_received"

    resp = api_client.delete(f"{API}{po_id}/")
    assert resp.status_code == 409
    assert resp.json()["code"] == "already_received"
    assert PurchaseOrder.objects.filter(pk=po_id).exists()


@pytest.mark.django_db
def test_delete_ordered_purchase_order(api_client, supplier, product_factory):
    po_id = _create(api_client, supplier, [(product_factory(), 2, 1)]).json()["id"]
    assert api_client.delete(f"{API}{po_id}/").status_code == 204
    assert not PurchaseOrder.objects.filter(pk=po_id).exists()


@pytest.mark.django_db
def test_missing_purchase_order_is_404(api_client):
    resp = api_client.post(f"{API}999/receive/")
    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"


@pytest.mark.django_db
def test_submit_and_update_draft(api_client, supplier, product_factory):
    product = product_factory()
    po_id = _create(api_client, supplier, [(product, 1, 1)], status="draft").json()["id"]

    resp = api_client.put(
        f"{API}{po_id}/",
        {
            "notes": "Call before delivery",
            "line_items": [{"product_id": product.pk, "quantity": 3, "unit_cost": "4.00"}],
        },
        format="json",
    )
    assert resp.status_code == 200
    assert resp.json()["notes"] == "Call before delivery"
    assert resp.json()["total_amount"] == "12.00"

    resp = api_client.post(f"{API}{po_id}/submit/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ordered"


@pytest.mark.django_db
def test_duplicate_and_next_number(api_client, supplier, product_factory):
    po_id = _create(
        api_client, supplier, [(product_factory(), 3, 2)], po_number="PO-0010"
    ).json()["id"]

    assert api_client.get(f"{API}next-number/").json() == {"po_number": "PO-0011"}

    resp = api_client.post(f"{API}{po_id}/duplicate/", {}, format="json")
    assert resp.status_code == 201
    body = resp.json()
    assert body["po_number"] == "PO-0011"
    assert body["status"] == "ordered"
    assert body["notes"].startswith("Duplicated from PO-0010")


@pytest.mark.django_db
def test_filter_purchase_orders_by_status(api_client, supplier, product_factory):
    product = product_factory()
    _create(api_client, supplier, [(product, 1, 1)], status="draft")
    _create(api_client, supplier, [(product, 1, 1)])
    resp = api_client.get(API, {"status": "draft"})
    assert [po["status"] for po in resp.json()] == ["draft"]


@pytest.mark.django_db
def test_record_stock_movement(api_client, product_factory):
    product = product_factory(stock=5)
    resp = api_client.post(
        "/api/stock-movements/",
        {"product": product.pk, "movement_type": "out", "quantity": 2, "reference": "Order 7"},
        format="json",
    )
    assert resp.status_code == 201
    assert resp.json()["product_name"] == product.name
    product.refresh_from_db()
    assert product.stock == 3
    assert StockMovement.objects.get().reference == "Order 7"

    listing = api_client.get("/api/stock-movements/", {"product": product.pk})
    assert len(listing.json()) == 1


@pytest.mark.django_db
def test_product_stock_is_read_only(api_client, product_factory):
    product = product_factory(stock=5)
    resp = api_client.patch(
        f"/api/products/{product.pk}/", {"stock": 100, "name": "Renamed"}, format="json"
    )
    assert resp.status_code == 200
    product.refresh_from_db()
    assert product.stock == 5
    assert product.name == "Renamed"


@pytest.mark.django_db
def test_low_stock_filter(api_client, product_factory):
    product_factory(name="Low", stock=1)
    product_factory(name="Plenty", stock=50)
    resp = api_client.get("/api/products/", {"low_stock": "1"})
    assert [p["name"] for p in resp.json()] == ["Low"]


@pytest.mark.django_db
def test_api_requires_authentication():
    resp = APIClient().get(API)
    assert resp.status_code in (401, 403)


def test_health_check(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.content == b"ok"


@pytest.mark.django_db
def test_dashboard_stats_endpoint(api_client, supplier, product_factory):
    widget = product_factory(name="Widget", stock=2, cost="3.00")
    _create(api_client, supplier, [(widget, 5, 3)])
    resp = api_client.get("/api/dashboard/")
    assert resp.status_code == 200
    body = resp.json()
    assert body["stock_value"] == "6.00"
    assert body["low_stock_items"] == ["Widget"]
    assert body["pending_po_count"] == 1
    assert body["po_status_counts"] == {"draft": 0, "ordered": 1, "partial": 0}
