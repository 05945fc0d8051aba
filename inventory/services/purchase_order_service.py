import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Sum
from django.utils import timezone

from inventory.exceptions import (
    AlreadyReceivedError,
    InvalidInputError,
    InvalidReferenceError,
    PurchaseOrderNotFound,
    StatusTransitionError,
)
from inventory.models import POLineItem, Product, PurchaseOrder, Supplier

logger = logging.getLogger(__name__)

_LEADING_DIGITS = re.compile(r"\d+")
_CENT = Decimal("0.01")

CREATE_STATUSES = {PurchaseOrder.DRAFT, PurchaseOrder.ORDERED}
EDITABLE_STATUSES = {PurchaseOrder.DRAFT, PurchaseOrder.ORDERED}
DELETABLE_STATUSES = {PurchaseOrder.DRAFT, PurchaseOrder.ORDERED}

# Generated numbers tried before a collision is reported.
PO_NUMBER_ATTEMPTS = 3


# ─────────────────────────────────────────────────────────
# PO NUMBERS
# ─────────────────────────────────────────────────────────
def next_sequence(po_numbers: Iterable[str], prefix: str) -> int:
    """Return one past the highest number found after ``prefix``.

    Only the leading digit run after the prefix counts, so suffixes such
    as ``PO-1001-B`` are tolerated and unparseable numbers are ignored.
    """
    highest = 0
    for number in po_numbers:
        if not number or not number.startswith(prefix):
            continue
        match = _LEADING_DIGITS.match(number[len(prefix):])
        if match:
            highest = max(highest, int(match.group()))
    return highest + 1


def generate_po_number(today: Optional[date] = None) -> str:
    prefix = settings.PO_NUMBER_PREFIX
    if settings.PO_NUMBER_YEAR_SCOPED:
        year = (today or timezone.localdate()).year
        prefix = f"{prefix}{year}-"
    existing = PurchaseOrder.objects.filter(po_number__startswith=prefix).values_list(
        "po_number", flat=True
    )
    seq = next_sequence(existing, prefix)
    return f"{prefix}{seq:0{settings.PO_NUMBER_PADDING}d}"


# ─────────────────────────────────────────────────────────
# VALIDATION HELPERS
# ─────────────────────────────────────────────────────────
def _to_decimal(value: Any, field: str) -> Decimal:
    try:
        number = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidInputError(f"{field} must be a number.") from None
    if not number.is_finite():
        raise InvalidInputError(f"{field} must be a finite number.")
    return number


def parse_quantity(value: Any) -> int:
    qty = _to_decimal(value, "Quantity")
    if qty != qty.to_integral_value():
        raise InvalidInputError("Quantity must be a whole number.")
    return int(qty)


def _clean_items(items_data: List[Dict[str, Any]]) -> List[Tuple[int, int, Decimal]]:
    if not items_data:
        raise InvalidInputError("Purchase Order must contain at least one item.")
    cleaned = []
    for item_d in items_data:
        product_id = item_d.get("product_id")
        if not product_id:
            raise InvalidInputError("Every line item needs a product.")
        try:
            product_id = int(product_id)
        except (TypeError, ValueError):
            raise InvalidReferenceError(f"Unknown product: {product_id}") from None
        qty = parse_quantity(item_d.get("quantity"))
        if qty <= 0:
            raise InvalidInputError("Quantity must be positive.")
        unit_cost = _to_decimal(item_d.get("unit_cost", 0), "Unit cost")
        if unit_cost < 0:
            raise InvalidInputError("Unit cost cannot be negative.")
        cleaned.append((product_id, qty, unit_cost))
    return cleaned


def _items_subtotal(items: Iterable[Tuple[int, int, Decimal]]) -> Decimal:
    return sum((qty * cost for _, qty, cost in items), Decimal("0"))


def _create_line_items(
    po: PurchaseOrder, items: List[Tuple[int, int, Decimal]]
) -> None:
    product_ids = {product_id for product_id, _, _ in items}
    found = Product.objects.in_bulk(list(product_ids))
    missing = sorted(str(pid) for pid in product_ids if pid not in found)
    if missing:
        raise InvalidReferenceError(f"Unknown product(s): {', '.join(missing)}")
    POLineItem.objects.bulk_create(
        POLineItem(
            purchase_order=po,
            product_id=product_id,
            quantity=qty,
            unit_cost=unit_cost,
            received_qty=0,
        )
        for product_id, qty, unit_cost in items
    )


def _get_supplier(supplier_id: Any) -> Supplier:
    if not supplier_id:
        raise InvalidInputError("Missing required fields: supplier_id")
    try:
        return Supplier.objects.get(pk=supplier_id)
    except (Supplier.DoesNotExist, ValueError):
        raise InvalidReferenceError(f"Supplier {supplier_id} not found.") from None


def get_locked_po(po_id: int) -> PurchaseOrder:
    """Fetch and row-lock a PO; call inside ``transaction.atomic``."""
    try:
        return PurchaseOrder.objects.select_for_update().get(pk=po_id)
    except (PurchaseOrder.DoesNotExist, ValueError):
        raise PurchaseOrderNotFound(f"Purchase order {po_id} not found.") from None


def _insert_with_po_number(
    insert: Callable[[str], PurchaseOrder], po_number: Optional[str]
) -> PurchaseOrder:
    """Run ``insert`` atomically with ``po_number`` or a generated number.

    A generated number can be taken by a concurrent insert between the scan
    and the write; it is then regenerated. A caller-supplied number is
    tried once.
    """
    attempts = 1 if po_number else PO_NUMBER_ATTEMPTS
    for attempt in range(1, attempts + 1):
        number = po_number or generate_po_number()
        try:
            with transaction.atomic():
                return insert(number)
        except IntegrityError as exc:
            if attempt < attempts:
                logger.warning(
                    "PO number %s was taken concurrently (attempt %d/%d)",
                    number,
                    attempt,
                    attempts,
                )
                continue
            logger.error("Integrity error saving PO %s: %s", number, exc)
            raise InvalidInputError(
                f"Could not save purchase order {number}; the PO number may already exist."
            ) from exc


# ─────────────────────────────────────────────────────────
# PURCHASE ORDER OPERATIONS
# ─────────────────────────────────────────────────────────
def create_po(
    po_data: Dict[str, Any], items_data: List[Dict[str, Any]]
) -> PurchaseOrder:
    """Create a PO header and its line items in one transaction.

    ``po_data`` keys: ``supplier_id`` (required), ``status`` (``draft`` or
    ``ordered``), ``po_number`` (generated when omitted), ``expected_date``,
    ``notes`` and ``additional_costs`` which is folded into the cached total.
    """
    status = po_data.get("status") or PurchaseOrder.DRAFT
    if status not in CREATE_STATUSES:
        raise InvalidInputError(
            f"A new purchase order must be 'draft' or 'ordered', not '{status}'."
        )
    items = _clean_items(items_data)
    additional = _to_decimal(po_data.get("additional_costs") or 0, "Additional costs")
    if additional < 0:
        raise InvalidInputError("Additional costs cannot be negative.")
    total = (_items_subtotal(items) + additional).quantize(_CENT)

    def insert(po_number: str) -> PurchaseOrder:
        supplier = _get_supplier(po_data.get("supplier_id"))
        po = PurchaseOrder.objects.create(
            po_number=po_number,
            supplier=supplier,
            status=status,
            expected_date=po_data.get("expected_date"),
            notes=po_data.get("notes") or "",
            total_amount=total,
        )
        _create_line_items(po, items)
        return po

    po = _insert_with_po_number(insert, po_data.get("po_number"))
    logger.info("Created %s (%s) with %d line item(s)", po.po_number, status, len(items))
    return po


def update_po(
    po_id: int,
    po_data: Dict[str, Any],
    items_data: Optional[List[Dict[str, Any]]] = None,
) -> PurchaseOrder:
    """Edit a PO that has not started receiving.

    Header fields present in ``po_data`` are updated. When ``items_data`` is
    given the line items are replaced and the cached total recomputed; any
    additional costs already folded into the old total are kept unless
    ``additional_costs`` is supplied.
    """
    with transaction.atomic():
        po = get_locked_po(po_id)
        if po.status not in EDITABLE_STATUSES:
            raise StatusTransitionError(
                f"{po.po_number} is '{po.status}' and can no longer be edited."
            )
        lines = list(po.line_items.select_for_update())
        if any(line.received_qty for line in lines):
            raise StatusTransitionError(
                f"{po.po_number} has received goods and can no longer be edited."
            )

        if "supplier_id" in po_data:
            po.supplier = _get_supplier(po_data["supplier_id"])
        if "expected_date" in po_data:
            po.expected_date = po_data["expected_date"]
        if "notes" in po_data:
            po.notes = po_data["notes"] or ""

        if items_data is not None:
            items = _clean_items(items_data)
            if "additional_costs" in po_data:
                additional = _to_decimal(
                    po_data["additional_costs"] or 0, "Additional costs"
                )
            elif po.total_amount is not None:
                old_subtotal = sum((line.line_total for line in lines), Decimal("0"))
                additional = max(po.total_amount - old_subtotal, Decimal("0"))
            else:
                additional = Decimal("0")
            if additional < 0:
                raise InvalidInputError("Additional costs cannot be negative.")
            po.line_items.all().delete()
            _create_line_items(po, items)
            po.total_amount = (_items_subtotal(items) + additional).quantize(_CENT)
        po.save()
    logger.info("Updated %s", po.po_number)
    return po


def submit_po(po_id: int) -> PurchaseOrder:
    """Move a draft PO to ``ordered``."""
    with transaction.atomic():
        po = get_locked_po(po_id)
        if po.status != PurchaseOrder.DRAFT:
            logger.warning("Rejected submit of %s in status %s", po.po_number, po.status)
            raise StatusTransitionError(
                f"Only draft purchase orders can be submitted; {po.po_number} is '{po.status}'."
            )
        po.status = PurchaseOrder.ORDERED
        po.save(update_fields=["status", "updated_at"])
    logger.info("Submitted %s", po.po_number)
    return po


def delete_po(po_id: int) -> str:
    """Delete a draft or ordered PO with its line items; returns its number."""
    with transaction.atomic():
        po = get_locked_po(po_id)
        if po.status == PurchaseOrder.RECEIVED:
            logger.warning("Rejected delete of received PO %s", po.po_number)
            raise AlreadyReceivedError(
                f"{po.po_number} has been received and cannot be deleted."
            )
        if po.status not in DELETABLE_STATUSES:
            logger.warning("Rejected delete of %s in status %s", po.po_number, po.status)
            raise StatusTransitionError(
                f"{po.po_number} is '{po.status}' and cannot be deleted."
            )
        po_number = po.po_number
        po.line_items.all().delete()
        po.delete()
    logger.info("Deleted %s", po_number)
    return po_number


def duplicate_po(source_id: int, new_po_number: Optional[str] = None) -> PurchaseOrder:
    """Copy a PO into a fresh ``ordered`` PO with nothing received."""
    try:
        source = PurchaseOrder.objects.get(pk=source_id)
    except (PurchaseOrder.DoesNotExist, ValueError):
        raise PurchaseOrderNotFound(f"Purchase order {source_id} not found.") from None
    source_lines = list(source.line_items.all())

    notes = f"Duplicated from {source.po_number}"
    if source.notes:
        notes = f"{notes}\n\n{source.notes}"
    total = source.total_amount
    if total is None:
        total = sum((line.line_total for line in source_lines), Decimal("0"))

    def insert(po_number: str) -> PurchaseOrder:
        po = PurchaseOrder.objects.create(
            po_number=po_number,
            supplier_id=source.supplier_id,
            status=PurchaseOrder.ORDERED,
            expected_date=source.expected_date,
            notes=notes,
            total_amount=total,
        )
        POLineItem.objects.bulk_create(
            POLineItem(
                purchase_order=po,
                product_id=line.product_id,
                quantity=line.quantity,
                unit_cost=line.unit_cost,
                received_qty=0,
            )
            for line in source_lines
        )
        return po

    po = _insert_with_po_number(insert, new_po_number)
    logger.info("Duplicated %s as %s", source.po_number, po.po_number)
    return po


# ─────────────────────────────────────────────────────────
# QUERIES
# ─────────────────────────────────────────────────────────
def get_po_by_id(po_id: int) -> Optional[Dict[str, Any]]:
    try:
        po = PurchaseOrder.objects.select_related("supplier").get(pk=po_id)
    except PurchaseOrder.DoesNotExist:
        return None
    lines = po.line_items.select_related("product")
    header = {
        "id": po.pk,
        "po_number": po.po_number,
        "supplier_id": po.supplier_id,
        "supplier_name": po.supplier.name if po.supplier else None,
        "status": po.status,
        "expected_date": po.expected_date,
        "received_date": po.received_date,
        "notes": po.notes,
        "total_amount": po.total_amount,
    }
    header["items"] = [
        {
            "line_item_id": line.pk,
            "product_id": line.product_id,
            "product_name": line.product.name,
            "sku": line.product.sku,
            "quantity": line.quantity,
            "unit_cost": line.unit_cost,
            "received_qty": line.received_qty,
            "outstanding_qty": line.outstanding_qty,
        }
        for line in lines
    ]
    header["subtotal"] = sum(
        (line.line_total for line in lines), Decimal("0")
    )
    return header


def get_orders_progress(po_ids: List[int]) -> Dict[int, Dict[str, int]]:
    """Return ordered/received unit totals and percent received per PO."""
    rows = (
        POLineItem.objects.filter(purchase_order_id__in=po_ids)
        .values("purchase_order_id")
        .annotate(ordered_total=Sum("quantity"), received_total=Sum("received_qty"))
    )
    progress: Dict[int, Dict[str, int]] = {}
    for row in rows:
        ordered = row["ordered_total"] or 0
        received = row["received_total"] or 0
        progress[row["purchase_order_id"]] = {
            "ordered_total": ordered,
            "received_total": received,
            "percent": int(received * 100 / ordered) if ordered else 0,
        }
    return progress
