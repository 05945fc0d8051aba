"""Receiving of purchase orders into stock.

Each operation runs as one transaction that locks the PO and its line
items, credits stock, writes one ``in`` movement per line touched and
recomputes the PO status. Either all of that is committed or none of it.
"""

import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, List

from django.conf import settings
from django.db import DatabaseError, OperationalError, transaction
from django.utils import timezone

from inventory.exceptions import (
    AlreadyReceivedError,
    InvalidInputError,
    InvalidReferenceError,
    OverReceiptError,
    ReceivingError,
    StatusTransitionError,
)
from inventory.models import POLineItem, PurchaseOrder, StockMovement

from . import stock_service
from .purchase_order_service import get_locked_po, parse_quantity

logger = logging.getLogger(__name__)

RECEIVABLE_STATUSES = {PurchaseOrder.ORDERED, PurchaseOrder.PARTIAL}


def _run_atomic(operation: Callable[..., PurchaseOrder], po_id: int, *args) -> PurchaseOrder:
    """Run ``operation`` in a transaction, retrying on lock conflicts."""
    attempts = max(int(settings.RECEIVING_MAX_RETRIES), 1)
    for attempt in range(attempts):
        try:
            with transaction.atomic():
                return operation(po_id, *args)
        except OperationalError as exc:
            logger.warning(
                "Lock conflict receiving PO %s (attempt %d/%d): %s",
                po_id,
                attempt + 1,
                attempts,
                exc,
            )
            time.sleep(0.1 * attempt)
        except DatabaseError as exc:
            logger.error("Database error receiving PO %s: %s", po_id, exc)
            raise ReceivingError(
                f"Database error receiving purchase order {po_id}; nothing was received."
            ) from exc
    logger.error("Giving up receiving PO %s after %d attempts", po_id, attempts)
    raise ReceivingError(
        f"Purchase order {po_id} is busy; nothing was received. Try again."
    )


def _check_receivable(po: PurchaseOrder) -> None:
    if po.status == PurchaseOrder.RECEIVED:
        logger.warning("Rejected receive of already received PO %s", po.po_number)
        raise AlreadyReceivedError(f"{po.po_number} has already been received.")
    if po.status not in RECEIVABLE_STATUSES:
        logger.warning("Rejected receive of %s in status %s", po.po_number, po.status)
        raise StatusTransitionError(
            f"{po.po_number} is '{po.status}'; only ordered purchase orders can be received."
        )


def _credit_line(po: PurchaseOrder, line: POLineItem, qty: int) -> None:
    line.received_qty += qty
    line.save(update_fields=["received_qty"])
    stock_service.apply_stock_change(
        line.product_id,
        StockMovement.IN,
        qty,
        reference=po.po_number,
        notes=f"Received from PO {po.po_number}",
    )


def _update_po_status(po: PurchaseOrder, lines: List[POLineItem]) -> None:
    if all(line.received_qty >= line.quantity for line in lines):
        po.status = PurchaseOrder.RECEIVED
        po.received_date = timezone.localdate()
    else:
        po.status = PurchaseOrder.PARTIAL
    po.save(update_fields=["status", "received_date", "updated_at"])


def _receive_all(po_id: int) -> PurchaseOrder:
    po = get_locked_po(po_id)
    _check_receivable(po)
    lines = list(po.line_items.select_for_update().order_by("pk"))
    for line in lines:
        outstanding = line.quantity - line.received_qty
        if outstanding > 0:
            _credit_line(po, line, outstanding)
    _update_po_status(po, lines)
    return po


def _partial_receive(po_id: int, deltas: "OrderedDict[int, int]") -> PurchaseOrder:
    po = get_locked_po(po_id)
    _check_receivable(po)
    lines = list(po.line_items.select_for_update().order_by("pk"))
    by_id = {line.pk: line for line in lines}

    for line_id, qty in deltas.items():
        line = by_id.get(line_id)
        if line is None:
            raise InvalidReferenceError(
                f"Line item {line_id} does not belong to {po.po_number}."
            )
        if line.received_qty + qty > line.quantity:
            raise OverReceiptError(
                f"Receiving {qty} on line {line_id} exceeds the "
                f"{line.quantity - line.received_qty} still outstanding."
            )

    for line_id, qty in deltas.items():
        _credit_line(po, by_id[line_id], qty)
    _update_po_status(po, lines)
    return po


def _clean_deltas(lines: List[Dict[str, Any]]) -> "OrderedDict[int, int]":
    """Validate receipt lines and merge repeats of the same line item."""
    deltas: "OrderedDict[int, int]" = OrderedDict()
    for entry in lines or []:
        try:
            line_id = int(entry["line_item_id"])
        except (KeyError, TypeError, ValueError):
            raise InvalidInputError("Each receipt line needs a line_item_id.") from None
        qty = parse_quantity(entry.get("quantity") or 0)
        if qty < 0:
            raise InvalidInputError("Received quantity cannot be negative.")
        if qty == 0:
            continue
        deltas[line_id] = deltas.get(line_id, 0) + qty
    if not deltas:
        raise InvalidInputError("No quantities received.")
    return deltas


def receive_all(po_id: int) -> PurchaseOrder:
    """Receive everything still outstanding on a PO.

    Stock is credited with ``quantity - received_qty`` per line, so units
    already received through a partial receipt are not counted twice.
    """
    po = _run_atomic(_receive_all, po_id)
    logger.info("Received %s in full", po.po_number)
    return po


def partial_receive(po_id: int, lines: List[Dict[str, Any]]) -> PurchaseOrder:
    """Add received quantities to individual line items.

    ``lines`` holds ``{"line_item_id": ..., "quantity": ...}`` entries where
    quantity is the amount received now, added to what was received before.
    Zero quantities are skipped. Repeated calls are additive.
    """
    deltas = _clean_deltas(lines)
    po = _run_atomic(_partial_receive, po_id, deltas)
    logger.info(
        "Received %d line(s) on %s, status now %s", len(deltas), po.po_number, po.status
    )
    return po
