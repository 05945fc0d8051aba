import logging
from typing import List, Optional

from django.db import transaction
from django.db.models import F, Value

from inventory.exceptions import InvalidInputError, InvalidReferenceError
from inventory.models import Product, StockMovement

from .purchase_order_service import parse_quantity

logger = logging.getLogger(__name__)

MOVEMENT_TYPES = {StockMovement.IN, StockMovement.OUT, StockMovement.ADJUSTMENT}


def apply_stock_change(
    product_id: int,
    movement_type: str,
    quantity: int,
    reference: str = "",
    notes: str = "",
) -> StockMovement:
    """Update a product's stock and append the matching movement row.

    Must run inside an open transaction so the stock update and its
    movement are committed or discarded together. An ``out`` larger than
    the stock on hand is clamped, and the movement records the amount
    actually removed so the log and ``products.stock`` stay in step.
    """
    try:
        product = Product.objects.select_for_update().only("stock").get(pk=product_id)
    except (Product.DoesNotExist, ValueError):
        raise InvalidReferenceError(f"Product {product_id} not found.") from None

    if movement_type == StockMovement.IN:
        new_stock = F("stock") + quantity
    elif movement_type == StockMovement.OUT:
        removed = min(product.stock, quantity)
        if removed < quantity:
            logger.info(
                "Clamped out movement for product %s from %s to %s",
                product_id,
                quantity,
                removed,
            )
        quantity = removed
        new_stock = F("stock") - quantity
    else:
        new_stock = Value(quantity)
    Product.objects.filter(pk=product_id).update(stock=new_stock)
    return StockMovement.objects.create(
        product_id=product_id,
        movement_type=movement_type,
        quantity=quantity,
        reference=reference or "",
        notes=notes or "",
    )


def record_stock_movement(
    product_id: int,
    movement_type: str,
    quantity: int,
    reference: Optional[str] = "",
    notes: Optional[str] = "",
) -> StockMovement:
    """Record a manual stock movement.

    ``in`` adds to stock, ``out`` subtracts and never goes below zero, and
    ``adjustment`` sets the stock to ``quantity``.
    """
    if movement_type not in MOVEMENT_TYPES:
        raise InvalidInputError(f"Unknown movement type '{movement_type}'.")
    quantity = parse_quantity(quantity)
    if movement_type == StockMovement.ADJUSTMENT:
        if quantity < 0:
            raise InvalidInputError("Adjusted stock cannot be negative.")
    elif quantity <= 0:
        raise InvalidInputError("Quantity must be positive.")

    with transaction.atomic():
        movement = apply_stock_change(
            product_id, movement_type, quantity, reference, notes
        )
    logger.info(
        "Recorded %s movement of %s for product %s", movement_type, quantity, product_id
    )
    return movement


def get_stock_history(product_id: int, limit: int = 30) -> List[int]:
    """Return running stock levels for the most recent movements.

    Adjustments set an absolute level, so the history restarts from the
    latest adjustment within the window.
    """
    current = (
        Product.objects.filter(pk=product_id).values_list("stock", flat=True).first()
    )
    if current is None:
        return []
    movements = list(
        StockMovement.objects.filter(product_id=product_id)
        .order_by("-created_at", "-id")
        .values_list("movement_type", "quantity")[:limit]
    )[::-1]

    last_adjustment = None
    for idx, (movement_type, _) in enumerate(movements):
        if movement_type == StockMovement.ADJUSTMENT:
            last_adjustment = idx
    if last_adjustment is not None:
        movements = movements[last_adjustment:]
        history = [movements[0][1]]
        movements = movements[1:]
    else:
        net = sum(
            qty if movement_type == StockMovement.IN else -qty
            for movement_type, qty in movements
        )
        history = [current - net]

    level = history[0]
    for movement_type, qty in movements:
        level = level + qty if movement_type == StockMovement.IN else level - qty
        history.append(level)
    return history
