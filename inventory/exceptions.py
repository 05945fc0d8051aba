"""Domain errors for the inventory app and the REST API's exception handler."""

from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler


class InventoryError(Exception):
    """Base class for errors raised by the inventory services."""

    status_code = 400
    code = "inventory_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(InventoryError):
    """Input rejected before any write happened."""

    code = "invalid_input"


class OverReceiptError(InvalidInputError):
    """A received quantity would exceed the quantity ordered."""

    code = "over_receipt"


class InvalidReferenceError(InventoryError):
    """A referenced supplier, product or line item does not exist."""

    code = "invalid_reference"


class PurchaseOrderNotFound(InventoryError):
    status_code = 404
    code = "not_found"


class StatusTransitionError(InventoryError):
    """The requested action is not allowed from the PO's current status."""

    status_code = 409
    code = "invalid_status"


class AlreadyReceivedError(StatusTransitionError):
    code = "already_received"


class ReceivingError(InventoryError):
    """A database failure aborted a receiving transaction."""

    status_code = 500
    code = "receiving_failed"


def custom_exception_handler(exc, context):
    """Handle domain and Django validation errors as REST framework responses.

    For other exceptions, follow DRF's default behavior.
    """
    if isinstance(exc, InventoryError):
        return Response(
            {
                "detail": exc.message,
                "code": exc.code,
                "status_code": exc.status_code,
            },
            status=exc.status_code,
        )

    if isinstance(exc, DjangoValidationError):
        exc = DRFValidationError(detail=exc.messages)

    if isinstance(exc, Http404):
        return Response({"detail": "Not found."}, status=404)

    response = exception_handler(exc, context)

    # Unhandled exceptions fall through as None and become a 500.
    if response is not None:
        response.data["status_code"] = response.status_code

    return response
