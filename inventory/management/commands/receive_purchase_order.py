from django.core.management.base import BaseCommand, CommandError

from inventory.exceptions import InventoryError
from inventory.models import PurchaseOrder
from inventory.services import receiving_service


class Command(BaseCommand):
    """Receive a purchase order into stock from the command line."""

    help = (
        "Receive everything outstanding on a purchase order, or only the "
        "given lines with --line LINE_ID=QTY."
    )

    def add_arguments(self, parser):
        parser.add_argument("po_number")
        parser.add_argument(
            "--line",
            action="append",
            default=[],
            metavar="LINE_ID=QTY",
            help="Quantity received for one line item; may be repeated.",
        )

    def handle(self, *args, **options):
        po_number = options["po_number"]
        po_id = (
            PurchaseOrder.objects.filter(po_number=po_number)
            .values_list("pk", flat=True)
            .first()
        )
        if po_id is None:
            raise CommandError(f"Purchase order {po_number} not found.")

        lines = []
        for entry in options["line"]:
            line_id, sep, qty = entry.partition("=")
            if not sep:
                raise CommandError(f"Invalid --line '{entry}', expected LINE_ID=QTY.")
            lines.append({"line_item_id": line_id.strip(), "quantity": qty.strip()})

        try:
            if lines:
                po = receiving_service.partial_receive(po_id, lines)
            else:
                po = receiving_service.receive_all(po_id)
        except InventoryError as exc:
            raise CommandError(exc.message) from exc

        self.stdout.write(
            self.style.SUCCESS(f"{po.po_number} is now {po.get_status_display()}.")
        )
