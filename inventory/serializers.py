from rest_framework import serializers

from .models import POLineItem, Product, PurchaseOrder, StockMovement, Supplier


class ProductSerializer(serializers.ModelSerializer):
    """Expose product details; stock only changes through movements."""

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "sku",
            "category",
            "description",
            "price",
            "cost",
            "stock",
            "reorder_point",
            "unit",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["stock", "created_at", "updated_at"]


class SupplierSerializer(serializers.ModelSerializer):
    """Serialize supplier contact and status information."""

    class Meta:
        model = Supplier
        fields = [
            "id",
            "name",
            "contact_email",
            "phone",
            "address",
            "lead_time_days",
            "notes",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["created_at", "updated_at"]


class StockMovementSerializer(serializers.ModelSerializer):
    """Show stock changes with the product they apply to."""

    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = StockMovement
        fields = [
            "id",
            "product",
            "product_name",
            "movement_type",
            "quantity",
            "reference",
            "notes",
            "created_at",
        ]
        read_only_fields = ["created_at"]


class POLineItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)
    sku = serializers.CharField(source="product.sku", read_only=True)
    outstanding_qty = serializers.IntegerField(read_only=True)

    class Meta:
        model = POLineItem
        fields = [
            "id",
            "product",
            "product_name",
            "sku",
            "quantity",
            "unit_cost",
            "received_qty",
            "outstanding_qty",
        ]


class PurchaseOrderSerializer(serializers.ModelSerializer):
    """Purchase order header with its line items."""

    supplier_name = serializers.CharField(
        source="supplier.name", read_only=True, default=None
    )
    line_items = POLineItemSerializer(many=True, read_only=True)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            "id",
            "po_number",
            "supplier",
            "supplier_name",
            "status",
            "expected_date",
            "received_date",
            "total_amount",
            "subtotal",
            "notes",
            "line_items",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class LineItemInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField()
    unit_cost = serializers.DecimalField(max_digits=12, decimal_places=2)


class PurchaseOrderWriteSerializer(serializers.Serializer):
    """Input accepted when creating or editing a purchase order."""

    supplier_id = serializers.IntegerField(required=False)
    status = serializers.ChoiceField(
        choices=[PurchaseOrder.DRAFT, PurchaseOrder.ORDERED], required=False
    )
    po_number = serializers.CharField(max_length=50, required=False)
    expected_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    additional_costs = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False
    )
    line_items = LineItemInputSerializer(many=True, required=False)


class ReceiptLineSerializer(serializers.Serializer):
    line_item_id = serializers.IntegerField()
    quantity = serializers.IntegerField()


class PartialReceiveSerializer(serializers.Serializer):
    lines = ReceiptLineSerializer(many=True)


class DuplicateSerializer(serializers.Serializer):
    po_number = serializers.CharField(max_length=50, required=False)


class DashboardStatsSerializer(serializers.Serializer):
    """Headline inventory and purchasing figures."""

    stock_value = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_units = serializers.IntegerField()
    product_count = serializers.IntegerField()
    low_stock_count = serializers.IntegerField()
    low_stock_items = serializers.ListField(child=serializers.CharField())
    draft_po_count = serializers.IntegerField()
    pending_po_count = serializers.IntegerField()
    po_status_counts = serializers.DictField(child=serializers.IntegerField())
    categories = serializers.ListField(child=serializers.CharField())
