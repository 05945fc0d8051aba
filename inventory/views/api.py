from django.db.models import F
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from ..models import Product, PurchaseOrder, StockMovement, Supplier
from ..serializers import (
    DashboardStatsSerializer,
    DuplicateSerializer,
    PartialReceiveSerializer,
    ProductSerializer,
    PurchaseOrderSerializer,
    PurchaseOrderWriteSerializer,
    StockMovementSerializer,
    SupplierSerializer,
)
from ..services import kpis, purchase_order_service, receiving_service, stock_service


class ProductViewSet(viewsets.ModelViewSet):
    """API endpoint for CRUD operations on products.

    Query params:
        name: optional substring to filter product names.
        low_stock: when ``1``, only products at or below their reorder point.
    """

    queryset = Product.objects.all()
    serializer_class = ProductSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        queryset = super().get_queryset()
        name = self.request.query_params.get("name")
        if name:
            queryset = queryset.filter(name__icontains=name)
        if self.request.query_params.get("low_stock") == "1":
            queryset = queryset.filter(stock__lte=F("reorder_point"))
        return queryset


class SupplierViewSet(viewsets.ModelViewSet):
    """Standard CRUD API for suppliers."""

    queryset = Supplier.objects.all()
    serializer_class = SupplierSerializer
    permission_classes = [permissions.IsAuthenticated]


class StockMovementViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Append-only stock movement log.

    Query params:
        product: restrict to one product id.
    """

    queryset = StockMovement.objects.all().select_related("product")
    serializer_class = StockMovementSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        queryset = super().get_queryset()
        product = self.request.query_params.get("product")
        if product:
            queryset = queryset.filter(product_id=product)
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        movement = stock_service.record_stock_movement(
            product_id=data["product"].pk,
            movement_type=data["movement_type"],
            quantity=data["quantity"],
            reference=data.get("reference", ""),
            notes=data.get("notes", ""),
        )
        return Response(
            self.get_serializer(movement).data, status=status.HTTP_201_CREATED
        )


class PurchaseOrderViewSet(viewsets.ModelViewSet):
    """Purchase orders and their lifecycle actions.

    Query params:
        status: exact status match.
        supplier: supplier id.
    """

    queryset = PurchaseOrder.objects.all().select_related("supplier").prefetch_related(
        "line_items__product"
    )
    serializer_class = PurchaseOrderSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        queryset = super().get_queryset()
        status_param = self.request.query_params.get("status")
        if status_param:
            queryset = queryset.filter(status=status_param)
        supplier = self.request.query_params.get("supplier")
        if supplier:
            queryset = queryset.filter(supplier_id=supplier)
        return queryset

    def _detail_response(self, po_id: int, code: int = status.HTTP_200_OK) -> Response:
        po = self.get_queryset().get(pk=po_id)
        return Response(self.get_serializer(po).data, status=code)

    def create(self, request, *args, **kwargs):
        payload = PurchaseOrderWriteSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = dict(payload.validated_data)
        items = [dict(i) for i in data.pop("line_items", [])]
        po = purchase_order_service.create_po(data, items)
        return self._detail_response(po.pk, status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        payload = PurchaseOrderWriteSerializer(data=request.data, partial=True)
        payload.is_valid(raise_exception=True)
        data = dict(payload.validated_data)
        data.pop("status", None)
        data.pop("po_number", None)
        items = data.pop("line_items", None)
        if items is not None:
            items = [dict(i) for i in items]
        po = purchase_order_service.update_po(kwargs["pk"], data, items)
        return self._detail_response(po.pk)

    def destroy(self, request, *args, **kwargs):
        purchase_order_service.delete_po(kwargs["pk"])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"])
    def submit(self, request, pk=None):
        po = purchase_order_service.submit_po(pk)
        return self._detail_response(po.pk)

    @action(detail=True, methods=["post"])
    def receive(self, request, pk=None):
        po = receiving_service.receive_all(pk)
        return self._detail_response(po.pk)

    @action(detail=True, methods=["post"], url_path="partial-receive")
    def partial_receive(self, request, pk=None):
        payload = PartialReceiveSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        lines = [dict(line) for line in payload.validated_data["lines"]]
        po = receiving_service.partial_receive(pk, lines)
        return self._detail_response(po.pk)

    @action(detail=True, methods=["post"])
    def duplicate(self, request, pk=None):
        payload = DuplicateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        po = purchase_order_service.duplicate_po(
            pk, payload.validated_data.get("po_number")
        )
        return self._detail_response(po.pk, status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"], url_path="next-number")
    def next_number(self, request):
        return Response({"po_number": purchase_order_service.generate_po_number()})


class DashboardViewSet(viewsets.ViewSet):
    """Read-only inventory and purchasing stats for the dashboard."""

    permission_classes = [permissions.IsAuthenticated]

    def list(self, request):
        return Response(DashboardStatsSerializer(kpis.dashboard_stats()).data)
