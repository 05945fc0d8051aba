from django.contrib import admin

from .models import POLineItem, Product, PurchaseOrder, StockMovement, Supplier


class POLineItemInline(admin.TabularInline):
    model = POLineItem
    extra = 0
    readonly_fields = ["received_qty"]


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ["po_number", "supplier", "status", "expected_date", "total_amount"]
    list_filter = ["status"]
    search_fields = ["po_number"]
    readonly_fields = ["status", "received_date"]
    inlines = [POLineItemInline]


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ["product", "movement_type", "quantity", "reference", "created_at"]
    list_filter = ["movement_type"]

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


for model in [Product, Supplier, POLineItem]:
    admin.site.register(model)
