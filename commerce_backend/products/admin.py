# products/admin.py

"""
Admin rules:

- Product stock is read-only here; it moves only through the stock ledger
  (order reservation / cancellation) so every change has a StockMovement row.
- StockMovement rows are immutable and shown read-only.
"""

from __future__ import annotations

from django.contrib import admin

from products.models import Product, StockMovement


class StockMovementInline(admin.TabularInline):
    model = StockMovement
    extra = 0
    can_delete = False
    fields = ("created_at", "movement_type", "reason", "quantity", "order_id")
    readonly_fields = fields
    ordering = ("-created_at",)

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "sku", "price", "tax_rate", "stock", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "sku")
    ordering = ("name",)
    inlines = [StockMovementInline]

    def get_readonly_fields(self, request, obj=None):
        if obj is not None:
            return ("stock", "created_at", "updated_at")
        return ("created_at", "updated_at")


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("product", "movement_type", "reason", "quantity", "order_id", "created_at")
    list_filter = ("reason", "movement_type")
    search_fields = ("product__name", "product__sku", "order_id")
    readonly_fields = ("product", "movement_type", "reason", "quantity", "order_id", "created_at")

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
