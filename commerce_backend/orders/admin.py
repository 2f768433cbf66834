# orders/admin.py

from django.contrib import admin

from orders.models import Coupon, Order, OrderItem, OrderStatus


@admin.register(OrderStatus)
class OrderStatusAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "is_default", "is_active", "sort_order")
    list_filter = ("is_active", "is_default")
    search_fields = ("code", "name")
    filter_horizontal = ("can_transition_to",)
    ordering = ("sort_order", "code")


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    readonly_fields = (
        "position",
        "product",
        "product_name",
        "sku",
        "quantity",
        "base_unit_price",
        "tax_rate",
        "unit_price",
        "tax_amount",
        "subtotal",
    )

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "order_no",
        "customer",
        "status",
        "total_amount",
        "created_at",
    )
    list_filter = ("status", "created_at")
    search_fields = ("order_no", "customer__name", "customer__email")
    ordering = ("-created_at",)
    inlines = [OrderItemInline]

    # Status changes must go through the lifecycle service (stock release).
    readonly_fields = (
        "order_no",
        "customer",
        "status",
        "subtotal_amount",
        "tax_amount",
        "discount_rate",
        "discount_amount",
        "total_amount",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "discount_type",
        "discount_value",
        "is_active",
        "valid_until",
        "times_used",
        "usage_limit",
    )
    list_filter = ("discount_type", "is_active")
    search_fields = ("code", "description")
    ordering = ("code",)

    # Redemptions count through order creation only.
    readonly_fields = ("times_used", "created_at", "updated_at")
