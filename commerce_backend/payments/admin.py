# payments/admin.py

from django.contrib import admin

from payments.models import Payment, WebhookLog


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = (
        "external_reference",
        "order",
        "amount",
        "status",
        "provider_payment_id",
        "created_at",
    )
    list_filter = ("status", "provider", "payment_method")
    search_fields = (
        "external_reference",
        "preference_id",
        "idempotency_key",
        "provider_payment_id",
        "order__order_no",
    )
    ordering = ("-created_at",)

    # Reconciliation with the provider owns every field.
    readonly_fields = [f.name for f in Payment._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(WebhookLog)
class WebhookLogAdmin(admin.ModelAdmin):
    list_display = (
        "created_at",
        "source",
        "event_type",
        "data_id",
        "outcome",
        "payment",
    )
    list_filter = ("source", "event_type", "outcome", "processed")
    search_fields = ("data_id", "detail", "payment__external_reference")
    ordering = ("-created_at",)

    readonly_fields = [f.name for f in WebhookLog._meta.fields]

    def has_add_permission(self, request):
        return False
