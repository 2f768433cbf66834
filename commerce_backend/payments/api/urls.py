# payments/api/urls.py

from django.urls import path

from payments.api.views import (
    PaymentDetailView,
    PaymentListCreateView,
    PaymentVerifyView,
    PaymentWebhookView,
)

urlpatterns = [
    path("", PaymentListCreateView.as_view(), name="payment-list-create"),
    path("webhook/", PaymentWebhookView.as_view(), name="payment-webhook"),
    path("<uuid:payment_id>/", PaymentDetailView.as_view(), name="payment-detail"),
    path(
        "<uuid:payment_id>/verify/",
        PaymentVerifyView.as_view(),
        name="payment-verify",
    ),
]
