# orders/api/urls.py

"""
ORDER API URLS

Mounted at /api/orders/ by backend/urls.py.

Explicit non-UUID routes ("quote/", "statuses/") are listed BEFORE the
<uuid:order_id> routes.
"""

from django.urls import path

from orders.api.views import (
    OrderDetailView,
    OrderListCreateView,
    OrderQuoteView,
    OrderStatusListView,
    OrderStatusUpdateView,
)

urlpatterns = [
    path("", OrderListCreateView.as_view(), name="orders-list-create"),
    path("quote/", OrderQuoteView.as_view(), name="orders-quote"),
    path("statuses/", OrderStatusListView.as_view(), name="orders-statuses"),
    path("<uuid:order_id>/", OrderDetailView.as_view(), name="orders-detail"),
    path(
        "<uuid:order_id>/status/",
        OrderStatusUpdateView.as_view(),
        name="orders-status-update",
    ),
]
