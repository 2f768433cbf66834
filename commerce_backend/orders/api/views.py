# orders/api/views.py

"""
ORDER ENDPOINTS (THIN)

Views only:
- validate input with a serializer and build the typed input
- call the core operation
- map the Result to a response

No business rule lives here.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from commerce.http import result_response
from commerce.pagination import StandardPagination
from orders.api.filters import OrderFilter
from orders.api.serializers import (
    CreateOrderSerializer,
    OrderQuoteSerializer,
    OrderStatusSerializer,
    OrderViewSerializer,
    QuoteSerializer,
    UpdateOrderStatusSerializer,
)
from orders.models import OrderStatus
from orders.services import create_order, get_order, quote_order, update_order_status
from orders.services.read_models import order_view_queryset, view_from_row


def _render_order(view):
    return OrderViewSerializer(view).data


class OrderListCreateView(generics.GenericAPIView):
    """
    GET  /api/orders/   paginated list, filters: status, customer, created_after/before
    POST /api/orders/   create an order (stock reserved atomically)
    """

    permission_classes = [IsAuthenticated]
    pagination_class = StandardPagination
    filterset_class = OrderFilter
    serializer_class = OrderViewSerializer

    def get_queryset(self):
        return order_view_queryset()

    @extend_schema(tags=["Orders"], responses={200: OrderViewSerializer(many=True)})
    def get(self, request, *args, **kwargs):
        qs = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(qs)
        views = [view_from_row(order) for order in page]
        return self.get_paginated_response(OrderViewSerializer(views, many=True).data)

    @extend_schema(
        tags=["Orders"],
        request=CreateOrderSerializer,
        responses={
            201: OrderViewSerializer,
            400: OpenApiResponse(description="Validation error / invalid state or amount"),
            404: OpenApiResponse(description="Customer or product not found"),
            409: OpenApiResponse(description="Insufficient stock"),
        },
    )
    def post(self, request, *args, **kwargs):
        s = CreateOrderSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        result = create_order(s.to_input())
        return result_response(
            result, serialize=_render_order, success_status=status.HTTP_201_CREATED
        )


class OrderDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["Orders"],
        responses={
            200: OrderViewSerializer,
            404: OpenApiResponse(description="Order not found"),
        },
    )
    def get(self, request, order_id, *args, **kwargs):
        return result_response(get_order(order_id), serialize=_render_order)


class OrderStatusUpdateView(APIView):
    """
    POST /api/orders/<id>/status/  {"status": "CANCELLED", "notes": "..."}

    Cancelling a PENDING / PREPARING / COMPLETED order returns its stock.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["Orders"],
        request=UpdateOrderStatusSerializer,
        responses={
            200: OrderViewSerializer,
            400: OpenApiResponse(description="Illegal transition"),
            404: OpenApiResponse(description="Order or status not found"),
        },
    )
    def post(self, request, order_id, *args, **kwargs):
        s = UpdateOrderStatusSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        result = update_order_status(s.to_input(order_id))
        return result_response(result, serialize=_render_order)

    patch = post


class OrderQuoteView(APIView):
    """Price preview; no stock is touched and nothing is persisted."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["Orders"],
        request=QuoteSerializer,
        responses={
            200: OrderQuoteSerializer,
            400: OpenApiResponse(description="Invalid amount / inactive product"),
            404: OpenApiResponse(description="Product not found"),
        },
    )
    def post(self, request, *args, **kwargs):
        s = QuoteSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        result = quote_order(s.to_input())
        return result_response(
            result, serialize=lambda quote: OrderQuoteSerializer(quote).data
        )


class OrderStatusListView(generics.ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = OrderStatusSerializer
    pagination_class = None
    filter_backends = []

    def get_queryset(self):
        return OrderStatus.objects.prefetch_related("can_transition_to").order_by(
            "sort_order", "code"
        )

    @extend_schema(tags=["Orders"])
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)
