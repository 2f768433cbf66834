# payments/api/views.py

"""
PAYMENT ENDPOINTS

Authenticated:
- POST /api/payments/                  create preference + payment for an order
- GET  /api/payments/<id>/             payment detail
- POST /api/payments/<id>/verify/      pull provider state and reconcile
- GET  /api/payments/?order=<uuid>     payments of one order

Public:
- POST /api/payments/webhook/          provider notifications (always 200)
"""

from __future__ import annotations

import logging
import uuid

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.exceptions import ParseError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from commerce.http import result_response
from payments.api.serializers import (
    CreatePaymentSerializer,
    PaymentCreatedSerializer,
    PaymentVerificationSerializer,
    PaymentViewSerializer,
    VerifyPaymentSerializer,
)
from payments.services import PaymentWorkflow, get_payment, list_payments_for_order
from payments.services.inputs import WebhookDelivery
from payments.services.mercadopago import MercadoPagoClient

logger = logging.getLogger(__name__)


class WebhookThrottle(AnonRateThrottle):
    scope = "webhook"


def get_workflow() -> PaymentWorkflow:
    return PaymentWorkflow(MercadoPagoClient.from_settings())


class PaymentListCreateView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["Payments"],
        parameters=[OpenApiParameter("order", str, required=True)],
        responses={
            200: PaymentViewSerializer(many=True),
            400: OpenApiResponse(description="Missing order parameter"),
            404: OpenApiResponse(description="Order not found"),
        },
    )
    def get(self, request, *args, **kwargs):
        order_id = (request.query_params.get("order") or "").strip()
        if not order_id:
            return Response(
                {"detail": "order query parameter is required", "code": "invalid_state"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            order_id = uuid.UUID(order_id)
        except ValueError:
            return Response(
                {"detail": "order must be a UUID", "code": "invalid_state"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        result = list_payments_for_order(order_id)
        return result_response(
            result, serialize=lambda views: PaymentViewSerializer(views, many=True).data
        )

    @extend_schema(
        tags=["Payments"],
        request=CreatePaymentSerializer,
        responses={
            201: PaymentCreatedSerializer,
            400: OpenApiResponse(description="Amount mismatch / order not payable"),
            404: OpenApiResponse(description="Order not found"),
            409: OpenApiResponse(description="Order already paid"),
            502: OpenApiResponse(description="Provider error"),
        },
    )
    def post(self, request, *args, **kwargs):
        s = CreatePaymentSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        data = s.to_input(
            idempotency_key=(request.headers.get("Idempotency-Key") or "").strip()
        )
        result = get_workflow().create_payment_for_order(data)
        return result_response(
            result,
            serialize=lambda created: PaymentCreatedSerializer(created).data,
            success_status=status.HTTP_201_CREATED,
        )


class PaymentDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["Payments"],
        responses={
            200: PaymentViewSerializer,
            404: OpenApiResponse(description="Payment not found"),
        },
    )
    def get(self, request, payment_id, *args, **kwargs):
        return result_response(
            get_payment(payment_id),
            serialize=lambda view: PaymentViewSerializer(view).data,
        )


class PaymentVerifyView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["Payments"],
        request=VerifyPaymentSerializer,
        responses={
            200: PaymentVerificationSerializer,
            400: OpenApiResponse(description="Provider payment belongs to another reference"),
            404: OpenApiResponse(description="Payment not found"),
            502: OpenApiResponse(description="Provider error"),
        },
    )
    def post(self, request, payment_id, *args, **kwargs):
        s = VerifyPaymentSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        result = get_workflow().verify_payment(s.to_input(payment_id))
        return result_response(
            result, serialize=lambda v: PaymentVerificationSerializer(v).data
        )


class PaymentWebhookView(APIView):
    """
    Mercado Pago notifications.

    Body:   {"type": "payment", "action": "...", "data": {"id": "123"}}
    Query:  ?topic=payment&id=123   (legacy IPN form)

    Always answers 200 so the provider stops retrying; outcomes are logged.
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [WebhookThrottle]

    @extend_schema(tags=["Payments"], request=None, responses={200: OpenApiResponse()})
    def post(self, request, *args, **kwargs):
        try:
            data = request.data
        except ParseError:
            logger.warning("Webhook body could not be parsed, using query params only")
            data = {}

        if hasattr(data, "dict"):
            payload = data.dict()
        elif isinstance(data, dict):
            payload = dict(data)
        else:
            payload = {}
        body = dict(payload)
        for key in ("type", "topic", "id", "data.id"):
            value = request.query_params.get(key)
            if value and key not in payload:
                payload[key] = value

        outcome = get_workflow().handle_webhook(
            payload,
            delivery=WebhookDelivery(
                http_method=request.method,
                query_params=request.query_params.dict(),
                body=body,
                ip_address=request.META.get("REMOTE_ADDR") or None,
                user_agent=request.META.get("HTTP_USER_AGENT", ""),
            ),
        )

        logger.info(
            "Webhook acknowledged",
            extra={"outcome": outcome.status, "detail": outcome.detail},
        )
        return Response(
            {
                "ok": outcome.status != outcome.STATUS_ERROR,
                "status": outcome.status,
                "detail": outcome.detail,
            },
            status=status.HTTP_200_OK,
        )
