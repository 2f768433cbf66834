# payments/tests/test_workflow.py

from decimal import Decimal
from unittest import mock

from django.test import TestCase

from commerce.errors import (
    ConflictError,
    ExternalProviderError,
    InvalidAmountError,
    InvalidStateError,
    NotFoundError,
)
from customers.models import Customer
from orders.models import Order
from orders.services import create_order, update_order_status
from orders.services.inputs import (
    CreateOrderInput,
    OrderLineInput,
    UpdateOrderStatusInput,
)
from orders.services.order_lifecycle import ensure_default_statuses
from payments.models import Payment, WebhookLog
from payments.services import payment_workflow
from payments.services.inputs import (
    CreatePaymentInput,
    VerifyPaymentInput,
    WebhookNotification,
)
from payments.services.payment_workflow import (
    PaymentConfig,
    PaymentWorkflow,
    WebhookOutcome,
    get_payment,
    list_payments_for_order,
)
from payments.tests.fakes import FakeProvider
from products.models import Product

MISSING_ID = "00000000-0000-0000-0000-000000000000"


class PaymentWorkflowTestBase(TestCase):
    def setUp(self):
        ensure_default_statuses()

        self.customer = Customer.objects.create(name="Marta", email="marta@example.com")
        self.product = Product.objects.create(
            sku="MP-1",
            name="Dulce de leche",
            price=Decimal("100.00"),
            tax_rate=Decimal("21.00"),
            stock=10,
        )
        self.order = self._order()

        self.provider = FakeProvider()
        self.workflow = PaymentWorkflow(
            self.provider,
            config=PaymentConfig(
                notification_url="https://shop.example/api/payments/webhook/",
                statement_descriptor="SHOP",
            ),
        )

    def _order(self, quantity=2, discount_rate=Decimal("0")):
        return create_order(
            CreateOrderInput(
                customer_id=self.customer.id,
                items=(OrderLineInput(product_id=self.product.id, quantity=quantity),),
                discount_rate=discount_rate,
            )
        ).unwrap()

    def _order_status(self, order_id=None):
        return Order.objects.get(pk=order_id or self.order.id).status.code

    def _pay(self, **extra):
        return self.workflow.create_payment_for_order(
            CreatePaymentInput(order_id=self.order.id, **extra)
        )


class CreatePaymentTests(PaymentWorkflowTestBase):
    """
    Payment creation.

    GUARANTEES:
    - The order must exist, belong to the customer, match the amount and be open
    - One payment row per idempotency key / external reference
    - The idempotency key reaches the provider
    """

    def test_creates_pending_payment_and_preference(self):
        result = self._pay(idempotency_key="checkout-1")

        self.assertTrue(result.ok, result.error)
        created = result.value
        self.assertEqual(created.payment.status, Payment.STATUS_PENDING)
        self.assertEqual(created.payment.amount, Decimal("242.00"))
        self.assertEqual(created.payment.external_reference, f"sale-{self.order.id}")
        self.assertEqual(created.payment.idempotency_key, "checkout-1")
        self.assertEqual(created.preference.id, "pref-1")
        self.assertTrue(created.preference.init_point.endswith("pref-1"))

        call = self.provider.preference_calls[0]
        self.assertEqual(call["idempotency_key"], "checkout-1")
        body = call["body"]
        self.assertEqual(body["external_reference"], f"sale-{self.order.id}")
        self.assertEqual(body["payer"]["email"], "marta@example.com")
        self.assertEqual(body["items"][0]["quantity"], 2)
        self.assertEqual(body["items"][0]["unit_price"], 121.0)
        self.assertEqual(body["notification_url"], "https://shop.example/api/payments/webhook/")
        self.assertEqual(body["statement_descriptor"], "SHOP")
        self.assertTrue(body["expires"])

    def test_default_idempotency_key(self):
        result = self._pay()

        self.assertRegex(
            result.value.payment.idempotency_key, rf"^payment-{self.order.id}-\d+$"
        )

    def test_same_idempotency_key_returns_same_payment(self):
        first = self._pay(idempotency_key="checkout-1").unwrap()
        second = self._pay(idempotency_key="checkout-1").unwrap()

        self.assertEqual(first.payment.id, second.payment.id)
        self.assertEqual(Payment.objects.count(), 1)
        self.assertEqual(second.payment.preference_id, "pref-2")

    def test_retry_without_key_reuses_order_reference(self):
        first = self._pay().unwrap()
        second = self._pay().unwrap()

        self.assertEqual(first.payment.id, second.payment.id)
        self.assertEqual(Payment.objects.count(), 1)

    def test_discounted_order_is_charged_as_one_item(self):
        self.order = self._order(quantity=1, discount_rate=Decimal("10"))

        self._pay().unwrap()

        items = self.provider.preference_calls[0]["body"]["items"]
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0]["unit_price"], 108.9)
        self.assertEqual(items[0]["title"], f"Order {self.order.order_no}")

    def test_amount_must_match_order_total(self):
        result = self._pay(amount=Decimal("100.00"))

        self.assertIsInstance(result.error, InvalidAmountError)
        self.assertIn("242.00", result.error.message)
        self.assertEqual(self.provider.preference_calls, [])
        self.assertFalse(Payment.objects.exists())

    def test_matching_amount_and_customer_accepted(self):
        result = self._pay(amount=Decimal("242.00"), customer_id=self.customer.id)

        self.assertTrue(result.ok, result.error)

    def test_other_customer_rejected(self):
        other = Customer.objects.create(name="Otro", email="otro@example.com")

        result = self._pay(customer_id=other.id)

        self.assertIsInstance(result.error, InvalidStateError)

    def test_missing_order(self):
        result = self.workflow.create_payment_for_order(
            CreatePaymentInput(order_id=MISSING_ID)
        )

        self.assertIsInstance(result.error, NotFoundError)

    def test_cancelled_order_rejected(self):
        update_order_status(
            UpdateOrderStatusInput(order_id=self.order.id, status_code="CANCELLED")
        ).unwrap()

        result = self._pay()

        self.assertIsInstance(result.error, InvalidStateError)

    def test_already_paid_order_rejected(self):
        Payment.objects.create(
            order_id=self.order.id,
            customer=self.customer,
            amount=Decimal("242.00"),
            status=Payment.STATUS_APPROVED,
            external_reference="manual-1",
            preference_id="pref-manual",
        )

        result = self._pay()

        self.assertIsInstance(result.error, ConflictError)

    def test_provider_failure_saves_nothing(self):
        self.provider.fail_with = ExternalProviderError("Mercado Pago HTTP 500: boom")

        result = self._pay()

        self.assertIsInstance(result.error, ExternalProviderError)
        self.assertFalse(Payment.objects.exists())

    def test_read_helpers(self):
        created = self._pay().unwrap()

        self.assertEqual(get_payment(created.payment.id).value.id, created.payment.id)
        self.assertIsInstance(get_payment(MISSING_ID).error, NotFoundError)

        listed = list_payments_for_order(self.order.id).unwrap()
        self.assertEqual([p.id for p in listed], [created.payment.id])
        self.assertIsInstance(list_payments_for_order(MISSING_ID).error, NotFoundError)

    def test_concurrent_insert_converges_on_existing_row(self):
        raced = Payment.objects.create(
            order_id=self.order.id,
            customer=self.customer,
            amount=Decimal("242.00"),
            external_reference=f"sale-{self.order.id}",
            preference_id="pref-race",
            idempotency_key="checkout-race",
        )
        lookup = self.workflow._find_existing
        calls = []

        def miss_first_lookup(**kwargs):
            calls.append(kwargs)
            return None if len(calls) == 1 else lookup(**kwargs)

        with mock.patch.object(
            self.workflow, "_find_existing", side_effect=miss_first_lookup
        ):
            result = self._pay(idempotency_key="checkout-race")

        self.assertTrue(result.ok, result.error)
        self.assertEqual(len(calls), 2)
        self.assertEqual(result.value.payment.id, raced.id)
        self.assertEqual(Payment.objects.count(), 1)
        self.assertEqual(Payment.objects.get().preference_id, "pref-1")

    def test_retry_after_rejection_reopens_payment(self):
        first = self._pay().unwrap().payment
        self.provider.add_payment(
            "mp-0",
            status="rejected",
            external_reference=first.external_reference,
            amount="242.00",
        )
        self.workflow.verify_payment(
            VerifyPaymentInput(payment_id=first.id, provider_payment_id="mp-0")
        ).unwrap()

        second = self._pay().unwrap().payment

        self.assertEqual(second.id, first.id)
        self.assertEqual(second.status, Payment.STATUS_PENDING)
        self.assertEqual(second.provider_payment_id, "")
        self.assertEqual(second.preference_id, "pref-2")
        payment = Payment.objects.get(pk=first.id)
        self.assertEqual(
            payment.metadata["failed_attempts"],
            [{"status": "rejected", "provider_payment_id": "mp-0"}],
        )

        # A late notification for the failed attempt does not undo the retry.
        self.workflow.handle_webhook({"type": "payment", "data": {"id": "mp-0"}})
        self.assertEqual(
            Payment.objects.get(pk=first.id).status, Payment.STATUS_PENDING
        )


class VerifyPaymentTests(PaymentWorkflowTestBase):
    """
    Reconciliation against the provider.

    GUARANTEES:
    - Approval completes the order exactly once
    - An approval for a different amount is recorded but does not complete the order
    """

    def setUp(self):
        super().setUp()
        self.payment = self._pay().unwrap().payment

    def _verify(self, provider_payment_id="mp-1"):
        return self.workflow.verify_payment(
            VerifyPaymentInput(
                payment_id=self.payment.id, provider_payment_id=provider_payment_id
            )
        )

    def test_approved_payment_completes_order(self):
        self.provider.add_payment(
            "mp-1",
            status="approved",
            external_reference=self.payment.external_reference,
            amount="242.00",
        )

        result = self._verify()

        self.assertTrue(result.ok, result.error)
        self.assertEqual(result.value.payment.status, Payment.STATUS_APPROVED)
        self.assertEqual(result.value.payment.provider_payment_id, "mp-1")
        self.assertEqual(result.value.payment.payment_method, Payment.METHOD_CREDIT_CARD)
        self.assertIsNotNone(result.value.payment.approved_at)
        self.assertEqual(result.value.order_status, "COMPLETED")
        self.assertEqual(self._order_status(), "COMPLETED")

    def test_pending_payment_leaves_order_open(self):
        self.provider.add_payment(
            "mp-1",
            status="in_process",
            external_reference=self.payment.external_reference,
            amount="242.00",
            payment_type_id="ticket",
        )

        result = self._verify()

        self.assertEqual(result.value.payment.status, Payment.STATUS_IN_PROCESS)
        self.assertEqual(result.value.payment.payment_method, Payment.METHOD_TICKET)
        self.assertEqual(self._order_status(), "PENDING")

    def test_amount_mismatch_does_not_complete_order(self):
        self.provider.add_payment(
            "mp-1",
            status="approved",
            external_reference=self.payment.external_reference,
            amount="10.00",
        )

        with self.assertLogs("payments.services.payment_workflow", level="ERROR"):
            result = self._verify()

        self.assertTrue(result.ok, result.error)
        self.assertEqual(self._order_status(), "PENDING")
        payment = Payment.objects.get(pk=self.payment.id)
        self.assertEqual(payment.status, Payment.STATUS_APPROVED)
        self.assertEqual(payment.metadata["amount_mismatch"]["received"], "10.00")

    def test_reference_mismatch_rejected(self):
        self.provider.add_payment(
            "mp-9", status="approved", external_reference="sale-someone-else"
        )

        result = self._verify("mp-9")

        self.assertIsInstance(result.error, InvalidStateError)
        self.assertEqual(
            Payment.objects.get(pk=self.payment.id).status, Payment.STATUS_PENDING
        )

    def test_missing_payment(self):
        result = self.workflow.verify_payment(
            VerifyPaymentInput(payment_id=MISSING_ID, provider_payment_id="mp-1")
        )

        self.assertIsInstance(result.error, NotFoundError)
        self.assertEqual(self.provider.payment_calls, [])

    def test_unknown_provider_status_is_ignored(self):
        self.provider.add_payment(
            "mp-1",
            status="something_new",
            external_reference=self.payment.external_reference,
        )

        result = self._verify()

        self.assertTrue(result.ok, result.error)
        self.assertEqual(result.value.payment.status, Payment.STATUS_PENDING)


class WebhookTests(PaymentWorkflowTestBase):
    """
    Provider notifications.

    GUARANTEES:
    - Every notification is acknowledged; nothing raises out of handle_webhook
    - A repeated approval is a no-op
    """

    def setUp(self):
        super().setUp()
        self.payment = self._pay().unwrap().payment
        self.provider.add_payment(
            "mp-1",
            status="approved",
            external_reference=self.payment.external_reference,
            amount="242.00",
        )

    def _notify(self, data_id="mp-1", type_="payment"):
        return self.workflow.handle_webhook(
            {"type": type_, "action": "payment.updated", "data": {"id": data_id}}
        )

    def test_approved_twice_transitions_once(self):
        with mock.patch.object(
            payment_workflow,
            "update_order_status",
            wraps=payment_workflow.update_order_status,
        ) as transition:
            first = self._notify()
            second = self._notify()

        self.assertEqual(first.status, WebhookOutcome.STATUS_PROCESSED)
        self.assertEqual(first.payment_status, Payment.STATUS_APPROVED)
        self.assertEqual(second.status, WebhookOutcome.STATUS_PROCESSED)
        self.assertEqual(transition.call_count, 1)
        self.assertEqual(self._order_status(), "COMPLETED")

    def test_query_string_form(self):
        outcome = self.workflow.handle_webhook({"topic": "payment", "id": "mp-1"})

        self.assertEqual(outcome.status, WebhookOutcome.STATUS_PROCESSED)
        self.assertEqual(outcome.payment_id, self.payment.id)

    def test_other_topics_are_ignored(self):
        outcome = self._notify(type_="merchant_order")

        self.assertEqual(outcome.status, WebhookOutcome.STATUS_IGNORED)
        self.assertEqual(self.provider.payment_calls, [])

    def test_unrecognised_payload_is_ignored(self):
        outcome = self.workflow.handle_webhook({"hello": "world"})

        self.assertEqual(outcome.status, WebhookOutcome.STATUS_IGNORED)
        self.assertTrue(outcome.acknowledged)

    def test_unknown_reference_is_logged_and_acknowledged(self):
        self.provider.add_payment(
            "mp-2", status="approved", external_reference="sale-unknown"
        )

        with self.assertLogs("payments.services.payment_workflow", level="WARNING"):
            outcome = self._notify("mp-2")

        self.assertEqual(outcome.status, WebhookOutcome.STATUS_ERROR)
        self.assertIn("sale-unknown", outcome.detail)

    def test_provider_failure_is_acknowledged(self):
        self.provider.fail_with = ExternalProviderError("Mercado Pago unreachable")

        outcome = self._notify()

        self.assertEqual(outcome.status, WebhookOutcome.STATUS_ERROR)
        self.assertEqual(
            Payment.objects.get(pk=self.payment.id).status, Payment.STATUS_PENDING
        )

    def test_unexpected_error_is_acknowledged(self):
        with mock.patch.object(
            self.workflow, "process_webhook", side_effect=RuntimeError("boom")
        ), self.assertLogs("payments.services.payment_workflow", level="ERROR"):
            outcome = self._notify()

        self.assertEqual(outcome.status, WebhookOutcome.STATUS_ERROR)
        self.assertEqual(outcome.detail, "Internal error")

    def test_approval_for_cancelled_order_keeps_order_cancelled(self):
        update_order_status(
            UpdateOrderStatusInput(order_id=self.order.id, status_code="CANCELLED")
        ).unwrap()

        with self.assertLogs("payments.services.payment_workflow", level="WARNING"):
            outcome = self._notify()

        self.assertEqual(outcome.status, WebhookOutcome.STATUS_PROCESSED)
        self.assertEqual(self._order_status(), "CANCELLED")
        self.assertEqual(
            Payment.objects.get(pk=self.payment.id).status, Payment.STATUS_APPROVED
        )

    def test_process_webhook_requires_data_id(self):
        with self.assertRaises(InvalidStateError):
            self.workflow.process_webhook(WebhookNotification(type="payment"))

    def test_late_rejection_does_not_reopen_approved_payment(self):
        self.provider.add_payment(
            "mp-0",
            status="rejected",
            external_reference=self.payment.external_reference,
            amount="242.00",
        )
        self._notify("mp-1")

        with self.assertLogs("payments.services.payment_workflow", level="ERROR"):
            self._notify("mp-0")
            self._notify("mp-0")

        payment = Payment.objects.get(pk=self.payment.id)
        self.assertEqual(payment.status, Payment.STATUS_APPROVED)
        self.assertEqual(payment.provider_payment_id, "mp-1")
        self.assertEqual(
            payment.metadata["extra_provider_payments"],
            [{"id": "mp-0", "status": "rejected", "transaction_amount": "242.00"}],
        )
        self.assertEqual(self._order_status(), "COMPLETED")

        result = self._pay()

        self.assertIsInstance(result.error, ConflictError)
        self.assertEqual(len(self.provider.preference_calls), 1)

    def test_second_approval_keeps_first_charge(self):
        self.provider.add_payment(
            "mp-2",
            status="approved",
            external_reference=self.payment.external_reference,
            amount="242.00",
        )

        with mock.patch.object(
            payment_workflow,
            "update_order_status",
            wraps=payment_workflow.update_order_status,
        ) as transition:
            self._notify("mp-1")
            with self.assertLogs("payments.services.payment_workflow", level="ERROR"):
                self._notify("mp-2")

        payment = Payment.objects.get(pk=self.payment.id)
        self.assertEqual(payment.provider_payment_id, "mp-1")
        self.assertEqual(payment.status, Payment.STATUS_APPROVED)
        self.assertEqual(
            [p["id"] for p in payment.metadata["extra_provider_payments"]], ["mp-2"]
        )
        self.assertEqual(transition.call_count, 1)

    def test_approved_payment_can_be_refunded(self):
        self._notify("mp-1")
        self.provider.add_payment(
            "mp-1",
            status="refunded",
            external_reference=self.payment.external_reference,
            amount="242.00",
        )

        outcome = self._notify("mp-1")

        self.assertEqual(outcome.payment_status, Payment.STATUS_REFUNDED)
        self.assertEqual(
            Payment.objects.get(pk=self.payment.id).status, Payment.STATUS_REFUNDED
        )

    def test_approved_payment_does_not_fall_back_to_pending(self):
        self._notify("mp-1")
        self.provider.add_payment(
            "mp-1",
            status="in_process",
            external_reference=self.payment.external_reference,
            amount="242.00",
        )

        with self.assertLogs("payments.services.payment_workflow", level="WARNING"):
            self._notify("mp-1")

        self.assertEqual(
            Payment.objects.get(pk=self.payment.id).status, Payment.STATUS_APPROVED
        )

    def test_every_delivery_is_logged(self):
        self._notify()
        self._notify()
        self.workflow.handle_webhook({"hello": "world"})

        self.assertEqual(WebhookLog.objects.count(), 3)
        delivered = WebhookLog.objects.filter(data_id="mp-1")
        self.assertEqual(delivered.count(), 2)
        for log in delivered:
            self.assertEqual(log.event_type, "payment")
            self.assertEqual(log.data_id, "mp-1")
            self.assertTrue(log.processed)
            self.assertEqual(log.outcome, WebhookLog.OUTCOME_PROCESSED)
            self.assertEqual(log.payment_id, self.payment.id)

        ignored = WebhookLog.objects.get(outcome=WebhookLog.OUTCOME_IGNORED)
        self.assertFalse(ignored.processed)
        self.assertEqual(ignored.body, {"hello": "world"})
        self.assertIsNone(ignored.payment_id)

    def test_failed_delivery_is_logged_with_its_error(self):
        self.provider.fail_with = ExternalProviderError("Mercado Pago unreachable")

        self._notify()

        log = WebhookLog.objects.get()
        self.assertEqual(log.outcome, WebhookLog.OUTCOME_ERROR)
        self.assertEqual(log.detail, "Mercado Pago unreachable")
