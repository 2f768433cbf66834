# orders/tests/test_lifecycle.py

from decimal import Decimal
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.db import OperationalError
from django.test import TestCase, TransactionTestCase

from commerce.errors import InvalidStateError, NotFoundError
from customers.models import Customer
from orders.models import OrderStatus
from orders.services import create_order, update_order_status
from orders.services import order_lifecycle
from orders.services.inputs import (
    CreateOrderInput,
    OrderLineInput,
    UpdateOrderStatusInput,
)
from orders.services.order_lifecycle import ensure_default_statuses
from products.models import Product, StockMovement


def _make_order(customer, *lines):
    return create_order(
        CreateOrderInput(
            customer_id=customer.id,
            items=tuple(OrderLineInput(product_id=p.id, quantity=q) for p, q in lines),
        )
    ).unwrap()


class OrderStatusTransitionTests(TestCase):
    """
    Order Status State Machine.

    GUARANTEES:
    - Only configured edges are allowed; CANCELLED is terminal
    - Cancelling PENDING / PREPARING / COMPLETED orders returns stock
    - Re-applying the current status has no side effects
    """

    def setUp(self):
        ensure_default_statuses()

        self.customer = Customer.objects.create(name="Luis", email="luis@example.com")
        self.p1 = Product.objects.create(
            sku="T1", name="Mate", price=Decimal("10.00"), stock=10
        )
        self.p2 = Product.objects.create(
            sku="T2", name="Bombilla", price=Decimal("20.00"), stock=10
        )
        self.order = _make_order(self.customer, (self.p1, 2), (self.p2, 3))

    def _move(self, code, notes=None):
        return update_order_status(
            UpdateOrderStatusInput(order_id=self.order.id, status_code=code, notes=notes)
        )

    def _stock(self):
        self.p1.refresh_from_db()
        self.p2.refresh_from_db()
        return self.p1.stock, self.p2.stock

    # =====================================================
    # DEFAULT GRAPH
    # =====================================================

    def test_default_graph_is_seeded_once(self):
        ensure_default_statuses()

        self.assertEqual(OrderStatus.objects.count(), 4)
        pending = OrderStatus.objects.get(code=OrderStatus.CODE_PENDING)
        self.assertTrue(pending.is_default)
        self.assertEqual(
            set(pending.can_transition_to.values_list("code", flat=True)),
            {"PREPARING", "COMPLETED", "CANCELLED"},
        )
        self.assertTrue(OrderStatus.objects.get(code="CANCELLED").is_terminal)

    def test_seed_command(self):
        out = StringIO()
        call_command("seed_order_statuses", stdout=out)

        self.assertIn("PENDING (default)", out.getvalue())
        self.assertEqual(OrderStatus.objects.count(), 4)

    # =====================================================
    # TRANSITIONS
    # =====================================================

    def test_pending_to_completed(self):
        result = self._move("completed", notes="Paid at counter")

        self.assertTrue(result.ok, result.error)
        self.assertEqual(result.value.status.code, "COMPLETED")
        self.assertEqual(result.value.notes, "Paid at counter")
        self.assertEqual(self._stock(), (8, 7))

    def test_cancel_pending_restores_stock(self):
        self.assertEqual(self._stock(), (8, 7))

        result = self._move("CANCELLED")

        self.assertTrue(result.ok, result.error)
        self.assertEqual(self._stock(), (10, 10))
        self.assertEqual(
            StockMovement.objects.filter(reason=StockMovement.Reason.CANCELLATION).count(),
            2,
        )

    def test_cancel_completed_restores_stock(self):
        self._move("COMPLETED").unwrap()

        self._move("CANCELLED").unwrap()

        self.assertEqual(self._stock(), (10, 10))

    def test_cancel_preparing_restores_stock(self):
        self._move("PREPARING").unwrap()

        self._move("CANCELLED").unwrap()

        self.assertEqual(self._stock(), (10, 10))

    def test_cancelled_is_terminal(self):
        self._move("CANCELLED").unwrap()

        result = self._move("PENDING")

        self.assertIsInstance(result.error, InvalidStateError)
        self.assertIn("terminal", result.error.message)
        self.assertEqual(self._stock(), (10, 10))

    def test_edge_not_configured(self):
        self._move("COMPLETED").unwrap()

        result = self._move("PREPARING")

        self.assertIsInstance(result.error, InvalidStateError)
        self.assertIn("cannot transition", result.error.message)

    def test_same_status_is_a_no_op(self):
        self._move("CANCELLED").unwrap()
        movements = StockMovement.objects.count()

        result = self._move("CANCELLED", notes="customer called twice")

        self.assertTrue(result.ok, result.error)
        self.assertEqual(result.value.notes, "customer called twice")
        self.assertEqual(StockMovement.objects.count(), movements)
        self.assertEqual(self._stock(), (10, 10))

    def test_inactive_target_rejected(self):
        OrderStatus.objects.filter(code="PREPARING").update(is_active=False)

        result = self._move("PREPARING")

        self.assertIsInstance(result.error, InvalidStateError)

    def test_unknown_status(self):
        result = self._move("SHIPPED")

        self.assertIsInstance(result.error, NotFoundError)

    def test_missing_order(self):
        result = update_order_status(
            UpdateOrderStatusInput(
                order_id="00000000-0000-0000-0000-000000000000",
                status_code="CANCELLED",
            )
        )

        self.assertIsInstance(result.error, NotFoundError)

    def test_cancel_tolerates_deleted_product(self):
        self.p2.delete()

        result = self._move("CANCELLED")

        self.assertTrue(result.ok, result.error)
        self.p1.refresh_from_db()
        self.assertEqual(self.p1.stock, 10)

    def test_release_failure_rolls_back_transition(self):
        with mock.patch.object(
            order_lifecycle, "release", side_effect=RuntimeError("boom")
        ):
            with self.assertRaises(RuntimeError):
                self._move("CANCELLED")

        self.assertEqual(
            OrderStatus.objects.get(orders__id=self.order.id).code, "PENDING"
        )
        self.assertEqual(self._stock(), (8, 7))


class OrderStatusRetryTests(TransactionTestCase):
    """
    Database conflicts are retried outside any outer transaction.
    """

    def setUp(self):
        ensure_default_statuses()
        customer = Customer.objects.create(name="Eva", email="eva@example.com")
        product = Product.objects.create(
            sku="R1", name="Dulce", price=Decimal("5.00"), stock=3
        )
        self.order = _make_order(customer, (product, 1))

    def test_operational_error_is_retried(self):
        real = order_lifecycle._apply_status_change
        calls = []

        def flaky(data):
            calls.append(data)
            if len(calls) == 1:
                raise OperationalError("database is locked")
            return real(data)

        with mock.patch.object(order_lifecycle, "_apply_status_change", flaky), \
                mock.patch.object(order_lifecycle.time, "sleep") as sleep:
            result = update_order_status(
                UpdateOrderStatusInput(order_id=self.order.id, status_code="COMPLETED")
            )

        self.assertTrue(result.ok, result.error)
        self.assertEqual(len(calls), 2)
        sleep.assert_called_once()

    def test_gives_up_after_configured_attempts(self):
        with mock.patch.object(
            order_lifecycle,
            "_apply_status_change",
            side_effect=OperationalError("could not serialize access"),
        ) as apply, mock.patch.object(order_lifecycle.time, "sleep"):
            with self.settings(ORDER_STATUS_UPDATE_RETRIES=3):
                with self.assertRaises(OperationalError):
                    update_order_status(
                        UpdateOrderStatusInput(
                            order_id=self.order.id, status_code="COMPLETED"
                        )
                    )

        self.assertEqual(apply.call_count, 3)
