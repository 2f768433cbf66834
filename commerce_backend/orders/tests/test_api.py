# orders/tests/test_api.py

from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.test import APITestCase

from customers.models import Customer
from orders.models import Coupon, Order
from orders.services.order_lifecycle import ensure_default_statuses
from products.models import Product

User = get_user_model()


class OrderApiTests(APITestCase):
    """
    HTTP boundary for orders.

    GUARANTEES:
    - Auth required
    - Core errors map to {"detail", "code"} with the matching status
    - Validation happens before the core is called
    """

    def setUp(self):
        ensure_default_statuses()

        self.user = User.objects.create_user(username="staff", password="pass")
        self.client.force_authenticate(user=self.user)

        self.customer = Customer.objects.create(name="Sol", email="sol@example.com")
        self.product = Product.objects.create(
            sku="API-1",
            name="Queso",
            price=Decimal("100.00"),
            tax_rate=Decimal("21.00"),
            stock=2,
        )

    def _create(self, quantity=2, **extra):
        payload = {
            "customer_id": str(self.customer.id),
            "items": [
                {
                    "product_id": str(self.product.id),
                    "quantity": quantity,
                    "unit_price": "121.00",
                }
            ],
        }
        payload.update(extra)
        return self.client.post("/api/orders/", payload, format="json")

    def test_requires_authentication(self):
        self.client.force_authenticate(user=None)

        res = self.client.get("/api/orders/")

        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_order(self):
        res = self._create(notes="ring the bell")

        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["subtotal"], "242.00")
        self.assertEqual(res.data["tax_amount"], "42.00")
        self.assertEqual(res.data["total"], "242.00")
        self.assertEqual(res.data["status"]["code"], "PENDING")
        self.assertEqual(res.data["notes"], "ring the bell")
        self.assertEqual(len(res.data["lines"]), 1)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 0)

    def test_create_with_coupon(self):
        Coupon.objects.create(
            code="HOLA15",
            discount_type=Coupon.TYPE_PERCENTAGE,
            discount_value=Decimal("15"),
        )

        res = self._create(coupon_code="hola15")

        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["coupon_code"], "HOLA15")
        self.assertEqual(res.data["discount_amount"], "36.30")
        self.assertEqual(res.data["total"], "205.70")

    def test_create_with_unknown_coupon(self):
        res = self._create(coupon_code="NOPE")

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(res.data["code"], "not_found")
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 2)

    def test_create_insufficient_stock(self):
        res = self._create(quantity=3)

        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["code"], "insufficient_stock")
        self.assertIn("available 2, requested 3", res.data["detail"])
        self.assertFalse(Order.objects.exists())

    def test_create_validation_error(self):
        res = self.client.post(
            "/api/orders/",
            {"customer_id": str(self.customer.id), "items": []},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("items", res.data)

    def test_create_unknown_customer(self):
        res = self._create(customer_id="00000000-0000-0000-0000-000000000000")

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(res.data["code"], "not_found")

    def test_list_and_retrieve(self):
        order_id = self._create(quantity=1).data["id"]

        listing = self.client.get("/api/orders/", {"status": "pending"})
        self.assertEqual(listing.status_code, status.HTTP_200_OK)
        self.assertEqual(listing.data["count"], 1)
        self.assertEqual(listing.data["results"][0]["id"], order_id)

        empty = self.client.get("/api/orders/", {"status": "CANCELLED"})
        self.assertEqual(empty.data["count"], 0)

        detail = self.client.get(f"/api/orders/{order_id}/")
        self.assertEqual(detail.status_code, status.HTTP_200_OK)
        self.assertEqual(detail.data["customer"]["email"], "sol@example.com")

    def test_retrieve_missing(self):
        res = self.client.get("/api/orders/00000000-0000-0000-0000-000000000000/")

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_cancel_through_api_restores_stock(self):
        order_id = self._create().data["id"]

        res = self.client.post(
            f"/api/orders/{order_id}/status/",
            {"status": "CANCELLED", "notes": "changed mind"},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["status"]["code"], "CANCELLED")
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 2)

        again = self.client.post(
            f"/api/orders/{order_id}/status/", {"status": "COMPLETED"}, format="json"
        )
        self.assertEqual(again.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(again.data["code"], "invalid_state")

    def test_quote(self):
        res = self.client.post(
            "/api/orders/quote/",
            {
                "items": [{"product_id": str(self.product.id), "quantity": 5}],
                "discount_rate": "10",
            },
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["pricing"]["subtotal"], "605.00")
        self.assertEqual(res.data["pricing"]["discount_amount"], "60.50")
        self.assertEqual(res.data["pricing"]["total"], "544.50")
        self.assertEqual(res.data["discount_before_tax"]["final_price"], "544.50")

        # quoting more than the stock is fine: nothing is reserved
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 2)

    def test_status_list(self):
        res = self.client.get("/api/orders/statuses/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        codes = [row["code"] for row in res.data]
        self.assertEqual(codes, ["PENDING", "PREPARING", "COMPLETED", "CANCELLED"])
        self.assertEqual(res.data[-1]["can_transition_to"], [])


class HealthApiTests(APITestCase):
    def test_health_is_public(self):
        res = self.client.get("/api/health/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data, {"status": "ok", "db": "ok"})

    def test_api_root_lists_modules(self):
        res = self.client.get("/api/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["modules"]["orders"], "/api/orders/")
