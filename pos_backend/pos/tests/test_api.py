# pos/tests/test_api.py

from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from pos.models import CartSession, StockReservation

from .base import POSFixturesMixin

User = get_user_model()


class POSAPITestBase(POSFixturesMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.client.force_authenticate(user=self.cashier)

    def add(self, product, quantity=1, **extra):
        return self.client.post(
            reverse("pos:cart-add"),
            {"terminal_id": self.terminal_id, "product_id": str(product.id), "quantity": quantity, **extra},
            format="json",
        )


class CartEndpointTests(POSAPITestBase):
    def test_add_returns_item_key_and_cart(self):
        res = self.add(self.product_a, 2)

        self.assertEqual(res.status_code, 201)
        self.assertTrue(res.data["success"])
        self.assertEqual(len(res.data["data"]["item_key"]), 32)
        self.assertEqual(res.data["data"]["cart"]["item_count"], 2)
        self.assertEqual(res.data["data"]["cart"]["totals"]["total"], "100.00")

    def test_insufficient_stock_envelope(self):
        self.add(self.product_a, 4)
        res = self.add(self.product_a, 2)

        self.assertEqual(res.status_code, 409)
        self.assertFalse(res.data["success"])
        self.assertEqual(res.data["error"]["code"], "insufficient_stock")
        self.assertEqual(res.data["error"]["details"]["available"], 5)

    def test_serializer_errors_use_the_envelope(self):
        res = self.client.post(
            reverse("pos:cart-add"),
            {"terminal_id": self.terminal_id, "quantity": 1},
            format="json",
        )

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["code"], "validation_error")
        self.assertIn("product_id", res.data["error"]["details"]["fields"])

    def test_update_and_remove(self):
        item_key = self.add(self.product_a, 3).data["data"]["item_key"]

        res = self.client.put(
            reverse("pos:cart-update", args=[item_key]),
            {"terminal_id": self.terminal_id, "quantity": 1},
            format="json",
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["data"]["cart"]["item_count"], 1)

        res = self.client.delete(
            reverse("pos:cart-remove", args=[item_key]) + f"?terminal_id={self.terminal_id}"
        )
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["data"]["cart"]["is_empty"])

        res = self.client.delete(
            reverse("pos:cart-remove", args=[item_key]) + f"?terminal_id={self.terminal_id}"
        )
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.data["error"]["code"], "item_not_found")

    def test_clear_requires_confirmation(self):
        self.add(self.product_a, 1)
        url = reverse("pos:cart-clear")

        res = self.client.delete(url, {"terminal_id": self.terminal_id}, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["code"], "confirmation_required")

        res = self.client.delete(url, {"terminal_id": self.terminal_id, "confirm": True}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["data"]["removed"], 1)
        self.assertFalse(StockReservation.objects.exists())

    def test_stale_version_is_a_conflict(self):
        self.add(self.product_b, 1)

        res = self.add(self.product_b, 1, expected_version=1)

        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["error"]["code"], "stale_cart_version")

    def test_coupon_endpoints(self):
        self.add(self.product_a, 2)

        res = self.client.post(
            reverse("pos:cart-apply-discount"),
            {"terminal_id": self.terminal_id, "code": "save10"},
            format="json",
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["data"]["cart"]["totals"]["discount_total"], "10.00")

        res = self.client.post(
            reverse("pos:cart-apply-discount"),
            {"terminal_id": self.terminal_id, "code": "UNKNOWN"},
            format="json",
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["code"], "coupon_invalid")

        res = self.client.delete(
            reverse("pos:cart-remove-discount"),
            {"terminal_id": self.terminal_id, "code": "SAVE10"},
            format="json",
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["data"]["cart"]["applied_coupons"], [])

    def test_batch_add_reports_per_item(self):
        res = self.client.post(
            reverse("pos:cart-batch-add"),
            {
                "terminal_id": self.terminal_id,
                "items": [
                    {"product_id": str(self.product_b.id), "quantity": 2},
                    {"product_id": str(self.product_a.id), "quantity": 99},
                ],
            },
            format="json",
        )

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["data"]["success_count"], 1)
        self.assertEqual(res.data["data"]["results"][1]["error"]["code"], "insufficient_stock")

    def test_summary_totals_and_status(self):
        self.add(self.product_a, 1)
        params = {"terminal_id": self.terminal_id}

        summary = self.client.get(reverse("pos:cart-summary"), params)
        self.assertEqual(summary.data["data"]["total"], "50.00")

        totals = self.client.get(reverse("pos:cart-totals"), params)
        self.assertEqual(totals.data["data"]["subtotal"], "50.00")
        self.assertEqual(len(totals.data["data"]["lines"]), 1)

        status = self.client.get(reverse("pos:cart-status"), params)
        self.assertTrue(status.data["data"]["valid"])

        taxes = self.client.get(reverse("pos:cart-taxes"), params)
        self.assertEqual(taxes.data["data"]["total_tax"], "0.00")


class TerminalResolutionTests(POSAPITestBase):
    def test_header_identifies_terminal(self):
        res = self.client.post(
            reverse("pos:cart-add"),
            {"product_id": str(self.product_b.id)},
            format="json",
            HTTP_X_POS_TERMINAL="T7",
        )

        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["data"]["cart"]["terminal_id"], "T7")

    def test_falls_back_to_latest_session(self):
        res = self.client.get(reverse("pos:cart"))

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["data"]["terminal_id"], self.terminal_id)

    def test_missing_terminal_without_history(self):
        manager = User.objects.create_user(
            email="manager@example.com",
            password="pass",
            role=User.ROLE_MANAGER,
        )
        self.client.force_authenticate(user=manager)

        res = self.client.get(reverse("pos:cart"))

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["code"], "terminal_id_required")


class SessionEndpointTests(POSAPITestBase):
    def test_create_validate_extend_destroy(self):
        res = self.client.post(reverse("pos:session-create"), {"terminal_id": "T3"}, format="json")
        self.assertEqual(res.status_code, 201)
        token = res.data["data"]["session_id"]

        res = self.client.get(reverse("pos:session-validate"), {"terminal_id": "T3", "session_id": token})
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["data"]["is_valid"])

        res = self.client.put(
            reverse("pos:session-extend"),
            {"terminal_id": "T3", "additional_time": 600},
            format="json",
        )
        self.assertEqual(res.status_code, 200)

        res = self.client.delete(reverse("pos:session-destroy"), {"terminal_id": "T3"}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["data"]["destroyed"])

    def test_token_from_other_terminal_is_unauthorized(self):
        res = self.client.get(
            reverse("pos:cart"),
            {"terminal_id": "T2"},
            HTTP_X_POS_SESSION=self.session.session_id,
        )

        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.data["error"]["code"], "terminal_mismatch")

    def test_expired_session_is_unauthorized(self):
        CartSession.objects.filter(pk=self.session.pk).update(
            expires_at=timezone.now() - timedelta(seconds=1)
        )

        res = self.add(self.product_b, 1)

        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.data["error"]["code"], "session_expired")

    def test_customer_and_location(self):
        res = self.client.put(
            reverse("pos:cart-customer"),
            {"terminal_id": self.terminal_id, "customer_id": str(self.customer.id)},
            format="json",
        )
        self.assertEqual(res.status_code, 200)

        res = self.client.put(
            reverse("pos:cart-location"),
            {"terminal_id": self.terminal_id, "country": "ng", "city": "Lagos"},
            format="json",
        )
        self.assertEqual(res.status_code, 200)

        cart = self.client.get(reverse("pos:cart"), {"terminal_id": self.terminal_id})
        self.assertEqual(cart.data["data"]["customer_id"], str(self.customer.id))
        self.assertEqual(cart.data["data"]["customer_location"]["country"], "NG")


class StockEndpointTests(POSAPITestBase):
    def test_reserve_and_release(self):
        res = self.client.post(
            reverse("pos:stock-reserve"),
            {"terminal_id": self.terminal_id, "product_id": str(self.product_a.id), "quantity": 5},
            format="json",
        )
        self.assertEqual(res.status_code, 200)

        res = self.client.post(
            reverse("pos:stock-reserve"),
            {"order_key": "pos_other", "product_id": str(self.product_a.id), "quantity": 1},
            format="json",
        )
        self.assertEqual(res.status_code, 409)

        res = self.client.post(
            reverse("pos:stock-release"),
            {"terminal_id": self.terminal_id},
            format="json",
        )
        self.assertEqual(res.status_code, 200)
        self.assertFalse(StockReservation.objects.exists())

    def test_direct_hold_does_not_overwrite_cart_hold(self):
        self.add(self.product_a, 4)
        cart_key = self.fresh_session().cart.order_key

        res = self.client.post(
            reverse("pos:stock-reserve"),
            {"terminal_id": self.terminal_id, "product_id": str(self.product_a.id), "quantity": 1},
            format="json",
        )
        self.assertEqual(res.status_code, 200)
        self.assertNotEqual(res.data["data"]["order_key"], cart_key)
        self.assertEqual(res.data["data"]["available"], 0)
        self.assertEqual(StockReservation.objects.get(order_key=cart_key).quantity, 4)

        res = self.client.post(
            reverse("pos:stock-reserve"),
            {"order_key": "pos_other", "product_id": str(self.product_a.id), "quantity": 1},
            format="json",
        )
        self.assertEqual(res.status_code, 409)

    def test_explicit_cart_key_is_refused(self):
        self.add(self.product_a, 4)
        cart_key = self.fresh_session().cart.order_key

        res = self.client.post(
            reverse("pos:stock-reserve"),
            {"order_key": cart_key, "product_id": str(self.product_a.id), "quantity": 1},
            format="json",
        )

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["code"], "validation_error")
        self.assertEqual(StockReservation.objects.get(order_key=cart_key).quantity, 4)


class AccessTests(POSAPITestBase):
    def test_anonymous_is_unauthorized(self):
        self.client.force_authenticate(user=None)

        res = self.client.get(reverse("pos:cart"), {"terminal_id": self.terminal_id})

        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.data["error"]["code"], "unauthorized")

    def test_customer_role_is_forbidden(self):
        self.client.force_authenticate(user=self.customer)

        res = self.add(self.product_a, 1)

        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.data["error"]["code"], "forbidden")

    def test_health_reports_capability(self):
        res = self.client.get(reverse("pos:health"))
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["data"]["can_operate"])

        self.client.force_authenticate(user=self.customer)
        res = self.client.get(reverse("pos:health"))
        self.assertFalse(res.data["data"]["can_operate"])


class CheckoutEndpointTests(POSAPITestBase):
    def test_checkout_returns_receipt(self):
        self.add(self.product_a, 2)

        res = self.client.post(
            reverse("pos:cart-checkout"),
            {"terminal_id": self.terminal_id, "payment_method": "cash", "amount_tendered": "150.00"},
            format="json",
        )

        self.assertEqual(res.status_code, 201)
        self.assertEqual(Decimal(res.data["data"]["total_amount"]), Decimal("100.00"))
        self.assertEqual(Decimal(res.data["data"]["change_due"]), Decimal("50.00"))
        self.assertEqual(len(res.data["data"]["items"]), 1)

        self.product_a.refresh_from_db()
        self.assertEqual(self.product_a.stock_quantity, 3)

    def test_checkout_empty_cart(self):
        res = self.client.post(reverse("pos:cart-checkout"), {"terminal_id": self.terminal_id}, format="json")

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["code"], "empty_cart")
