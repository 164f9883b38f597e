from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from pos.models import Cart, StockReservation
from pos.services import cart_manager, session_handler
from pos.services.exceptions import (
    EmptyCart,
    InsufficientPayment,
    InsufficientStock,
    ProductNotPurchasable,
    StaleCartVersion,
)
from products.models import Coupon, Product, StockMovement
from sales.models import Sale, SaleItem
from sales.services.checkout_orchestrator import checkout_cart
from taxes.models import TaxRate

User = get_user_model()


class CheckoutTests(TestCase):
    """
    Checkout of a terminal cart.

    GUARANTEES:
    - On-hand stock is decremented with one SALE movement per line
    - The cart's reservations are released and the cart starts over
      under a new order_key
    - Money is computed server-side from live prices
    - Any failure leaves stock, cart and coupons untouched
    """

    def setUp(self):
        cache.clear()

        self.user = User.objects.create_user(
            email="cashier@example.com",
            password="pass",
            role="cashier",
        )

        self.product = Product.objects.create(
            sku="SKU-100",
            name="Notebook",
            price=Decimal("50.00"),
            stock_quantity=10,
        )
        self.service = Product.objects.create(
            sku="SVC-1",
            name="Gift wrap",
            price=Decimal("2.50"),
            manage_stock=False,
        )
        self.coupon = Coupon.objects.create(code="SAVE10", amount=Decimal("10.00"))
        TaxRate.objects.create(label="VAT", rate=Decimal("7.5000"))

        self.session = session_handler.create_session(terminal_id="till-01", user=self.user)
        cart_manager.add_to_cart(session=self.session, product_id=self.product.id, quantity=2)
        cart_manager.add_to_cart(session=self.session, product_id=self.service.id, quantity=1)
        self.order_key = Cart.objects.get(session=self.session).order_key

    def test_checkout_records_sale_and_moves_stock(self):
        cart_manager.apply_coupon(session=self.session, code="SAVE10")

        sale = checkout_cart(user=self.user, session=self.session, amount_tendered="200.00")

        # 102.50 - 10.25 discount = 92.25; 7.5% tax per line (6.75 + 0.17)
        self.assertEqual(sale.subtotal_amount, Decimal("102.50"))
        self.assertEqual(sale.discount_amount, Decimal("10.25"))
        self.assertEqual(sale.tax_amount, Decimal("6.92"))
        self.assertEqual(sale.total_amount, Decimal("99.17"))
        self.assertEqual(sale.change_due, Decimal("100.83"))
        self.assertEqual(sale.order_key, self.order_key)
        self.assertTrue(sale.invoice_no.startswith("POS-"))
        self.assertEqual(sale.items.count(), 2)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 8)

        movement = StockMovement.objects.get(sale=sale)
        self.assertEqual(movement.reason, StockMovement.Reason.SALE)
        self.assertEqual(movement.quantity, 2)

        self.coupon.refresh_from_db()
        self.assertEqual(self.coupon.usage_count, 1)

    def test_checkout_resets_cart_under_new_order_key(self):
        checkout_cart(user=self.user, session=self.session)

        cart = Cart.objects.get(session=self.session)
        self.assertNotEqual(cart.order_key, self.order_key)
        self.assertTrue(cart.is_empty)
        self.assertFalse(StockReservation.objects.filter(order_key=self.order_key).exists())

        with self.assertRaises(EmptyCart):
            checkout_cart(user=self.user, session=self.session)

    def test_card_payment_is_charged_exactly(self):
        sale = checkout_cart(user=self.user, session=self.session, payment_method="card")

        self.assertEqual(sale.amount_tendered, sale.total_amount)
        self.assertEqual(sale.change_due, Decimal("0.00"))

    def test_insufficient_payment_rolls_back(self):
        with self.assertRaises(InsufficientPayment):
            checkout_cart(user=self.user, session=self.session, amount_tendered="1.00")

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 10)
        self.assertFalse(Sale.objects.exists())
        self.assertTrue(StockReservation.objects.filter(order_key=self.order_key).exists())

    def test_stock_that_vanished_blocks_checkout(self):
        Product.objects.filter(pk=self.product.pk).update(stock_quantity=1)

        with self.assertRaises(InsufficientStock):
            checkout_cart(user=self.user, session=self.session)
        self.assertFalse(Sale.objects.exists())

    def test_deactivated_product_blocks_checkout(self):
        Product.objects.filter(pk=self.service.pk).update(is_purchasable=False)

        with self.assertRaises(ProductNotPurchasable):
            checkout_cart(user=self.user, session=self.session)

    def test_stale_version(self):
        with self.assertRaises(StaleCartVersion):
            checkout_cart(user=self.user, session=self.session, expected_version=1)


class SaleImmutabilityTests(TestCase):
    def setUp(self):
        cache.clear()
        self.user = User.objects.create_user(email="cashier@example.com", password="pass", role="cashier")
        self.product = Product.objects.create(sku="SKU-1", name="Pen", price=Decimal("5.00"), stock_quantity=5)
        session = session_handler.create_session(terminal_id="till-02", user=self.user)
        cart_manager.add_to_cart(session=session, product_id=self.product.id)
        self.sale = checkout_cart(user=self.user, session=session)

    def test_completed_totals_cannot_change(self):
        self.sale.total_amount = Decimal("1.00")
        with self.assertRaises(ValueError):
            self.sale.save()

    def test_void_is_allowed(self):
        self.sale.status = Sale.STATUS_VOIDED
        self.sale.save()
        self.assertEqual(Sale.objects.get(pk=self.sale.pk).status, Sale.STATUS_VOIDED)

    def test_sale_items_are_immutable(self):
        item = self.sale.items.first()
        item.quantity = 3
        with self.assertRaises(ValueError):
            item.save()
        with self.assertRaises(ValueError):
            item.delete()
        self.assertEqual(SaleItem.objects.filter(sale=self.sale).count(), 1)


class SaleAPITests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.cashier = User.objects.create_user(email="cashier@example.com", password="pass", role="cashier")
        self.product = Product.objects.create(sku="SKU-1", name="Pen", price=Decimal("5.00"), stock_quantity=5)

        session = session_handler.create_session(terminal_id="till-03", user=self.cashier)
        cart_manager.add_to_cart(session=session, product_id=self.product.id, quantity=2)
        self.sale = checkout_cart(user=self.cashier, session=session, payment_method="transfer")

    def test_list_filters_by_terminal(self):
        self.client.force_authenticate(user=self.cashier)

        res = self.client.get(reverse("sales:sales-list"), {"terminal_id": "till-03"})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["count"], 1)

        res = self.client.get(reverse("sales:sales-list"), {"terminal_id": "elsewhere"})
        self.assertEqual(res.data["count"], 0)

    def test_receipt(self):
        self.client.force_authenticate(user=self.cashier)

        res = self.client.get(reverse("sales:sales-receipt", args=[self.sale.pk]))

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["invoice_no"], self.sale.invoice_no)

    def test_customers_cannot_read_sales(self):
        customer = User.objects.create_user(email="c@example.com", role="customer")
        self.client.force_authenticate(user=customer)

        res = self.client.get(reverse("sales:sales-list"))
        self.assertEqual(res.status_code, 403)
