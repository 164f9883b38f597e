# products/tests/test_inventory.py

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase

from products.models import Product, StockMovement
from products.services import adjust_stock, deduct_for_sale, receive_stock
from products.services.exceptions import InsufficientOnHand
from sales.models import Sale

User = get_user_model()


class InventoryServiceTests(TestCase):
    """
    GUARANTEES:
    - every on-hand change writes a StockMovement with the resulting level
    - on-hand can never go below zero
    """

    def setUp(self):
        self.user = User.objects.create_user(email="manager@example.com", password="pass", role="manager")
        self.product = Product.objects.create(name="Oat milk", sku="OAT-1L", price=Decimal("2.40"))

    def test_receive_stock_increments_on_hand(self):
        movement = receive_stock(product=self.product, quantity=12, user=self.user)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 12)
        self.assertEqual(movement.reason, StockMovement.Reason.RECEIPT)
        self.assertEqual(movement.stock_after, 12)

    def test_receive_rejects_non_positive_quantity(self):
        with self.assertRaises(ValidationError):
            receive_stock(product=self.product, quantity=0)

    def test_negative_adjustment_cannot_go_below_zero(self):
        receive_stock(product=self.product, quantity=3)

        with self.assertRaises(ValidationError):
            adjust_stock(product=self.product, delta=-4, user=self.user)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 3)

    def test_adjustment_in_both_directions(self):
        receive_stock(product=self.product, quantity=5)

        adjust_stock(product=self.product, delta=-2, user=self.user, note="breakage")
        adjust_stock(product=self.product, delta=1, user=self.user, note="found")

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 4)
        self.assertEqual(
            StockMovement.objects.filter(reason=StockMovement.Reason.ADJUSTMENT).count(), 2
        )

    def test_deduct_for_sale_is_conditional(self):
        receive_stock(product=self.product, quantity=2)
        sale = Sale.objects.create(terminal_id="till-01", order_key="pos_test_1", total_amount="4.80")

        deduct_for_sale(product=self.product, quantity=2, sale=sale, user=self.user)

        with self.assertRaises(InsufficientOnHand) as ctx:
            deduct_for_sale(product=self.product, quantity=1, sale=sale, user=self.user)

        self.assertEqual(ctx.exception.available, 0)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 0)
        self.assertEqual(sale.stock_movements.count(), 1)
