# products/tests/test_products.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import IntegrityError
from django.test import TestCase

from products.models import Category, Coupon, Product, StockMovement
from products.services import receive_stock


class ProductModelTests(TestCase):
    """
    Product model tests.

    GUARANTEES:
    - Products can be created safely
    - SKU uniqueness is enforced
    - Pricing is sane
    - Variations follow their parent's availability
    """

    def test_product_creation(self):
        """A valid product should be created successfully."""
        product = Product.objects.create(
            name="Espresso Beans 1kg",
            sku="ESP-1KG",
            price=Decimal("24.90"),
            stock_quantity=10,
        )

        self.assertEqual(product.name, "Espresso Beans 1kg")
        self.assertTrue(product.can_be_sold)
        self.assertTrue(product.is_taxable)
        self.assertFalse(product.is_variation)

    def test_sku_must_be_unique(self):
        """SKU duplication must be rejected."""
        Product.objects.create(name="Mug", sku="MUG-1", price=Decimal("8.00"))

        with self.assertRaises(IntegrityError):
            Product.objects.create(name="Mug Duplicate", sku="MUG-1", price=Decimal("9.00"))

    def test_price_must_be_positive(self):
        product = Product(name="Free thing", sku="FREE-1", price=Decimal("0.00"))

        with self.assertRaises(ValidationError):
            product.full_clean()

    def test_variation_of_inactive_parent_cannot_be_sold(self):
        parent = Product.objects.create(name="T-Shirt", sku="TEE", price=Decimal("15.00"))
        large = Product.objects.create(
            name="T-Shirt L",
            sku="TEE-L",
            price=Decimal("15.00"),
            parent=parent,
            attributes={"size": "L"},
        )
        self.assertTrue(large.is_variation)
        self.assertTrue(large.can_be_sold)

        parent.is_active = False
        parent.save()
        large.refresh_from_db()

        self.assertFalse(large.can_be_sold)

    def test_not_purchasable_product_cannot_be_sold(self):
        product = Product.objects.create(
            name="Display model",
            sku="DISPLAY-1",
            price=Decimal("99.00"),
            is_purchasable=False,
        )
        self.assertFalse(product.can_be_sold)


class CategoryModelTests(TestCase):
    def test_slug_is_generated_from_name(self):
        category = Category.objects.create(name="Hot Drinks")
        self.assertEqual(category.slug, "hot-drinks")


class CouponModelTests(TestCase):
    def test_code_is_stored_lower_case(self):
        coupon = Coupon.objects.create(code="  SAVE10 ", amount=Decimal("10.00"))
        self.assertEqual(coupon.code, "save10")

    def test_percent_coupon_cannot_exceed_100(self):
        coupon = Coupon(code="too-much", amount=Decimal("150.00"))
        with self.assertRaises(ValidationError):
            coupon.full_clean()

    def test_usage_exhausted(self):
        coupon = Coupon.objects.create(
            code="once",
            amount=Decimal("5.00"),
            discount_type=Coupon.DiscountType.FIXED_CART,
            usage_limit=1,
            usage_count=1,
        )
        self.assertTrue(coupon.usage_exhausted)


class StockMovementTests(TestCase):
    def setUp(self):
        self.product = Product.objects.create(name="Filter papers", sku="FLT-100", price=Decimal("3.50"))

    def test_movements_are_immutable(self):
        movement = receive_stock(product=self.product, quantity=5)

        movement.note = "edited"
        with self.assertRaises(ValidationError):
            movement.save()

        with self.assertRaises(ValidationError):
            movement.delete()

        self.assertEqual(StockMovement.objects.count(), 1)
