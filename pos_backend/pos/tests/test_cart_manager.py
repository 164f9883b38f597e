# pos/tests/test_cart_manager.py

from datetime import timedelta
from decimal import Decimal

from django.db.models import Sum
from django.test import TestCase, override_settings
from django.utils import timezone

from pos.models import Cart, CartItem, StockReservation
from pos.services import cart_manager, session_handler
from pos.services.exceptions import (
    CouponAlreadyApplied,
    CouponInvalid,
    CouponNotApplied,
    InsufficientStock,
    ItemNotFound,
    ProductNotFound,
    SessionInvalid,
    StaleCartVersion,
    ValidationFailed,
)
from pos.services.reservations import reservations_for, reserve_stock
from products.models import Coupon, Product
from taxes.models import TaxRate

from .base import POSFixturesMixin


class AddToCartTests(POSFixturesMixin, TestCase):
    def test_same_configuration_merges_into_one_line(self):
        first = cart_manager.add_to_cart(session=self.session, product_id=self.product_a.id, quantity=2)
        second = cart_manager.add_to_cart(session=self.session, product_id=str(self.product_a.id), quantity=2)

        self.assertEqual(first.item_key, second.item_key)
        self.assertEqual(CartItem.objects.filter(cart__session=self.session).count(), 1)
        self.assertEqual(second.quantity, 4)

    def test_stock_ceiling_leaves_cart_untouched(self):
        cart_manager.add_to_cart(session=self.session, product_id=self.product_a.id, quantity=2)
        cart_manager.add_to_cart(session=self.session, product_id=self.product_a.id, quantity=2)
        version = cart_manager.get_cart_contents(session=self.session, with_totals=False)["version"]

        with self.assertRaises(InsufficientStock) as ctx:
            cart_manager.add_to_cart(session=self.session, product_id=self.product_a.id, quantity=2)

        self.assertEqual(ctx.exception.details["available"], 5)
        self.assertEqual(ctx.exception.details["requested"], 6)

        contents = cart_manager.get_cart_contents(session=self.session, with_totals=False)
        self.assertEqual(contents["item_count"], 4)
        self.assertEqual(contents["version"], version)
        self.assertEqual(reservations_for(contents["order_key"]), {self.product_a.id: 4})

    def test_other_terminal_sees_reduced_availability(self):
        cart_manager.add_to_cart(session=self.session, product_id=self.product_a.id, quantity=4)
        other = session_handler.create_session(terminal_id="T2", user=self.cashier)

        with self.assertRaises(InsufficientStock) as ctx:
            cart_manager.add_to_cart(session=other, product_id=self.product_a.id, quantity=2)
        self.assertEqual(ctx.exception.details["available"], 1)

        cart_manager.add_to_cart(session=other, product_id=self.product_a.id, quantity=1)

    def test_unmanaged_product_has_no_ceiling(self):
        cart_manager.add_to_cart(session=self.session, product_id=self.product_b.id, quantity=500)
        self.assertFalse(StockReservation.objects.exists())

    def test_distinct_item_data_makes_distinct_lines(self):
        a = cart_manager.add_to_cart(
            session=self.session, product_id=self.product_b.id, item_data={"engraving": "AB"}
        )
        b = cart_manager.add_to_cart(
            session=self.session, product_id=self.product_b.id, item_data={"engraving": "CD"}
        )
        self.assertNotEqual(a.item_key, b.item_key)
        self.assertEqual([a.position, b.position], [0, 1])

    def test_variation_lines_hold_variation_stock(self):
        variation = Product.objects.create(
            parent=self.product_a,
            name="Product A / Large",
            sku="PROD-A-L",
            price=Decimal("55.00"),
            stock_quantity=2,
            attributes={"size": "L"},
        )
        cart_manager.add_to_cart(
            session=self.session,
            product_id=self.product_a.id,
            variation_id=variation.id,
            variation_data={"size": "L"},
            quantity=2,
        )
        order_key = self.session.cart.order_key
        self.assertEqual(reservations_for(order_key), {variation.id: 2})

        with self.assertRaises(InsufficientStock):
            cart_manager.add_to_cart(session=self.session, product_id=self.product_a.id, variation_id=variation.id)

    def test_rejects_bad_input(self):
        with self.assertRaises(ValidationFailed):
            cart_manager.add_to_cart(session=self.session, product_id=self.product_a.id, quantity=0)
        with self.assertRaises(ValidationFailed):
            cart_manager.add_to_cart(session=self.session, product_id=self.product_a.id, quantity="1.5")
        with self.assertRaises(ValidationFailed):
            cart_manager.add_to_cart(session=self.session, product_id="abc")
        with self.assertRaises(ProductNotFound):
            cart_manager.add_to_cart(session=self.session, product_id="00000000-0000-4000-8000-000000000000")

    def test_stale_version_is_rejected_before_writing(self):
        cart_manager.add_to_cart(session=self.session, product_id=self.product_b.id)

        with self.assertRaises(StaleCartVersion):
            cart_manager.add_to_cart(session=self.session, product_id=self.product_a.id, expected_version=1)

        self.assertFalse(StockReservation.objects.exists())
        self.assertEqual(self.session.cart.items.count(), 1)


class UpdateAndRemoveTests(POSFixturesMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.item = cart_manager.add_to_cart(session=self.session, product_id=self.product_a.id, quantity=3)
        self.order_key = self.session.cart.order_key

    def test_decrease_resizes_hold(self):
        cart_manager.update_cart_item_quantity(session=self.session, item_key=self.item.item_key, quantity=1)
        self.assertEqual(reservations_for(self.order_key), {self.product_a.id: 1})

    def test_increase_is_checked(self):
        cart_manager.update_cart_item_quantity(session=self.session, item_key=self.item.item_key, quantity=5)
        with self.assertRaises(InsufficientStock):
            cart_manager.update_cart_item_quantity(session=self.session, item_key=self.item.item_key, quantity=6)

        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 5)

    def test_decrease_after_hold_expired_is_rechecked(self):
        cart_manager.update_cart_item_quantity(session=self.session, item_key=self.item.item_key, quantity=5)
        StockReservation.objects.filter(order_key=self.order_key).update(
            expires_at=timezone.now() - timedelta(seconds=1)
        )
        reserve_stock(product_id=self.product_a.id, quantity=5, order_key="pos_other_terminal")

        with self.assertRaises(InsufficientStock) as ctx:
            cart_manager.update_cart_item_quantity(session=self.session, item_key=self.item.item_key, quantity=4)
        self.assertEqual(ctx.exception.details["available"], 0)

        held = StockReservation.objects.active().filter(product=self.product_a).aggregate(
            total=Sum("quantity")
        )["total"]
        self.assertLessEqual(held, 5)

        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 5)

    def test_decrease_after_hold_expired_reacquires_when_stock_is_free(self):
        StockReservation.objects.filter(order_key=self.order_key).update(
            expires_at=timezone.now() - timedelta(seconds=1)
        )

        cart_manager.update_cart_item_quantity(session=self.session, item_key=self.item.item_key, quantity=2)

        self.assertEqual(reservations_for(self.order_key), {self.product_a.id: 2})

    def test_mutation_on_destroyed_session_is_session_invalid(self):
        stale = self.fresh_session()
        session_handler.destroy_session(terminal_id=self.terminal_id)

        self.assertFalse(Cart.objects.filter(session_id=stale.pk).exists())
        with self.assertRaises(SessionInvalid):
            cart_manager.update_cart_item_quantity(session=stale, item_key=self.item.item_key, quantity=1)
        with self.assertRaises(SessionInvalid):
            cart_manager.get_cart_summary(session=stale)

    def test_zero_quantity_removes_line(self):
        result = cart_manager.update_cart_item_quantity(
            session=self.session, item_key=self.item.item_key, quantity=0
        )
        self.assertIsNone(result)
        self.assertEqual(reservations_for(self.order_key), {})

    def test_remove_then_remove_again(self):
        cart_manager.remove_cart_item(session=self.session, item_key=self.item.item_key)
        self.assertEqual(reservations_for(self.order_key), {})

        with self.assertRaises(ItemNotFound):
            cart_manager.remove_cart_item(session=self.session, item_key=self.item.item_key)

    def test_add_then_remove_restores_previous_state(self):
        before = cart_manager.cart_hash(self.session)

        extra = cart_manager.add_to_cart(session=self.session, product_id=self.product_b.id)
        cart_manager.remove_cart_item(session=self.session, item_key=extra.item_key)

        self.assertEqual(cart_manager.cart_hash(self.session), before)

    def test_clear_releases_everything(self):
        cart_manager.add_to_cart(session=self.session, product_id=self.product_b.id)
        cart_manager.apply_coupon(session=self.session, code="save10")

        removed = cart_manager.clear_cart(session=self.session)

        self.assertEqual(removed, 2)
        self.assertEqual(reservations_for(self.order_key), {})
        contents = cart_manager.get_cart_contents(session=self.session, with_totals=False)
        self.assertTrue(contents["is_empty"])
        self.assertEqual(contents["applied_coupons"], [])

    def test_every_mutation_bumps_version(self):
        start = cart_manager.get_cart_contents(session=self.session, with_totals=False)["version"]
        cart_manager.update_cart_item_quantity(session=self.session, item_key=self.item.item_key, quantity=2)
        cart_manager.apply_coupon(session=self.session, code="SAVE10")
        cart_manager.remove_coupon(session=self.session, code="SAVE10")

        end = cart_manager.get_cart_contents(session=self.session, with_totals=False)["version"]
        self.assertEqual(end, start + 3)


class BatchAddTests(POSFixturesMixin, TestCase):
    def test_partial_failure_keeps_successes(self):
        result = cart_manager.batch_add_to_cart(
            session=self.session,
            items=[
                {"product_id": str(self.product_a.id), "quantity": 2},
                {"product_id": "00000000-0000-4000-8000-000000000000"},
                {"product_id": str(self.product_a.id), "quantity": 10},
                {"product_id": str(self.product_b.id), "quantity": 1},
            ],
        )

        self.assertEqual(result["total_items"], 4)
        self.assertEqual(result["success_count"], 2)
        self.assertEqual(result["error_count"], 2)
        self.assertEqual(result["cart_count"], 3)
        self.assertEqual(result["results"][1]["error"]["code"], "product_not_found")
        self.assertEqual(result["results"][2]["error"]["code"], "insufficient_stock")

    @override_settings(POS_BATCH_MAX_ITEMS=2)
    def test_batch_size_limit(self):
        with self.assertRaises(ValidationFailed):
            cart_manager.batch_add_to_cart(
                session=self.session,
                items=[{"product_id": str(self.product_b.id)}] * 3,
            )

    def test_stale_version_rejects_whole_batch(self):
        with self.assertRaises(StaleCartVersion):
            cart_manager.batch_add_to_cart(
                session=self.session,
                items=[{"product_id": str(self.product_b.id)}],
                expected_version=42,
            )
        self.assertEqual(self.session.cart.items.count(), 0)


class CouponTests(POSFixturesMixin, TestCase):
    def setUp(self):
        super().setUp()
        cart_manager.add_to_cart(session=self.session, product_id=self.product_a.id, quantity=2)

    def test_unknown_and_duplicate_codes(self):
        with self.assertRaises(CouponInvalid) as ctx:
            cart_manager.apply_coupon(session=self.session, code="NOPE")
        self.assertEqual(ctx.exception.details["reason"], "not_found")

        cart_manager.apply_coupon(session=self.session, code="SAVE10")
        with self.assertRaises(CouponAlreadyApplied):
            cart_manager.apply_coupon(session=self.session, code="save10")

        with self.assertRaises(CouponNotApplied):
            cart_manager.remove_coupon(session=self.session, code="FIVEOFF")

    def test_minimum_spend(self):
        Coupon.objects.create(code="BIGSPEND", amount=Decimal("5.00"), minimum_spend=Decimal("500.00"))
        with self.assertRaises(CouponInvalid) as ctx:
            cart_manager.apply_coupon(session=self.session, code="BIGSPEND")
        self.assertEqual(ctx.exception.details["reason"], "minimum_spend_not_met")

    def test_coupon_that_stops_being_valid_is_skipped(self):
        cart_manager.apply_coupon(session=self.session, code="SAVE10")
        Coupon.objects.filter(pk=self.save10.pk).update(is_active=False)

        totals = cart_manager.calculate_totals(session=self.session, use_cache=False)

        self.assertEqual(totals.discount_total, Decimal("0.00"))
        self.assertEqual(totals.coupon_errors[0]["reason"], "inactive")


class TotalsTests(POSFixturesMixin, TestCase):
    def setUp(self):
        super().setUp()
        TaxRate.objects.create(label="VAT", rate=Decimal("10.0000"))

    def assertTotalIdentity(self, totals):
        self.assertEqual(totals.subtotal - totals.discount_total + totals.total_tax, totals.total)

    def test_percent_coupon_then_tax_on_discounted_amount(self):
        cart_manager.add_to_cart(session=self.session, product_id=self.product_a.id, quantity=2)
        cart_manager.apply_coupon(session=self.session, code="SAVE10")

        totals = cart_manager.calculate_totals(session=self.session)

        self.assertEqual(totals.subtotal, Decimal("100.00"))
        self.assertEqual(totals.discount_total, Decimal("10.00"))
        self.assertEqual(totals.total_tax, Decimal("9.00"))
        self.assertEqual(totals.total, Decimal("99.00"))
        self.assertEqual(totals.tax_lines[0].label, "VAT")
        self.assertTotalIdentity(totals)

    def test_fixed_coupon_is_spread_across_lines(self):
        cart_manager.add_to_cart(session=self.session, product_id=self.product_a.id)
        cart_manager.add_to_cart(session=self.session, product_id=self.product_b.id)
        cart_manager.apply_coupon(session=self.session, code="FIVEOFF")

        totals = cart_manager.calculate_totals(session=self.session)

        self.assertEqual([line.line_discount for line in totals.lines], [Decimal("3.33"), Decimal("1.67")])
        self.assertEqual(totals.discount_total, Decimal("5.00"))
        self.assertTotalIdentity(totals)

    def test_totals_are_idempotent(self):
        cart_manager.add_to_cart(session=self.session, product_id=self.product_a.id, quantity=3)
        cart_manager.add_to_cart(session=self.session, product_id=self.product_b.id, quantity=1)

        first = cart_manager.calculate_totals(session=self.session).to_dict()
        second = cart_manager.calculate_totals(session=self.session).to_dict()
        uncached = cart_manager.calculate_totals(session=self.session, use_cache=False).to_dict()

        self.assertEqual(first, second)
        self.assertEqual(first, uncached)

    def test_totals_read_live_prices(self):
        cart_manager.add_to_cart(session=self.session, product_id=self.product_a.id)
        self.product_a.price = Decimal("40.00")
        self.product_a.save()

        totals = cart_manager.calculate_totals(session=self.session)
        self.assertEqual(totals.subtotal, Decimal("40.00"))

    @override_settings(TAX_PRICES_INCLUDE_TAX=True)
    def test_inclusive_prices_keep_total_at_shelf_price(self):
        cart_manager.add_to_cart(session=self.session, product_id=self.product_a.id, quantity=2)

        totals = cart_manager.calculate_totals(session=self.session)

        self.assertTrue(totals.prices_include_tax)
        self.assertEqual(totals.total, Decimal("100.00"))
        self.assertEqual(totals.total_tax, Decimal("9.09"))
        self.assertTotalIdentity(totals)

    def test_contents_carry_line_totals(self):
        cart_manager.add_to_cart(session=self.session, product_id=self.product_a.id, quantity=2)

        contents = cart_manager.get_cart_contents(session=self.session)

        self.assertEqual(contents["items"][0]["line_subtotal"], "100.00")
        self.assertEqual(contents["items"][0]["line_tax"], "10.00")
        self.assertEqual(contents["totals"]["total"], "110.00")


class SummaryAndStatusTests(POSFixturesMixin, TestCase):
    def test_summary_is_cached_until_something_changes(self):
        cart_manager.add_to_cart(session=self.session, product_id=self.product_a.id, quantity=2)
        summary = cart_manager.get_cart_summary(session=self.session)
        self.assertEqual(summary["total"], "100.00")
        self.assertEqual(summary["count"], 2)

        # Bypasses signals: the cached summary is served
        Product.objects.filter(pk=self.product_a.pk).update(price=Decimal("1.00"))
        self.assertEqual(cart_manager.get_cart_summary(session=self.session)["total"], "100.00")

        # A model save invalidates
        self.product_a.refresh_from_db()
        self.product_a.save()
        self.assertEqual(cart_manager.get_cart_summary(session=self.session)["total"], "2.00")

        # So does a cart mutation
        cart_manager.add_to_cart(session=self.session, product_id=self.product_b.id)
        self.assertEqual(cart_manager.get_cart_summary(session=self.session)["count"], 3)

    def test_status_reports_stock_drop_and_conflicts(self):
        cart_manager.add_to_cart(session=self.session, product_id=self.product_a.id, quantity=4)
        cart_manager.add_to_cart(session=self.session, product_id=self.product_b.id)

        status = cart_manager.check_cart_status(session=self.session)
        self.assertTrue(status["valid"])

        Product.objects.filter(pk=self.product_a.pk).update(stock_quantity=1)
        Product.objects.filter(pk=self.product_b.pk).update(is_active=False)

        status = cart_manager.check_cart_status(session=self.session)

        self.assertFalse(status["valid"])
        self.assertTrue(status["session_valid"])
        self.assertEqual(status["stock_issues"][0]["required"], 4)
        self.assertEqual(status["stock_issues"][0]["available"], 1)
        self.assertEqual(status["conflicts"][0]["reason"], "not_purchasable")
