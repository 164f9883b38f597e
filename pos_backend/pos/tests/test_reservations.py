# pos/tests/test_reservations.py

import threading
from datetime import timedelta
from decimal import Decimal

from django.core.cache import cache
from django.db import connection
from django.test import TestCase, TransactionTestCase
from django.utils import timezone

from pos.models import StockReservation
from pos.services.exceptions import InsufficientStock, ProductNotFound
from pos.services.reservations import (
    available_quantity,
    cleanup_expired_reservations,
    release_stock,
    reservations_for,
    reserve_stock,
    resize_reservation,
)
from products.models import Product


class ReservationLedgerTests(TestCase):
    def setUp(self):
        cache.clear()
        self.product = Product.objects.create(
            name="Widget",
            sku="WID-1",
            price=Decimal("10.00"),
            stock_quantity=5,
        )

    def test_reserve_reduces_availability_for_other_keys_only(self):
        reserve_stock(product_id=self.product.id, quantity=3, order_key="pos_a")

        self.assertEqual(available_quantity(self.product), 2)
        self.assertEqual(available_quantity(self.product, exclude_order_key="pos_a"), 5)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 5)

    def test_reserve_replaces_existing_hold(self):
        reserve_stock(product_id=self.product.id, quantity=2, order_key="pos_a")
        reserve_stock(product_id=self.product.id, quantity=4, order_key="pos_a")

        self.assertEqual(StockReservation.objects.filter(order_key="pos_a").count(), 1)
        self.assertEqual(reservations_for("pos_a"), {self.product.id: 4})

    def test_reserve_beyond_availability_is_refused(self):
        reserve_stock(product_id=self.product.id, quantity=4, order_key="pos_a")

        with self.assertRaises(InsufficientStock) as ctx:
            reserve_stock(product_id=self.product.id, quantity=2, order_key="pos_b")

        self.assertEqual(ctx.exception.details["available"], 1)
        self.assertEqual(ctx.exception.details["requested"], 2)
        self.assertFalse(StockReservation.objects.filter(order_key="pos_b").exists())

    def test_sum_of_holds_never_exceeds_on_hand(self):
        granted = 0
        for i in range(8):
            try:
                reserve_stock(product_id=self.product.id, quantity=1, order_key=f"pos_{i}")
                granted += 1
            except InsufficientStock:
                pass

        self.assertEqual(granted, 5)
        self.assertEqual(available_quantity(self.product), 0)

    def test_expired_holds_count_as_absent(self):
        past = timezone.now() - timedelta(minutes=10)
        reserve_stock(product_id=self.product.id, quantity=5, order_key="pos_old", timeout=60, now=past)

        self.assertEqual(available_quantity(self.product), 5)
        reserve_stock(product_id=self.product.id, quantity=5, order_key="pos_new")

        self.assertEqual(cleanup_expired_reservations(), 1)
        self.assertFalse(StockReservation.objects.filter(order_key="pos_old").exists())

    def test_zero_quantity_releases(self):
        reserve_stock(product_id=self.product.id, quantity=2, order_key="pos_a")
        self.assertIsNone(reserve_stock(product_id=self.product.id, quantity=0, order_key="pos_a"))
        self.assertEqual(reservations_for("pos_a"), {})

    def test_resize_shrinks_without_availability_check(self):
        reserve_stock(product_id=self.product.id, quantity=3, order_key="pos_a")
        Product.objects.filter(pk=self.product.pk).update(stock_quantity=1)

        resize_reservation(product_id=self.product.id, quantity=2, order_key="pos_a")
        self.assertEqual(reservations_for("pos_a"), {self.product.id: 2})

    def test_resize_of_expired_hold_is_checked(self):
        past = timezone.now() - timedelta(seconds=1)
        reserve_stock(product_id=self.product.id, quantity=5, order_key="pos_a")
        StockReservation.objects.filter(order_key="pos_a").update(expires_at=past)
        reserve_stock(product_id=self.product.id, quantity=5, order_key="pos_b")

        with self.assertRaises(InsufficientStock):
            resize_reservation(product_id=self.product.id, quantity=4, order_key="pos_a")

        self.assertEqual(reservations_for("pos_a"), {})
        self.assertEqual(available_quantity(self.product, exclude_order_key="pos_b"), 0)

    def test_resize_cannot_grow_an_active_hold_unchecked(self):
        reserve_stock(product_id=self.product.id, quantity=2, order_key="pos_a")
        reserve_stock(product_id=self.product.id, quantity=3, order_key="pos_b")

        with self.assertRaises(InsufficientStock):
            resize_reservation(product_id=self.product.id, quantity=3, order_key="pos_a")
        self.assertEqual(reservations_for("pos_a"), {self.product.id: 2})

    def test_release_is_noop_when_nothing_matches(self):
        self.assertEqual(release_stock(order_key="pos_missing"), 0)

    def test_unmanaged_stock_is_never_reserved(self):
        service = Product.objects.create(
            name="Gift wrap",
            sku="WRAP",
            price=Decimal("2.00"),
            manage_stock=False,
        )

        self.assertIsNone(reserve_stock(product_id=service.id, quantity=1000, order_key="pos_a"))
        self.assertIsNone(available_quantity(service))
        self.assertFalse(StockReservation.objects.exists())

    def test_unknown_product(self):
        with self.assertRaises(ProductNotFound):
            reserve_stock(
                product_id="00000000-0000-4000-8000-000000000000",
                quantity=1,
                order_key="pos_a",
            )


class ConcurrentReservationTests(TransactionTestCase):
    """Two workers racing for the last units must not both win."""

    def setUp(self):
        if connection.vendor == "sqlite" and connection.is_in_memory_db():
            self.skipTest("in-memory SQLite cannot be shared between threads")
        cache.clear()
        self.product = Product.objects.create(
            name="Last unit",
            sku="LAST-1",
            price=Decimal("10.00"),
            stock_quantity=3,
        )

    def test_parallel_reservations_respect_on_hand(self):
        outcomes = []
        barrier = threading.Barrier(6)

        def worker(n):
            try:
                barrier.wait()
                reserve_stock(product_id=self.product.id, quantity=1, order_key=f"pos_t{n}")
                outcomes.append("ok")
            except InsufficientStock:
                outcomes.append("refused")
            finally:
                connection.close()

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(outcomes.count("ok"), 3)
        self.assertEqual(outcomes.count("refused"), 3)
        self.assertEqual(available_quantity(self.product), 0)
