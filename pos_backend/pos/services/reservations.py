# pos/services/reservations.py

"""
======================================================
PATH: pos/services/reservations.py
======================================================
STOCK RESERVATION LEDGER

Purpose:
- Time-boxed holds on available-to-sell quantity, keyed by
  (product, order_key), so two terminals cannot both sell the last unit.

Hard rules:
- available = on-hand - sum(active reservations of OTHER order keys)
- reserve() is check-and-write under a row lock on the Product row
  (SELECT ... FOR UPDATE; on SQLite the IMMEDIATE transaction mode
  serializes writers). Read-then-write without the lock would oversell.
- A reservation whose expires_at has passed counts as absent everywhere,
  even before cleanup_expired_reservations() deletes it.
- Products with manage_stock=False are never reserved (unlimited).
- release() is a no-op when nothing matches.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from pos.models import StockReservation
from pos.services.exceptions import InsufficientStock, ProductNotFound, ValidationFailed
from products.models import Product

logger = logging.getLogger(__name__)


def default_timeout() -> int:
    return int(getattr(settings, "POS_RESERVATION_TIMEOUT", 300))


def reserved_quantity(product_id, *, exclude_order_key=None, now=None) -> int:
    qs = StockReservation.objects.active(now).filter(product_id=product_id)
    if exclude_order_key:
        qs = qs.exclude(order_key=exclude_order_key)
    total = qs.aggregate(total=Sum("quantity")).get("total")
    return int(total or 0)


def available_quantity(product, *, exclude_order_key=None, now=None) -> int | None:
    """
    Available-to-sell for a product (instance or id).

    Returns None when stock is not managed (unlimited).
    """
    if not isinstance(product, Product):
        product = Product.objects.filter(pk=product).first()
        if product is None:
            return 0

    if not product.manage_stock:
        return None

    reserved = reserved_quantity(product.id, exclude_order_key=exclude_order_key, now=now)
    return max(0, int(product.stock_quantity) - reserved)


@transaction.atomic
def reserve_stock(*, product_id, quantity: int, order_key: str, timeout: int | None = None, now=None):
    """
    Create or replace the reservation for (product_id, order_key).

    Returns the StockReservation, or None when nothing needs holding
    (unmanaged stock or quantity 0, which releases).
    """
    if not order_key:
        raise ValidationFailed("order_key is required")

    quantity = int(quantity)
    if quantity < 0:
        raise ValidationFailed("quantity cannot be negative")

    product = Product.objects.select_for_update().filter(pk=product_id).first()
    if product is None:
        raise ProductNotFound(f"Product {product_id} not found")

    if not product.manage_stock:
        return None

    if quantity == 0:
        release_stock(order_key=order_key, product_id=product.id)
        return None

    now = now or timezone.now()
    available = max(
        0,
        int(product.stock_quantity)
        - reserved_quantity(product.id, exclude_order_key=order_key, now=now),
    )

    if quantity > available:
        logger.info(
            "stock reservation refused",
            extra={
                "operation": "reserve_stock",
                "product_id": str(product.id),
                "order_key": order_key,
                "requested": quantity,
                "available": available,
            },
        )
        raise InsufficientStock(
            f"Insufficient stock for '{product.name}'. Available: {available}, Requested: {quantity}",
            product_id=product.id,
            requested=quantity,
            available=available,
        )

    seconds = int(timeout) if timeout else default_timeout()
    reservation, _ = StockReservation.objects.update_or_create(
        product=product,
        order_key=order_key,
        defaults={
            "quantity": quantity,
            "expires_at": now + timedelta(seconds=seconds),
        },
    )
    return reservation


@transaction.atomic
def resize_reservation(*, product_id, quantity: int, order_key: str, timeout: int | None = None, now=None):
    """
    Shrink (or refresh) an active hold without the availability check. Used
    when a cart line goes down.

    Only a hold that is still active and at least `quantity` is shrunk in
    place. An expired or missing hold no longer protects any stock, so it is
    re-acquired through reserve_stock() and checked like a new one.
    """
    quantity = int(quantity)
    if quantity <= 0:
        release_stock(order_key=order_key, product_id=product_id)
        return None

    product = Product.objects.select_for_update().filter(pk=product_id).first()
    if product is None or not product.manage_stock:
        return None

    now = now or timezone.now()
    current = (
        StockReservation.objects.active(now)
        .filter(product_id=product.id, order_key=order_key)
        .first()
    )
    if current is None or quantity > current.quantity:
        return reserve_stock(
            product_id=product.id,
            quantity=quantity,
            order_key=order_key,
            timeout=timeout,
            now=now,
        )

    seconds = int(timeout) if timeout else default_timeout()
    current.quantity = quantity
    current.expires_at = now + timedelta(seconds=seconds)
    current.save(update_fields=["quantity", "expires_at", "updated_at"])
    return current


def release_stock(*, order_key: str, product_id=None) -> int:
    qs = StockReservation.objects.filter(order_key=order_key)
    if product_id:
        qs = qs.filter(product_id=product_id)
    deleted, _ = qs.delete()
    if deleted:
        logger.debug(
            "stock reservations released",
            extra={"operation": "release_stock", "order_key": order_key, "count": deleted},
        )
    return deleted


def reservations_for(order_key: str, *, now=None) -> dict:
    """Active holds of one order key: {product_id: quantity}."""
    rows = StockReservation.objects.active(now).filter(order_key=order_key)
    return {r.product_id: r.quantity for r in rows}


def cleanup_expired_reservations(now=None) -> int:
    deleted, _ = StockReservation.objects.expired(now).delete()
    if deleted:
        logger.info(
            "expired stock reservations purged",
            extra={"operation": "cleanup_expired_reservations", "count": deleted},
        )
    return deleted
