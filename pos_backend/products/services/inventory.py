# products/services/inventory.py

"""
======================================================
PATH: products/services/inventory.py
======================================================
INVENTORY CORE SERVICES

Purpose:
- Receive stock (RECEIPT movement).
- Manual adjustments in either direction (ADJUSTMENT movement).
- Sale deduction used by checkout (SALE movement).

Rules:
- Quantities are integer units.
- On-hand changes are single conditional UPDATEs (stock_quantity >= qty),
  never read-then-write, so concurrent deductions cannot drive stock negative.
- Every change writes an immutable StockMovement.
"""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F

from products.models import Product, StockMovement
from products.services.exceptions import InsufficientOnHand

logger = logging.getLogger(__name__)


def _to_int(value, *, field_name="value") -> int:
    if value is None or value == "":
        raise ValidationError(f"{field_name} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")


def _require_positive_int(value, *, field_name: str) -> int:
    v = _to_int(value, field_name=field_name)
    if v <= 0:
        raise ValidationError(f"{field_name} must be greater than zero")
    return v


def _current_stock(product_id) -> int:
    return int(
        Product.objects.filter(pk=product_id).values_list("stock_quantity", flat=True).first()
        or 0
    )


@transaction.atomic
def receive_stock(*, product: Product, quantity, user=None, note: str = "") -> StockMovement:
    qty = _require_positive_int(quantity, field_name="quantity")

    Product.objects.filter(pk=product.pk).update(stock_quantity=F("stock_quantity") + qty)
    stock_after = _current_stock(product.pk)

    movement = StockMovement.objects.create(
        product=product,
        movement_type=StockMovement.MovementType.IN,
        reason=StockMovement.Reason.RECEIPT,
        quantity=qty,
        stock_after=stock_after,
        performed_by=user,
        note=(note or "").strip(),
    )

    logger.info(
        "stock received",
        extra={"product_id": str(product.pk), "quantity": qty, "stock_after": stock_after},
    )
    return movement


@transaction.atomic
def adjust_stock(*, product: Product, delta, user=None, note: str = "") -> StockMovement:
    """
    Manual correction. Negative deltas may not take on-hand below zero.
    """
    change = _to_int(delta, field_name="delta")
    if change == 0:
        raise ValidationError("delta cannot be zero")

    if change > 0:
        Product.objects.filter(pk=product.pk).update(
            stock_quantity=F("stock_quantity") + change
        )
        movement_type = StockMovement.MovementType.IN
    else:
        updated = Product.objects.filter(
            pk=product.pk, stock_quantity__gte=-change
        ).update(stock_quantity=F("stock_quantity") + change)
        if not updated:
            raise ValidationError(
                f"Cannot remove {-change} units; only {_current_stock(product.pk)} on hand"
            )
        movement_type = StockMovement.MovementType.OUT

    return StockMovement.objects.create(
        product=product,
        movement_type=movement_type,
        reason=StockMovement.Reason.ADJUSTMENT,
        quantity=abs(change),
        stock_after=_current_stock(product.pk),
        performed_by=user,
        note=(note or "").strip(),
    )


@transaction.atomic
def deduct_for_sale(*, product: Product, quantity, sale, user=None) -> StockMovement:
    """
    Atomic conditional decrement for a completed sale.
    Raises InsufficientOnHand (nothing written) if on-hand cannot cover it.
    """
    qty = _require_positive_int(quantity, field_name="quantity")

    updated = Product.objects.filter(
        pk=product.pk, stock_quantity__gte=qty
    ).update(stock_quantity=F("stock_quantity") - qty)

    if not updated:
        raise InsufficientOnHand(
            product_id=product.pk,
            requested=qty,
            available=_current_stock(product.pk),
        )

    return StockMovement.objects.create(
        product=product,
        movement_type=StockMovement.MovementType.OUT,
        reason=StockMovement.Reason.SALE,
        quantity=qty,
        stock_after=_current_stock(product.pk),
        performed_by=user,
        sale=sale,
    )
