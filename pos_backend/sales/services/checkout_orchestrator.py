# sales/services/checkout_orchestrator.py

"""
CHECKOUT ORCHESTRATOR (APPLICATION SERVICE)

Purpose:
- Finalize a terminal's cart into a completed Sale (atomic, auditable).
- Revalidate stock against available-to-sell (on-hand minus OTHER carts'
  holds) under the product row lock, then decrement on-hand.
- Record payment bookkeeping (method, tendered, change due).

Hard rules:
- Quantities are integer units (StockMovement.quantity is integer).
- Money values are computed server-side from live prices; the client
  never sends totals.
- One DB transaction: stock movements, sale rows, coupon usage, release of
  holds and cart reset succeed together or roll back together.
- The cart row is locked first, so a double-submitted checkout sees an
  empty cart the second time.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction
from django.db.models import F

from pos.models import CartSession
from pos.models.cart import new_order_key
from pos.services.cart_manager import bump_version, calculate_totals, lock_cart
from pos.services.exceptions import (
    EmptyCart,
    InsufficientPayment,
    InsufficientStock,
    ProductNotPurchasable,
    ValidationFailed,
)
from pos.services.reservations import available_quantity, release_stock
from products.models import Coupon, Product
from products.services.exceptions import InsufficientOnHand
from products.services.inventory import deduct_for_sale
from sales.models import Sale, SaleItem

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _normalize_payment_method(method: str | None) -> str:
    m = (method or "cash").strip().lower()
    if m not in {choice for choice, _ in Sale.PAYMENT_CHOICES}:
        raise ValidationFailed(f"Unsupported payment method: {m}", details={"field": "payment_method"})
    return m


def _settle_payment(*, method: str, total: Decimal, amount_tendered) -> tuple[Decimal, Decimal]:
    """
    Returns (amount_tendered, change_due).

    - cash: tendered defaults to the total; change is tendered - total
    - other methods: charged exactly the total, no change
    """
    if method != Sale.PAYMENT_CASH:
        tendered = total if amount_tendered in (None, "") else _money(amount_tendered)
        if tendered < total:
            raise InsufficientPayment(
                details={"total": f"{total:.2f}", "amount_tendered": f"{tendered:.2f}"}
            )
        return total, Decimal("0.00")

    tendered = total if amount_tendered in (None, "") else _money(amount_tendered)
    if tendered < total:
        raise InsufficientPayment(
            details={"total": f"{total:.2f}", "amount_tendered": f"{tendered:.2f}"}
        )
    return tendered, tendered - total


def _lock_and_check_stock(*, items, order_key: str) -> dict:
    """
    Lock every stock-managed sellable and verify the cart can still take
    what it holds. Returns {sellable_id: Product}.
    """
    required: dict = {}
    for item in items:
        sid = item.variation_id or item.product_id
        required[sid] = required.get(sid, 0) + int(item.quantity)

    locked = {
        p.id: p
        for p in Product.objects.select_for_update().filter(pk__in=required)
    }

    for sid, qty in required.items():
        product = locked.get(sid)
        if product is None or not product.can_be_sold:
            raise ProductNotPurchasable(
                f"'{getattr(product, 'name', sid)}' is no longer available for sale",
                details={"product_id": str(sid)},
            )
        available = available_quantity(product, exclude_order_key=order_key)
        if available is not None and qty > available:
            raise InsufficientStock(
                f"Insufficient stock for '{product.name}'. Available: {available}, Requested: {qty}",
                product_id=sid,
                requested=qty,
                available=available,
            )
    return locked


@transaction.atomic
def checkout_cart(
    *,
    user,
    session: CartSession,
    payment_method: str | None = "cash",
    amount_tendered=None,
    expected_version=None,
) -> Sale:
    method = _normalize_payment_method(payment_method)

    cart = lock_cart(session, expected_version)
    items = list(cart.items.select_related("product", "variation").order_by("position", "created_at"))
    if not items:
        raise EmptyCart()

    locked = _lock_and_check_stock(items=items, order_key=cart.order_key)

    totals = calculate_totals(session=session, use_cache=False)
    total = totals.total
    tendered, change_due = _settle_payment(method=method, total=total, amount_tendered=amount_tendered)

    sale = Sale.objects.create(
        user=user if getattr(user, "is_authenticated", False) else None,
        customer_id=session.customer_id,
        terminal_id=session.terminal_id,
        order_key=cart.order_key,
        subtotal_amount=totals.subtotal,
        discount_amount=totals.discount_total,
        tax_amount=totals.total_tax,
        total_amount=total,
        tax_lines=[t.to_dict() for t in totals.tax_lines],
        coupons=[{**c, "amount": f"{c['amount']:.2f}"} for c in totals.coupons],
        customer_location=session.customer_location,
        payment_method=method,
        amount_tendered=tendered,
        change_due=change_due,
        status=Sale.STATUS_COMPLETED,
    )

    lines = {line.item_key: line for line in totals.lines}
    for item in items:
        line = lines[item.item_key]
        sellable = locked[item.variation_id or item.product_id]

        if sellable.manage_stock:
            try:
                deduct_for_sale(product=sellable, quantity=item.quantity, sale=sale, user=user)
            except InsufficientOnHand as exc:
                raise InsufficientStock(
                    product_id=exc.product_id,
                    requested=exc.requested,
                    available=exc.available,
                )

        SaleItem.objects.create(
            sale=sale,
            product_id=item.product_id,
            variation_id=item.variation_id,
            item_key=item.item_key,
            name=line.name,
            sku=line.sku,
            quantity=item.quantity,
            unit_price=line.unit_price,
            line_subtotal=line.line_subtotal,
            line_discount=line.line_discount,
            line_tax=line.line_tax,
            line_total=line.line_total,
            variation_data=item.variation_data or {},
            item_data=item.item_data or {},
        )

    codes = [c["code"] for c in totals.coupons]
    if codes:
        Coupon.objects.filter(code__in=codes).update(usage_count=F("usage_count") + 1)

    release_stock(order_key=cart.order_key)
    cart.items.all().delete()
    bump_version(cart, order_key=new_order_key(), applied_coupons=[])

    logger.info(
        "pos sale completed",
        extra={
            "operation": "checkout",
            "terminal_id": session.terminal_id,
            "invoice_no": sale.invoice_no,
            "total": f"{total:.2f}",
        },
    )
    return sale
