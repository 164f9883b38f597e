# pos/services/cart_manager.py

"""
======================================================
PATH: pos/services/cart_manager.py
======================================================
CART MANAGER

Single source of truth for one terminal's in-progress sale.

Concurrency (per terminal):
- Every mutation runs in one transaction and starts by locking the Cart row
  (SELECT ... FOR UPDATE). Two requests for the same terminal are applied
  one after the other, never interleaved.
- Every mutation bumps Cart.version. Callers may send expected_version;
  a mismatch raises StaleCartVersion (409) before anything is written.

Stock:
- The cart's hold for a product equals the total quantity of that product
  across its lines, stored under the cart's order_key (replace semantics).
- Growing a line goes through reserve_stock() (checked under the product row
  lock). Shrinking or removing a line only resizes/releases the hold, unless
  the hold has expired, in which case it is re-checked like a new one.

Money:
- No price is stored on cart rows. Totals always read live catalog prices
  (catalog.fresh_products) and are recomputed on demand.
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import F, Max, Sum
from django.utils import timezone

from pos.models import Cart, CartItem, CartSession
from pos.services.exceptions import (
    CouponAlreadyApplied,
    CouponInvalid,
    CouponNotApplied,
    ItemNotFound,
    POSError,
    ProductNotFound,
    ProductNotPurchasable,
    SessionInvalid,
    StaleCartVersion,
    ValidationFailed,
)
from pos.services.item_keys import make_item_key, normalize_item_data, normalize_variation_data
from pos.services.reservations import (
    available_quantity,
    release_stock,
    reserve_stock,
    resize_reservation,
)
from pos.services.totals import PricedLine, TotalsResult, compute_totals
from products.models import Coupon, Product
from products.services.cache import cache_get, cache_set, fingerprint, versioned_key
from products.services.catalog import fresh_products, get_sellable, validate_coupon
from products.services.exceptions import CouponRejected, ProductMissing, ProductNotForSale

logger = logging.getLogger(__name__)

TOTALS_NS = "totals"

ZERO = Decimal("0.00")


def batch_max_items() -> int:
    return int(getattr(settings, "POS_BATCH_MAX_ITEMS", 50))


def totals_cache_ttl() -> int:
    return int(getattr(settings, "POS_TOTALS_CACHE_TTL", 30))


# =====================================================
# INPUT PARSING
# =====================================================

def _parse_uuid(value, field: str, *, required: bool = True):
    if value in (None, "", 0, "0"):
        if required:
            raise ValidationFailed(f"{field} is required", details={"field": field})
        return None
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise ValidationFailed(f"{field} must be a valid id", details={"field": field})


def _parse_quantity(value, *, minimum: int) -> int:
    if isinstance(value, bool):
        raise ValidationFailed("quantity must be a whole number", details={"field": "quantity"})
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            raise ValidationFailed("quantity must be a whole number", details={"field": "quantity"})
    try:
        qty = int(value)
    except (TypeError, ValueError):
        raise ValidationFailed("quantity must be a whole number", details={"field": "quantity"})
    if isinstance(value, float) and value != qty:
        raise ValidationFailed("quantity must be a whole number", details={"field": "quantity"})
    if qty < minimum:
        raise ValidationFailed(f"quantity must be at least {minimum}", details={"field": "quantity"})
    return qty


# =====================================================
# LOCKING + VERSIONING
# =====================================================

def lock_cart(session: CartSession, expected_version=None) -> Cart:
    cart = Cart.objects.select_for_update().filter(session_id=session.pk).first()
    if cart is None:
        # session destroyed or replaced since it was resolved
        raise SessionInvalid(
            "POS session was closed while the request was in flight",
            details={"terminal_id": session.terminal_id},
        )
    if expected_version not in (None, ""):
        try:
            expected = int(expected_version)
        except (TypeError, ValueError):
            raise ValidationFailed("expected_version must be an integer")
        if expected != cart.version:
            raise StaleCartVersion(details={"expected_version": expected, "current_version": cart.version})
    return cart


def bump_version(cart: Cart, **fields) -> None:
    Cart.objects.filter(pk=cart.pk).update(version=F("version") + 1, updated_at=timezone.now(), **fields)
    cart.refresh_from_db(fields=["version", "applied_coupons", "order_key", "updated_at"])


def _sellable(product_id, variation_id) -> tuple[Product, Product | None]:
    try:
        return get_sellable(product_id, variation_id)
    except ProductMissing as exc:
        raise ProductNotFound(str(exc), details={"product_id": str(product_id)})
    except ProductNotForSale as exc:
        raise ProductNotPurchasable(str(exc), details={"product_id": str(product_id)})


def _lines_for(cart: Cart, sellable: Product):
    qs = cart.items.all()
    if sellable.parent_id:
        return qs.filter(variation_id=sellable.id)
    return qs.filter(product_id=sellable.id, variation__isnull=True)


def _cart_quantity_of(cart: Cart, sellable: Product, *, exclude_item=None) -> int:
    qs = _lines_for(cart, sellable)
    if exclude_item is not None:
        qs = qs.exclude(pk=exclude_item.pk)
    total = qs.aggregate(total=Sum("quantity")).get("total")
    return int(total or 0)


def _hold(cart: Cart, sellable: Product, quantity: int, *, check: bool) -> None:
    if not sellable.manage_stock:
        return
    if quantity <= 0:
        release_stock(order_key=cart.order_key, product_id=sellable.id)
    elif check:
        reserve_stock(product_id=sellable.id, quantity=quantity, order_key=cart.order_key)
    else:
        resize_reservation(product_id=sellable.id, quantity=quantity, order_key=cart.order_key)


def _log(operation: str, session: CartSession, **extra) -> None:
    logger.info(
        "cart %s",
        operation,
        extra={"operation": operation, "terminal_id": session.terminal_id, **extra},
    )


# =====================================================
# MUTATIONS
# =====================================================

@transaction.atomic
def add_to_cart(
    *,
    session: CartSession,
    product_id,
    quantity=1,
    variation_id=None,
    variation_data=None,
    item_data=None,
    expected_version=None,
) -> CartItem:
    product_uuid = _parse_uuid(product_id, "product_id")
    variation_uuid = _parse_uuid(variation_id, "variation_id", required=False)
    quantity = _parse_quantity(quantity, minimum=1)
    variation_data = normalize_variation_data(variation_data)
    item_data = normalize_item_data(item_data)

    product, variation = _sellable(product_uuid, variation_uuid)
    sellable = variation or product

    cart = lock_cart(session, expected_version)
    item_key = make_item_key(product.id, variation.id if variation else None, variation_data, item_data)

    # Raises InsufficientStock before the cart is touched
    _hold(cart, sellable, _cart_quantity_of(cart, sellable) + quantity, check=True)

    item = cart.items.filter(item_key=item_key).first()
    if item is not None:
        item.quantity = item.quantity + quantity
        item.save(update_fields=["quantity", "updated_at"])
    else:
        last = cart.items.aggregate(pos=Max("position")).get("pos")
        item = CartItem.objects.create(
            cart=cart,
            item_key=item_key,
            product=product,
            variation=variation,
            quantity=quantity,
            variation_data=variation_data,
            item_data=item_data,
            position=0 if last is None else last + 1,
        )

    bump_version(cart)
    _log("add", session, item_key=item_key, quantity=quantity)
    return item


@transaction.atomic
def update_cart_item_quantity(*, session: CartSession, item_key: str, quantity, expected_version=None):
    """
    Set a line's quantity. 0 removes the line (returns None).
    """
    quantity = _parse_quantity(quantity, minimum=0)
    cart = lock_cart(session, expected_version)

    item = cart.items.select_related("product", "variation").filter(item_key=item_key).first()
    if item is None:
        raise ItemNotFound(details={"item_key": item_key})

    sellable = item.sellable
    others = _cart_quantity_of(cart, sellable, exclude_item=item)

    if quantity == 0:
        item.delete()
        _hold(cart, sellable, others, check=False)
        bump_version(cart)
        _log("remove", session, item_key=item_key)
        return None

    _hold(cart, sellable, others + quantity, check=quantity > item.quantity)

    item.quantity = quantity
    item.save(update_fields=["quantity", "updated_at"])

    bump_version(cart)
    _log("update", session, item_key=item_key, quantity=quantity)
    return item


@transaction.atomic
def remove_cart_item(*, session: CartSession, item_key: str, expected_version=None) -> None:
    cart = lock_cart(session, expected_version)

    item = cart.items.select_related("product", "variation").filter(item_key=item_key).first()
    if item is None:
        raise ItemNotFound(details={"item_key": item_key})

    sellable = item.sellable
    item.delete()
    _hold(cart, sellable, _cart_quantity_of(cart, sellable), check=False)

    bump_version(cart)
    _log("remove", session, item_key=item_key)


@transaction.atomic
def clear_cart(*, session: CartSession, expected_version=None) -> int:
    cart = lock_cart(session, expected_version)

    removed, _ = cart.items.all().delete()
    released = release_stock(order_key=cart.order_key)

    bump_version(cart, applied_coupons=[])
    _log("clear", session, removed=removed, released=released)
    return removed


def batch_add_to_cart(*, session: CartSession, items, expected_version=None) -> dict:
    """
    Partial-failure batch: every entry is added in its own transaction.
    A failing entry is reported and skipped; earlier successes are kept.
    """
    if not isinstance(items, list) or not items:
        raise ValidationFailed("items must be a non-empty list", details={"field": "items"})

    limit = batch_max_items()
    if len(items) > limit:
        raise ValidationFailed(
            f"A batch can contain at most {limit} items",
            details={"field": "items", "max_items": limit},
        )

    if expected_version not in (None, ""):
        with transaction.atomic():
            lock_cart(session, expected_version)

    results = []
    for index, entry in enumerate(items):
        try:
            if not isinstance(entry, dict):
                raise ValidationFailed("Each item must be an object")
            item = add_to_cart(
                session=session,
                product_id=entry.get("product_id"),
                quantity=entry.get("quantity", 1),
                variation_id=entry.get("variation_id"),
                variation_data=entry.get("variation_data"),
                item_data=entry.get("item_data"),
            )
        except POSError as exc:
            results.append({"index": index, "success": False, "error": exc.to_dict()})
        else:
            results.append({"index": index, "success": True, "item_key": item.item_key})

    success_count = sum(1 for r in results if r["success"])
    cart = _current_cart(session)

    _log("batch_add", session, success_count=success_count, total_items=len(items))
    return {
        "total_items": len(items),
        "success_count": success_count,
        "error_count": len(items) - success_count,
        "results": results,
        "cart_count": cart.item_count,
        "version": cart.version,
    }


def _gross_subtotal(cart: Cart) -> Decimal:
    priced, _ = _priced_lines(cart)
    return sum((Decimal(line.unit_price) * line.quantity for line in priced), ZERO)


@transaction.atomic
def apply_coupon(*, session: CartSession, code, expected_version=None) -> Coupon:
    normalized = Coupon.normalize_code(code)
    if not normalized:
        raise CouponInvalid("Coupon code is required", details={"reason": "invalid_code"})

    cart = lock_cart(session, expected_version)
    applied = list(cart.applied_coupons or [])
    if normalized in applied:
        raise CouponAlreadyApplied(details={"code": normalized})

    try:
        coupon = validate_coupon(normalized, subtotal=_gross_subtotal(cart))
    except CouponRejected as exc:
        raise CouponInvalid(str(exc), details={"code": normalized, "reason": exc.reason})

    applied.append(coupon.code)
    bump_version(cart, applied_coupons=applied)
    _log("apply_coupon", session, coupon=coupon.code)
    return coupon


@transaction.atomic
def remove_coupon(*, session: CartSession, code, expected_version=None) -> None:
    normalized = Coupon.normalize_code(code)
    cart = lock_cart(session, expected_version)

    applied = list(cart.applied_coupons or [])
    if not normalized or normalized not in applied:
        raise CouponNotApplied(details={"code": normalized})

    applied.remove(normalized)
    bump_version(cart, applied_coupons=applied)
    _log("remove_coupon", session, coupon=normalized)


# =====================================================
# READS
# =====================================================

def _current_cart(session: CartSession) -> Cart:
    cart = Cart.objects.filter(session_id=session.pk).first()
    if cart is None:
        raise SessionInvalid(details={"terminal_id": session.terminal_id})
    return cart


def _priced_lines(cart: Cart) -> tuple[list[PricedLine], list[str]]:
    """
    Lines priced from the live catalog. Returns (lines, missing item_keys).
    """
    items = list(cart.items.order_by("position", "created_at"))
    catalog = fresh_products(
        [i.product_id for i in items] + [i.variation_id for i in items if i.variation_id]
    )

    lines, missing = [], []
    for item in items:
        sellable = catalog.get(item.variation_id or item.product_id)
        if sellable is None:
            missing.append(item.item_key)
            continue
        lines.append(
            PricedLine(
                item_key=item.item_key,
                product_id=str(item.product_id),
                variation_id=str(item.variation_id) if item.variation_id else None,
                name=sellable.name,
                sku=sellable.sku,
                quantity=item.quantity,
                unit_price=Decimal(sellable.price),
                tax_class=sellable.tax_class or "",
                taxable=sellable.is_taxable,
            )
        )
    return lines, missing


def calculate_totals(*, session: CartSession, use_cache: bool = True) -> TotalsResult:
    """
    Totals from live prices. Idempotent: with no mutation in between, two
    calls return identical results. Coupons that stopped being valid are
    skipped and reported in coupon_errors.
    """
    cart = _current_cart(session)
    lines, _ = _priced_lines(cart)
    gross = sum((line.unit_price * line.quantity for line in lines), ZERO)

    coupons, coupon_errors = [], []
    for code in cart.applied_coupons or []:
        try:
            coupons.append(validate_coupon(code, subtotal=gross))
        except CouponRejected as exc:
            coupon_errors.append({"code": code, "reason": exc.reason, "message": str(exc)})

    result = compute_totals(
        lines,
        coupons=coupons,
        location=session.customer_location,
        use_cache=use_cache,
    )
    result.coupon_errors = coupon_errors
    return result


def cart_hash(session: CartSession, cart: Cart | None = None) -> str:
    cart = cart or _current_cart(session)
    payload = {
        "items": list(cart.items.order_by("position", "created_at").values_list("item_key", "quantity")),
        "coupons": list(cart.applied_coupons or []),
        "location": session.customer_location,
    }
    raw = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _item_payload(item: CartItem) -> dict:
    sellable = item.sellable
    return {
        "item_key": item.item_key,
        "product_id": str(item.product_id),
        "variation_id": str(item.variation_id) if item.variation_id else None,
        "name": sellable.name,
        "sku": sellable.sku,
        "quantity": item.quantity,
        "variation_data": item.variation_data or {},
        "item_data": item.item_data or {},
    }


def get_cart_contents(*, session: CartSession, with_totals: bool = True) -> dict:
    cart = _current_cart(session)
    items = [
        _item_payload(i)
        for i in cart.items.select_related("product", "variation").order_by("position", "created_at")
    ]

    data = {
        "terminal_id": session.terminal_id,
        "order_key": cart.order_key,
        "version": cart.version,
        "items": items,
        "item_count": sum(i["quantity"] for i in items),
        "item_lines": len(items),
        "is_empty": not items,
        "applied_coupons": list(cart.applied_coupons or []),
        "customer_id": str(session.customer_id) if session.customer_id else None,
        "customer_location": session.customer_location,
        "hash": cart_hash(session, cart),
    }

    if with_totals:
        totals = calculate_totals(session=session)
        by_key = {line.item_key: line.to_dict() for line in totals.lines}
        for item in items:
            line = by_key.get(item["item_key"])
            if line:
                item.update(
                    {k: line[k] for k in (
                        "unit_price",
                        "line_subtotal",
                        "line_discount",
                        "line_tax",
                        "line_total",
                        "display_total",
                    )}
                )
        data["totals"] = totals.to_dict(include_lines=False)

    return data


def get_cart_summary(*, session: CartSession) -> dict:
    """
    Polling payload. Cached per (terminal, cart version, location) for
    POS_TOTALS_CACHE_TTL seconds; catalog and tax-rate writes bump the
    namespace so a cached summary never outlives a price change.
    """
    cart = _current_cart(session)
    key = versioned_key(
        TOTALS_NS,
        session.terminal_id,
        cart.order_key,
        cart.version,
        fingerprint(session.customer_location),
    )
    cached = cache_get(key)
    if cached is not None:
        return cached

    totals = calculate_totals(session=session)
    summary = {
        "count": totals.item_count,
        "item_lines": len(totals.lines),
        "hash": cart_hash(session, cart),
        "is_empty": not totals.lines,
        "subtotal": f"{totals.subtotal:.2f}",
        "total": f"{totals.total:.2f}",
        "has_tax": totals.total_tax > 0,
        "version": cart.version,
    }
    cache_set(key, summary, totals_cache_ttl())
    return summary


def check_cart_status(*, session: CartSession, now=None) -> dict:
    """
    Conflict check; never mutates the cart.

    - conflicts: lines whose product was removed or can no longer be sold
    - stock_issues: lines whose product's available-to-sell (excluding this
      cart's own hold) dropped below what the cart needs
    """
    now = now or timezone.now()
    cart = _current_cart(session)
    items = list(cart.items.order_by("position", "created_at"))
    catalog = fresh_products(
        [i.product_id for i in items] + [i.variation_id for i in items if i.variation_id]
    )

    required: dict = {}
    for item in items:
        sid = item.variation_id or item.product_id
        required[sid] = required.get(sid, 0) + item.quantity

    conflicts, stock_issues = [], []
    available_cache: dict = {}
    for item in items:
        sid = item.variation_id or item.product_id
        sellable = catalog.get(sid)
        if sellable is None:
            conflicts.append({"item_key": item.item_key, "product_id": str(sid), "reason": "removed"})
            continue
        if not sellable.can_be_sold:
            conflicts.append(
                {
                    "item_key": item.item_key,
                    "product_id": str(sid),
                    "product_name": sellable.name,
                    "reason": "not_purchasable",
                }
            )
            continue

        if sid not in available_cache:
            available_cache[sid] = available_quantity(sellable, exclude_order_key=cart.order_key, now=now)
        available = available_cache[sid]
        if available is not None and available < required[sid]:
            stock_issues.append(
                {
                    "item_key": item.item_key,
                    "product_id": str(sid),
                    "product_name": sellable.name,
                    "required": required[sid],
                    "available": available,
                }
            )

    return {
        "valid": not conflicts and not stock_issues,
        "conflicts": conflicts,
        "stock_issues": stock_issues,
        "session_valid": not session.is_expired(now),
        "version": cart.version,
    }
