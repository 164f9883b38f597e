# products/services/catalog.py

"""
======================================================
PATH: products/services/catalog.py
======================================================
CATALOG QUERY FACADE

Purpose:
- Read-only product / category / customer lookups for the POS core.
- Cached browse reads (products, categories, customers, stock, search)
  with per-kind TTLs from settings.POS_CACHE_TTLS.
- Coupon applicability checks.

Hard rules:
- Anything that feeds money or stock decisions (get_sellable, fresh_products,
  validate_coupon) reads the database directly. Cached payloads are for
  display only.
- Cache invalidation is generation based (see products.signals).
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db.models import Q
from django.utils import timezone

from products.models import Category, Coupon, Product
from products.services.cache import (
    bump_generation,
    cache_get,
    cache_set,
    fingerprint,
    ttl_for,
    versioned_key,
)
from products.services.exceptions import CouponRejected, ProductMissing, ProductNotForSale

logger = logging.getLogger(__name__)

CATALOG_NS = "catalog"
CUSTOMERS_NS = "customers"

SEARCH_LIMIT_MAX = 100


# =====================================================
# SERIALIZED SHAPES (cache payloads)
# =====================================================

def _product_payload(product: Product) -> dict:
    return {
        "id": str(product.id),
        "sku": product.sku,
        "name": product.name,
        "price": f"{product.price:.2f}",
        "category_id": str(product.category_id) if product.category_id else None,
        "parent_id": str(product.parent_id) if product.parent_id else None,
        "manage_stock": product.manage_stock,
        "tax_status": product.tax_status,
        "tax_class": product.tax_class,
        "attributes": product.attributes or {},
        "is_purchasable": product.is_purchasable,
    }


# =====================================================
# UNCACHED READS (money + stock decisions)
# =====================================================

def get_sellable(product_id, variation_id=None) -> tuple[Product, Product | None]:
    """
    Resolve (product, variation) for a cart line.

    - variation_id must belong to product_id
    - a product with variations cannot be sold without choosing one
    """
    product = Product.objects.select_related("parent").filter(pk=product_id).first()
    if product is None:
        raise ProductMissing(f"Product {product_id} not found")

    variation = None
    if variation_id:
        variation = (
            Product.objects.select_related("parent")
            .filter(pk=variation_id, parent_id=product.id)
            .first()
        )
        if variation is None:
            raise ProductMissing(f"Variation {variation_id} not found for product {product_id}")
    elif product.variations.filter(is_active=True).exists():
        raise ProductNotForSale(f"'{product.name}' requires a variation to be selected")

    sellable = variation or product
    if not sellable.can_be_sold:
        raise ProductNotForSale(f"'{sellable.name}' is not available for sale")

    return product, variation


def fresh_products(product_ids) -> dict:
    """
    Current catalog rows keyed by id. Never cached: totals must price lines
    from the live catalog on every computation.
    """
    ids = {pid for pid in product_ids if pid}
    if not ids:
        return {}
    return {p.id: p for p in Product.objects.select_related("parent").filter(pk__in=ids)}


def validate_coupon(code, *, subtotal, now=None) -> Coupon:
    """
    Return the Coupon if it can be applied to a cart with this subtotal,
    else raise CouponRejected with a machine-readable reason.
    """
    normalized = Coupon.normalize_code(code)
    if not normalized:
        raise CouponRejected("invalid_code", "Coupon code is required")

    coupon = Coupon.objects.filter(code=normalized).first()
    if coupon is None:
        raise CouponRejected("not_found", f"Coupon '{normalized}' does not exist")

    if not coupon.is_active:
        raise CouponRejected("inactive", f"Coupon '{normalized}' is not active")

    if coupon.is_expired(now or timezone.now()):
        raise CouponRejected("expired", f"Coupon '{normalized}' has expired")

    if coupon.usage_exhausted:
        raise CouponRejected("usage_limit_reached", f"Coupon '{normalized}' usage limit reached")

    minimum = coupon.minimum_spend or Decimal("0.00")
    if minimum > 0 and Decimal(subtotal) < minimum:
        raise CouponRejected(
            "minimum_spend_not_met",
            f"Minimum spend for '{normalized}' is {minimum:.2f}",
        )

    return coupon


# =====================================================
# CACHED READS (browse / display)
# =====================================================

def get_product_data(product_id) -> dict | None:
    key = versioned_key(CATALOG_NS, "product", product_id)
    cached = cache_get(key)
    if cached is not None:
        return cached

    product = Product.objects.filter(pk=product_id, is_active=True).first()
    if product is None:
        return None

    payload = _product_payload(product)
    payload["variations"] = [
        _product_payload(v) for v in product.variations.filter(is_active=True).order_by("name")
    ]
    cache_set(key, payload, ttl_for("products"))
    return payload


def search_products(query: str = "", *, category_id=None, limit: int = 20) -> list[dict]:
    q = (query or "").strip()
    limit = max(1, min(int(limit or 20), SEARCH_LIMIT_MAX))

    key = versioned_key(
        CATALOG_NS,
        "search",
        fingerprint({"q": q.lower(), "category": str(category_id or ""), "limit": limit}),
    )
    cached = cache_get(key)
    if cached is not None:
        return cached

    qs = Product.objects.filter(is_active=True, parent__isnull=True)
    if q:
        qs = qs.filter(Q(name__icontains=q) | Q(sku__icontains=q))
    if category_id:
        qs = qs.filter(category_id=category_id)

    payload = [_product_payload(p) for p in qs.order_by("name")[:limit]]
    cache_set(key, payload, ttl_for("search"))
    return payload


def list_categories() -> list[dict]:
    key = versioned_key(CATALOG_NS, "categories")
    cached = cache_get(key)
    if cached is not None:
        return cached

    payload = [
        {
            "id": str(c.id),
            "name": c.name,
            "slug": c.slug,
            "parent_id": str(c.parent_id) if c.parent_id else None,
        }
        for c in Category.objects.filter(is_active=True).order_by("name")
    ]
    cache_set(key, payload, ttl_for("categories"))
    return payload


def get_stock_level(product_id) -> dict | None:
    """
    Display-only stock snapshot (short TTL). Availability checks use
    pos.services.reservations.available_quantity instead.
    """
    key = versioned_key(CATALOG_NS, "stock", product_id)
    cached = cache_get(key)
    if cached is not None:
        return cached

    row = (
        Product.objects.filter(pk=product_id)
        .values("manage_stock", "stock_quantity")
        .first()
    )
    if row is None:
        return None

    cache_set(key, row, ttl_for("stock"))
    return row


def get_customer(customer_id) -> dict | None:
    User = get_user_model()

    key = versioned_key(CUSTOMERS_NS, customer_id)
    cached = cache_get(key)
    if cached is not None:
        return cached

    user = User.objects.filter(pk=customer_id, is_active=True).first()
    if user is None:
        return None

    payload = {
        "id": str(user.id),
        "email": user.email,
        "name": user.display_name,
        "phone": user.phone,
        "role": user.role,
    }
    cache_set(key, payload, ttl_for("customers"))
    return payload


# =====================================================
# INVALIDATION
# =====================================================

def invalidate_catalog() -> None:
    bump_generation(CATALOG_NS)
    logger.debug("catalog cache invalidated")


def invalidate_customers() -> None:
    bump_generation(CUSTOMERS_NS)
