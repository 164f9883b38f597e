# products/admin.py
"""
=====================================================
PATH: products/admin.py
=====================================================

Admin rules (audit-safe stock):

- Catalog fields (name, price, tax class, ...) are editable.
- stock_quantity is only editable when the product is created; afterwards
  stock moves through inventory services so every change has a StockMovement.
- StockMovement rows are immutable (no add/change/delete in admin).
"""

from __future__ import annotations

from django.contrib import admin

from products.models import Category, Coupon, Product, StockMovement


# =====================================================
# STOCK MOVEMENT INLINE (READ-ONLY)
# =====================================================


class StockMovementInline(admin.TabularInline):
    model = StockMovement
    fk_name = "product"
    extra = 0
    can_delete = False
    readonly_fields = (
        "movement_type",
        "reason",
        "quantity",
        "stock_after",
        "sale",
        "performed_by",
        "note",
        "created_at",
    )

    def has_add_permission(self, request, obj=None):
        return False


class VariationInline(admin.TabularInline):
    model = Product
    fk_name = "parent"
    extra = 0
    fields = ("sku", "name", "price", "manage_stock", "attributes", "is_active")
    show_change_link = True


# =====================================================
# PRODUCT ADMIN
# =====================================================


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "sku",
        "price",
        "manage_stock",
        "stock_quantity",
        "tax_status",
        "is_active",
        "is_purchasable",
    )
    list_filter = ("is_active", "is_purchasable", "manage_stock", "tax_status", "category")
    search_fields = ("name", "sku")
    autocomplete_fields = ("category", "parent")

    inlines = [VariationInline, StockMovementInline]

    def get_readonly_fields(self, request, obj=None):
        if obj is None:
            return ()
        return ("stock_quantity",)


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "parent", "is_active")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "discount_type",
        "amount",
        "minimum_spend",
        "usage_count",
        "usage_limit",
        "expires_at",
        "is_active",
    )
    list_filter = ("discount_type", "is_active")
    search_fields = ("code", "description")
    readonly_fields = ("usage_count", "created_at")


# =====================================================
# STOCK MOVEMENT ADMIN (FULLY IMMUTABLE)
# =====================================================


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = (
        "product",
        "movement_type",
        "reason",
        "quantity",
        "stock_after",
        "sale",
        "created_at",
    )
    list_filter = ("reason", "movement_type")
    search_fields = ("product__name", "product__sku")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
