from django.contrib import admin

from .models import Cart, CartItem, CartSession, StockReservation

# =====================================================
# CART ITEM INLINE (READ-ONLY)
# =====================================================


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0
    can_delete = False
    readonly_fields = (
        "item_key",
        "product",
        "variation",
        "quantity",
        "variation_data",
        "item_data",
        "created_at",
    )

    def has_add_permission(self, request, obj=None):
        return False


# =====================================================
# SESSION ADMIN
# =====================================================


@admin.register(CartSession)
class CartSessionAdmin(admin.ModelAdmin):
    list_display = (
        "terminal_id",
        "user",
        "customer",
        "location_country",
        "expires_at",
        "last_activity",
    )
    search_fields = ("terminal_id", "session_id")
    readonly_fields = ("id", "session_id", "created_at", "updated_at")


# =====================================================
# CART ADMIN
# =====================================================


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = (
        "session",
        "order_key",
        "version",
        "item_count",
        "updated_at",
    )

    readonly_fields = (
        "id",
        "session",
        "order_key",
        "applied_coupons",
        "version",
        "created_at",
        "updated_at",
        "item_count",
    )

    inlines = [CartItemInline]

    def has_add_permission(self, request):
        return False


# =====================================================
# RESERVATION ADMIN (READ-ONLY)
# =====================================================


@admin.register(StockReservation)
class StockReservationAdmin(admin.ModelAdmin):
    list_display = ("product", "order_key", "quantity", "expires_at")
    search_fields = ("order_key", "product__sku", "product__name")
    readonly_fields = ("product", "order_key", "quantity", "expires_at", "created_at", "updated_at")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
