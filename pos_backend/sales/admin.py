# sales/admin.py

from django.contrib import admin

from sales.models import Sale, SaleItem


class SaleItemInline(admin.TabularInline):
    model = SaleItem
    extra = 0
    can_delete = False
    readonly_fields = (
        "name",
        "sku",
        "quantity",
        "unit_price",
        "line_subtotal",
        "line_discount",
        "line_tax",
        "line_total",
    )
    fields = readonly_fields

    def has_add_permission(self, request, obj=None):
        return False


# ======================================================
# SALE ADMIN
# ======================================================


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = (
        "invoice_no",
        "terminal_id",
        "status",
        "payment_method",
        "total_amount",
        "created_at",
    )
    readonly_fields = (
        "invoice_no",
        "user",
        "customer",
        "terminal_id",
        "order_key",
        "subtotal_amount",
        "discount_amount",
        "tax_amount",
        "total_amount",
        "tax_lines",
        "coupons",
        "payment_method",
        "amount_tendered",
        "change_due",
        "created_at",
        "completed_at",
    )
    search_fields = ("invoice_no", "terminal_id")
    list_filter = ("status", "payment_method", "created_at")
    inlines = [SaleItemInline]
