# sales/serializers/sale.py

from rest_framework import serializers

from sales.models import Sale

from .sale_item import SaleItemSerializer


class SaleSerializer(serializers.ModelSerializer):
    """
    CANONICAL SALE SERIALIZER

    Used for the checkout response (receipt) and sales history.
    Money fields are 2dp strings.
    """

    items = SaleItemSerializer(many=True, read_only=True)
    cashier_name = serializers.SerializerMethodField()

    class Meta:
        model = Sale
        fields = [
            "id",
            "invoice_no",
            "user",
            "cashier_name",
            "customer",
            "terminal_id",
            "order_key",
            "subtotal_amount",
            "discount_amount",
            "tax_amount",
            "total_amount",
            "tax_lines",
            "coupons",
            "customer_location",
            "payment_method",
            "amount_tendered",
            "change_due",
            "status",
            "created_at",
            "completed_at",
            "items",
        ]
        read_only_fields = fields

    def get_cashier_name(self, obj: Sale):
        user = getattr(obj, "user", None)
        return getattr(user, "display_name", None) if user else None
