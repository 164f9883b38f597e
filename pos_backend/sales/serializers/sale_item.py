from rest_framework import serializers

from sales.models import SaleItem


class SaleItemSerializer(serializers.ModelSerializer):
    """
    Sale line item serializer (read-only).
    Designed for receipts + UI display.
    """

    class Meta:
        model = SaleItem
        fields = [
            "id",
            "product",
            "variation",
            "item_key",
            "name",
            "sku",
            "quantity",
            "unit_price",
            "line_subtotal",
            "line_discount",
            "line_tax",
            "line_total",
            "variation_data",
            "item_data",
        ]
        read_only_fields = fields
