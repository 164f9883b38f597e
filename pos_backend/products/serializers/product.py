# products/serializers/product.py

"""
PRODUCT SERIALIZER

Purpose:
- Read-only product listing for the till.
- available = on-hand minus active cart reservations (computed live, never cached).
- Money is returned as a 2dp string.
"""

from rest_framework import serializers

from pos.services.reservations import available_quantity
from products.models import Product


class ProductSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source="category.name", read_only=True, default=None)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, coerce_to_string=True)
    available = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            "id",
            "sku",
            "name",
            "parent",
            "category",
            "category_name",
            "price",
            "manage_stock",
            "stock_quantity",
            "available",
            "tax_status",
            "tax_class",
            "attributes",
            "is_purchasable",
            "is_active",
        ]
        read_only_fields = fields

    def get_available(self, obj) -> int | None:
        # None means unlimited (stock not managed)
        return available_quantity(obj)
