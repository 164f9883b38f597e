# pos/serializers/cart.py

"""
POS CART INPUT SERIALIZERS

Shape validation only (types, required fields). Business rules (stock,
purchasability, coupon applicability) live in pos.services.cart_manager.
"""

from rest_framework import serializers


class TerminalScopedSerializer(serializers.Serializer):
    terminal_id = serializers.CharField(required=False, allow_blank=True, max_length=100)
    expected_version = serializers.IntegerField(required=False, allow_null=True, min_value=1)


class CartQuerySerializer(serializers.Serializer):
    terminal_id = serializers.CharField(required=False, allow_blank=True, max_length=100)
    calculate_totals = serializers.BooleanField(required=False, default=True)


class AddCartItemSerializer(TerminalScopedSerializer):
    product_id = serializers.CharField()
    quantity = serializers.IntegerField(required=False, default=1, min_value=1)
    variation_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    variation_data = serializers.JSONField(required=False, default=dict)
    item_data = serializers.JSONField(required=False, default=dict)


class UpdateCartItemSerializer(TerminalScopedSerializer):
    quantity = serializers.IntegerField(min_value=0)


class ClearCartSerializer(TerminalScopedSerializer):
    confirm = serializers.BooleanField(required=False, default=False)


class BatchAddSerializer(TerminalScopedSerializer):
    items = serializers.ListField(child=serializers.JSONField(), allow_empty=False)


class CouponSerializer(TerminalScopedSerializer):
    code = serializers.CharField(max_length=50)


class CustomerSerializer(TerminalScopedSerializer):
    customer_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class LocationSerializer(TerminalScopedSerializer):
    country = serializers.CharField(required=False, allow_blank=True, max_length=2)
    state = serializers.CharField(required=False, allow_blank=True, max_length=100)
    postcode = serializers.CharField(required=False, allow_blank=True, max_length=20)
    city = serializers.CharField(required=False, allow_blank=True, max_length=100)


class CheckoutSerializer(TerminalScopedSerializer):
    payment_method = serializers.ChoiceField(
        choices=["cash", "card", "transfer", "other"],
        required=False,
        default="cash",
    )
    amount_tendered = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        required=False,
        allow_null=True,
        min_value=0,
    )
