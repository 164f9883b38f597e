# pos/serializers/stock.py

from rest_framework import serializers


class ReserveStockSerializer(serializers.Serializer):
    terminal_id = serializers.CharField(required=False, allow_blank=True, max_length=100)
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=0)
    order_key = serializers.CharField(required=False, allow_blank=True, max_length=40)
    timeout = serializers.IntegerField(required=False, allow_null=True, min_value=1, max_value=3600)


class ReleaseStockSerializer(serializers.Serializer):
    terminal_id = serializers.CharField(required=False, allow_blank=True, max_length=100)
    order_key = serializers.CharField(required=False, allow_blank=True, max_length=40)
    product_id = serializers.UUIDField(required=False, allow_null=True)
