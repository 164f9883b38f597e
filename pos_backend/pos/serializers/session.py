# pos/serializers/session.py

from django.utils import timezone
from rest_framework import serializers

from pos.models import CartSession


class CartSessionSerializer(serializers.ModelSerializer):
    customer_location = serializers.DictField(read_only=True)
    expires_in = serializers.SerializerMethodField()
    is_valid = serializers.SerializerMethodField()

    class Meta:
        model = CartSession
        fields = [
            "terminal_id",
            "session_id",
            "user",
            "customer",
            "customer_location",
            "expires_at",
            "expires_in",
            "last_activity",
            "is_valid",
            "created_at",
        ]
        read_only_fields = fields

    def get_expires_in(self, obj) -> int:
        return max(0, int((obj.expires_at - timezone.now()).total_seconds()))

    def get_is_valid(self, obj) -> bool:
        return not obj.is_expired()


class CreateSessionSerializer(serializers.Serializer):
    terminal_id = serializers.CharField(required=False, allow_blank=True, max_length=100)


class ValidateSessionSerializer(serializers.Serializer):
    terminal_id = serializers.CharField(required=False, allow_blank=True, max_length=100)
    session_id = serializers.CharField(required=False, allow_blank=True, max_length=64)


class ExtendSessionSerializer(serializers.Serializer):
    terminal_id = serializers.CharField(required=False, allow_blank=True, max_length=100)
    additional_time = serializers.IntegerField(required=False, allow_null=True, min_value=1)
