# products/models/coupon.py

"""
COUPON MODEL

Rules:
- Codes are case-insensitive (stored lower-case, unique).
- percent: amount is a percentage (0 < amount <= 100) of each line.
- fixed_cart: amount is a currency value taken off the whole cart.
- usage_count only moves at checkout; usage_limit NULL = unlimited.
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


class Coupon(models.Model):
    class DiscountType(models.TextChoices):
        PERCENT = "percent", "Percentage discount"
        FIXED_CART = "fixed_cart", "Fixed cart discount"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    code = models.CharField(max_length=64, unique=True)
    description = models.CharField(max_length=255, blank=True)

    discount_type = models.CharField(
        max_length=16,
        choices=DiscountType.choices,
        default=DiscountType.PERCENT,
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)

    minimum_spend = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    usage_count = models.PositiveIntegerField(default=0)

    expires_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["code"]

    @staticmethod
    def normalize_code(code) -> str:
        return str(code or "").strip().lower()

    def clean(self):
        if self.amount is None or Decimal(self.amount) <= 0:
            raise ValidationError({"amount": "Amount must be greater than zero"})

        if self.discount_type == self.DiscountType.PERCENT and Decimal(self.amount) > Decimal("100"):
            raise ValidationError({"amount": "Percentage discount cannot exceed 100"})

    def save(self, *args, **kwargs):
        self.code = self.normalize_code(self.code)
        return super().save(*args, **kwargs)

    def is_expired(self, now=None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or timezone.now())

    @property
    def usage_exhausted(self) -> bool:
        return self.usage_limit is not None and self.usage_count >= self.usage_limit

    def __str__(self):
        return f"{self.code} ({self.discount_type} {self.amount})"
