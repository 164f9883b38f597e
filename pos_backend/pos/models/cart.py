"""
PATH: pos/models/cart.py

CART MODEL

Purpose:
- The in-progress sale for one terminal (1:1 with CartSession).
- order_key identifies the cart's stock reservations; a fresh key is issued
  when the cart is checked out. Direct holds for the terminal use
  direct_order_key so they never overwrite the line holds.
- version is bumped on every mutation (optimistic concurrency for clients).

Totals are never stored here; they are derived from items + coupons +
session location + live catalog prices.
"""

import secrets
import uuid

from django.db import models
from django.db.models import Sum

from .session import CartSession


def new_order_key() -> str:
    return f"pos_{secrets.token_hex(12)}"


class Cart(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    session = models.OneToOneField(
        CartSession,
        on_delete=models.CASCADE,
        related_name="cart",
    )

    order_key = models.CharField(max_length=40, unique=True, default=new_order_key)

    # Lower-cased coupon codes, in the order they were applied
    applied_coupons = models.JSONField(default=list, blank=True)

    version = models.PositiveIntegerField(default=1)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Cart {self.session.terminal_id} v{self.version}"

    @property
    def direct_order_key(self) -> str:
        """Key for holds taken through stock/reserve, kept apart from the line holds."""
        return f"{self.order_key}:direct"

    @property
    def item_count(self) -> int:
        total = self.items.aggregate(total=Sum("quantity")).get("total")
        return int(total or 0)

    @property
    def is_empty(self) -> bool:
        return not self.items.exists()
