# pos/models/cart_item.py

"""
CART ITEM MODEL

Rules:
- item_key is the line identity inside a cart (unique per cart); identical
  configurations merge quantities.
- quantity >= 1 (setting 0 removes the line).
- No price is stored: unit price and line amounts come from the live
  catalog at totals time.
"""

import uuid

from django.db import models

from products.models import Product

from .cart import Cart


class CartItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    cart = models.ForeignKey(
        Cart,
        on_delete=models.CASCADE,
        related_name="items",
    )

    item_key = models.CharField(max_length=32)

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="cart_items",
    )
    variation = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="variation_cart_items",
    )

    quantity = models.PositiveIntegerField()

    variation_data = models.JSONField(default=dict, blank=True)
    item_data = models.JSONField(default=dict, blank=True)

    # Insertion order for display
    position = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["position", "created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["cart", "item_key"],
                name="unique_item_key_per_cart",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="cart_item_quantity_gte_1",
            ),
        ]

    @property
    def sellable(self) -> Product:
        return self.variation or self.product

    def __str__(self):
        return f"{self.sellable.name} x {self.quantity}"
