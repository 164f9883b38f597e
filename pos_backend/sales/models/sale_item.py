# sales/models/sale_item.py

"""
SALE ITEM (IMMUTABLE SNAPSHOT)

One row per cart line at checkout. Amounts are the TotalsResult line
snapshot; later catalog price changes never touch them.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import models

from products.models import Product

from .sale import Sale


class SaleItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sale = models.ForeignKey(
        Sale,
        on_delete=models.CASCADE,
        related_name="items",
    )

    product = models.ForeignKey(
        Product,
        on_delete=models.SET_NULL,
        null=True,
        related_name="sale_items",
    )
    variation = models.ForeignKey(
        Product,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="variation_sale_items",
    )

    item_key = models.CharField(max_length=32)
    name = models.CharField(max_length=255)
    sku = models.CharField(max_length=128, blank=True)

    quantity = models.PositiveIntegerField()

    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    line_subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    line_discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    line_tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    line_total = models.DecimalField(max_digits=12, decimal_places=2)

    variation_data = models.JSONField(default=dict, blank=True)
    item_data = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]

    def save(self, *args, **kwargs):
        if self.pk and not self._state.adding and SaleItem.objects.filter(pk=self.pk).exists():
            raise ValueError("SaleItem is immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("SaleItem is immutable")

    def __str__(self):
        return f"{self.name} x {self.quantity}"
