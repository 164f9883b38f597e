# products/models/product.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from .category import Category


class Product(models.Model):
    """
    Represents a sellable product (or a variation of one).

    STOCK MODEL (IMPORTANT):
    - stock_quantity is ON-HAND stock; only checkout and stock adjustments move it.
    - Cart reservations never touch stock_quantity; they are subtracted at read
      time to get available-to-sell (see pos.services.reservations).
    - manage_stock=False means unlimited (services, made-to-order items).

    VARIATIONS:
    - A product with a parent is a variation (size, colour, ...).
    - Price, stock and purchasability are read from the variation itself.
    """

    class TaxStatus(models.TextChoices):
        TAXABLE = "taxable", "Taxable"
        NONE = "none", "Not taxable"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    parent = models.ForeignKey(
        "self",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="variations",
    )

    category = models.ForeignKey(
        Category,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="products",
    )

    sku = models.CharField(max_length=128, unique=True, db_index=True)
    name = models.CharField(max_length=255, db_index=True)

    # Current selling price (read fresh on every totals computation)
    price = models.DecimalField(max_digits=12, decimal_places=2)

    manage_stock = models.BooleanField(default=True)
    stock_quantity = models.PositiveIntegerField(default=0)

    tax_status = models.CharField(
        max_length=16,
        choices=TaxStatus.choices,
        default=TaxStatus.TAXABLE,
    )
    tax_class = models.CharField(
        max_length=50,
        blank=True,
        default="",
        help_text="Blank = standard rate class.",
    )

    # Variation attributes, e.g. {"size": "L"}
    attributes = models.JSONField(default=dict, blank=True)

    is_active = models.BooleanField(default=True)
    is_purchasable = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["is_active", "name"], name="products_active_name_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    def clean(self):
        if self.price is None or Decimal(self.price) <= 0:
            raise ValidationError({"price": "Price must be greater than zero"})

        if self.parent_id and self.parent_id == self.id:
            raise ValidationError({"parent": "A product cannot be its own variation"})

    @property
    def is_variation(self) -> bool:
        return self.parent_id is not None

    @property
    def is_taxable(self) -> bool:
        return self.tax_status == self.TaxStatus.TAXABLE

    @property
    def can_be_sold(self) -> bool:
        if not (self.is_active and self.is_purchasable):
            return False
        parent = self.parent if self.parent_id else None
        if parent is not None and not parent.is_active:
            return False
        return True
