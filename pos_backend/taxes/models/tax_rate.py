# taxes/models/tax_rate.py

"""
TAX RATE MODEL

A rate applies to a customer location when every non-blank locality field
matches:
- country: ISO-3166 alpha-2, case-insensitive
- state: case-insensitive
- postcode: exact, or prefix when it ends with "*" (e.g. "941*")
- city: case-insensitive

Stacking:
- Only the first matching rate per priority applies (lowest `order` wins).
- Rates with different priorities stack (e.g. state + local).
- Compound rates are charged on price + all non-compound taxes.
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models


class TaxRate(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    label = models.CharField(max_length=100)
    rate = models.DecimalField(
        max_digits=7,
        decimal_places=4,
        help_text="Percentage, e.g. 7.2500",
    )

    country = models.CharField(max_length=2, blank=True)
    state = models.CharField(max_length=100, blank=True)
    postcode = models.CharField(max_length=20, blank=True)
    city = models.CharField(max_length=100, blank=True)

    tax_class = models.CharField(
        max_length=50,
        blank=True,
        default="",
        help_text="Blank = standard rate class.",
    )

    priority = models.PositiveSmallIntegerField(default=1)
    compound = models.BooleanField(default=False)
    order = models.PositiveIntegerField(default=0)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["priority", "order", "label"]
        indexes = [
            models.Index(fields=["tax_class", "is_active"], name="taxrate_class_active_idx"),
        ]

    def clean(self):
        if self.rate is None or Decimal(self.rate) < 0:
            raise ValidationError({"rate": "Rate cannot be negative"})

    def save(self, *args, **kwargs):
        self.country = (self.country or "").strip().upper()
        self.state = (self.state or "").strip()
        self.postcode = (self.postcode or "").strip().upper()
        self.city = (self.city or "").strip()
        return super().save(*args, **kwargs)

    def matches(self, location: dict) -> bool:
        country = str(location.get("country") or "").strip().upper()
        state = str(location.get("state") or "").strip().lower()
        postcode = str(location.get("postcode") or "").replace(" ", "").upper()
        city = str(location.get("city") or "").strip().lower()

        if self.country and self.country != country:
            return False
        if self.state and self.state.lower() != state:
            return False
        if self.postcode:
            pattern = self.postcode.replace(" ", "")
            if pattern.endswith("*"):
                if not postcode.startswith(pattern[:-1]):
                    return False
            elif pattern != postcode:
                return False
        if self.city and self.city.lower() != city:
            return False
        return True

    def __str__(self):
        where = "/".join(p for p in [self.country, self.state, self.postcode, self.city] if p) or "*"
        return f"{self.label} {self.rate}% [{where}]"
