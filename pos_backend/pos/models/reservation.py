"""
PATH: pos/models/reservation.py

STOCK RESERVATION MODEL

A short-lived hold on available-to-sell quantity for one product, owned by
one cart (order_key).

Rules:
- One row per (product, order_key); reserving again replaces the quantity
  and pushes expires_at forward.
- Rows past expires_at are treated as absent by every read, whether or not
  the sweep has deleted them yet.
- stock_quantity (on-hand) is never touched by a reservation.
"""

import uuid

from django.db import models
from django.utils import timezone

from products.models import Product


class StockReservationQuerySet(models.QuerySet):
    def active(self, now=None):
        return self.filter(expires_at__gt=now or timezone.now())

    def expired(self, now=None):
        return self.filter(expires_at__lte=now or timezone.now())


class StockReservation(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="reservations",
    )
    order_key = models.CharField(max_length=40, db_index=True)
    quantity = models.PositiveIntegerField()
    expires_at = models.DateTimeField(db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StockReservationQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "order_key"],
                name="unique_reservation_per_order_key",
            ),
        ]
        indexes = [
            models.Index(fields=["product", "expires_at"], name="reservation_product_exp_idx"),
        ]

    def __str__(self):
        return f"{self.order_key}: {self.product_id} x {self.quantity}"
