# sales/models/sale.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

User = settings.AUTH_USER_MODEL


class Sale(models.Model):
    """
    Represents a completed POS transaction.

    GUARANTEES:
    - Immutable financial record once completed
    - Totals are the cart's TotalsResult snapshot at checkout
    - Stock was decremented (with SALE movements) in the same transaction

    MONEY:
    - total_amount = subtotal_amount - discount_amount + tax_amount
    - change_due = amount_tendered - total_amount (cash only)
    """

    STATUS_COMPLETED = "completed"
    STATUS_VOIDED = "voided"

    STATUS_CHOICES = [
        (STATUS_COMPLETED, "Completed"),
        (STATUS_VOIDED, "Voided"),
    ]

    PAYMENT_CASH = "cash"
    PAYMENT_CARD = "card"
    PAYMENT_TRANSFER = "transfer"
    PAYMENT_OTHER = "other"

    PAYMENT_CHOICES = [
        (PAYMENT_CASH, "Cash"),
        (PAYMENT_CARD, "Card"),
        (PAYMENT_TRANSFER, "Transfer"),
        (PAYMENT_OTHER, "Other"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    invoice_no = models.CharField(
        max_length=64,
        unique=True,
        blank=True,
        help_text="System-generated invoice / receipt number",
    )

    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name="sales",
        help_text="Cashier / staff who processed the sale",
    )
    customer = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchases",
    )

    terminal_id = models.CharField(max_length=100, db_index=True)
    order_key = models.CharField(max_length=40, unique=True)

    subtotal_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    discount_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    tax_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    total_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )

    # Snapshots: [{"rate_label", "rate", "amount", ...}], [{"code", "amount", ...}]
    tax_lines = models.JSONField(default=list, blank=True)
    coupons = models.JSONField(default=list, blank=True)
    customer_location = models.JSONField(default=dict, blank=True)

    payment_method = models.CharField(
        max_length=32,
        choices=PAYMENT_CHOICES,
        default=PAYMENT_CASH,
    )
    amount_tendered = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    change_due = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )

    status = models.CharField(
        max_length=32,
        choices=STATUS_CHOICES,
        default=STATUS_COMPLETED,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["created_at"], name="sale_created_idx"),
            models.Index(fields=["status"], name="sale_status_idx"),
        ]

    _IMMUTABLE_FIELDS = (
        "user",
        "customer",
        "terminal_id",
        "order_key",
        "subtotal_amount",
        "discount_amount",
        "tax_amount",
        "total_amount",
        "payment_method",
        "amount_tendered",
        "change_due",
        "completed_at",
    )

    def _validate_immutable(self, previous: "Sale"):
        if previous.status != self.STATUS_COMPLETED:
            return

        if self.status not in (self.STATUS_COMPLETED, self.STATUS_VOIDED):
            raise ValueError(f"Status change completed -> {self.status} is not allowed.")

        for field in self._IMMUTABLE_FIELDS:
            if getattr(self, field) != getattr(previous, field):
                raise ValueError(
                    f"Sale is immutable once completed. Field '{field}' cannot be changed."
                )

    def save(self, *args, **kwargs):
        if self.pk and not self._state.adding:
            previous = Sale.objects.filter(pk=self.pk).first()
            if previous is not None:
                self._validate_immutable(previous)

        if not self.invoice_no:
            prefix = timezone.now().strftime("POS-%Y%m%d")
            self.invoice_no = f"{prefix}-{uuid.uuid4().hex[:8].upper()}"

        if self.status == self.STATUS_COMPLETED and not self.completed_at:
            self.completed_at = timezone.now()

        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.invoice_no} | {self.total_amount}"
