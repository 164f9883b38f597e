"""
PATH: pos/models/session.py

CART SESSION MODEL

Binds one terminal to one server-side session:
- terminal_id: stable per till (unique)
- session_id: opaque token issued on create, checked on validate
- customer: optional (NULL = guest)
- location: tax jurisdiction for this terminal's sales

Lifecycle:
    Uninitialized -> Active -> Expired / Destroyed
Expired and destroyed sessions are never revived; a new one is created.
"""

from __future__ import annotations

import secrets
import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone

User = settings.AUTH_USER_MODEL


def new_session_token() -> str:
    return secrets.token_hex(32)


class CartSession(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    terminal_id = models.CharField(max_length=100, unique=True)
    session_id = models.CharField(max_length=64, unique=True, default=new_session_token)

    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="pos_sessions",
        help_text="Operator that opened the session.",
    )
    customer = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="pos_customer_sessions",
    )

    location_country = models.CharField(max_length=2, blank=True, default="")
    location_state = models.CharField(max_length=100, blank=True, default="")
    location_postcode = models.CharField(max_length=20, blank=True, default="")
    location_city = models.CharField(max_length=100, blank=True, default="")

    expires_at = models.DateTimeField(db_index=True)
    last_activity = models.DateTimeField(default=timezone.now)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "expires_at"], name="possession_user_exp_idx"),
        ]

    def __str__(self):
        return f"{self.terminal_id} ({'expired' if self.is_expired() else 'active'})"

    @property
    def customer_location(self) -> dict:
        return {
            "country": self.location_country,
            "state": self.location_state,
            "postcode": self.location_postcode,
            "city": self.location_city,
        }

    def is_expired(self, now=None) -> bool:
        return self.expires_at <= (now or timezone.now())
