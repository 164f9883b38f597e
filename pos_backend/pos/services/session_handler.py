# pos/services/session_handler.py

"""
======================================================
PATH: pos/services/session_handler.py
======================================================
SESSION HANDLER

Purpose:
- Lifecycle of the terminal -> session -> cart binding.

State machine:
    Uninitialized -> Active -> Expired | Destroyed

Rules:
- create() on a terminal that already has a session tears the old one down
  first (cart + reservations), then issues a new session_id.
- First cart access on an unknown terminal creates the session implicitly
  (get-or-create: a concurrent first access reuses the session it lost to).
- An expired session is never revived: callers get SessionExpired and must
  create a new one.
- extend() can never push the remaining lifetime past
  POS_SESSION_MAX_LIFETIME seconds.
- destroy() is idempotent and always releases the cart's reservations.
"""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from pos.models import Cart, CartSession
from pos.services.exceptions import (
    CustomerNotFound,
    SessionExpired,
    SessionInvalid,
    SessionNotFound,
    TerminalIdRequired,
    TerminalMismatch,
    ValidationFailed,
)
from pos.services.reservations import release_stock
from products.services.catalog import get_customer

logger = logging.getLogger(__name__)

TERMINAL_ID_MAX_LENGTH = 100

GUEST_CUSTOMER_IDS = {None, "", 0, "0"}


def session_timeout() -> int:
    return int(getattr(settings, "POS_SESSION_TIMEOUT", 14400))


def session_extension() -> int:
    return int(getattr(settings, "POS_SESSION_EXTENSION", 3600))


def session_max_lifetime() -> int:
    return int(getattr(settings, "POS_SESSION_MAX_LIFETIME", 86400))


def normalize_terminal_id(terminal_id) -> str:
    value = str(terminal_id or "").strip()
    if not value:
        raise TerminalIdRequired()
    if len(value) > TERMINAL_ID_MAX_LENGTH:
        raise ValidationFailed(
            f"terminal_id must be at most {TERMINAL_ID_MAX_LENGTH} characters",
            details={"field": "terminal_id"},
        )
    return value


def _teardown(session: CartSession) -> None:
    cart = Cart.objects.filter(session=session).only("order_key").first()
    if cart is not None:
        release_stock(order_key=cart.order_key)
        release_stock(order_key=cart.direct_order_key)
    session.delete()


# =====================================================
# LIFECYCLE
# =====================================================

@transaction.atomic
def create_session(*, terminal_id, user=None, now=None) -> CartSession:
    terminal_id = normalize_terminal_id(terminal_id)
    now = now or timezone.now()

    existing = CartSession.objects.select_for_update().filter(terminal_id=terminal_id).first()
    if existing is not None:
        _teardown(existing)

    session = CartSession.objects.create(
        terminal_id=terminal_id,
        user=user if getattr(user, "is_authenticated", False) else None,
        expires_at=now + timedelta(seconds=session_timeout()),
        last_activity=now,
    )
    Cart.objects.create(session=session)

    logger.info(
        "pos session created",
        extra={
            "operation": "create_session",
            "terminal_id": terminal_id,
            "replaced": existing is not None,
        },
    )
    return session


@transaction.atomic
def open_session(*, terminal_id, user=None, now=None) -> CartSession:
    """
    Get-or-create for implicit first access. Never replaces a live session,
    so two first requests from the same terminal end up sharing one cart.
    """
    terminal_id = normalize_terminal_id(terminal_id)
    now = now or timezone.now()

    session, created = CartSession.objects.get_or_create(
        terminal_id=terminal_id,
        defaults={
            "user": user if getattr(user, "is_authenticated", False) else None,
            "expires_at": now + timedelta(seconds=session_timeout()),
            "last_activity": now,
        },
    )
    if created:
        Cart.objects.create(session=session)
        logger.info(
            "pos session created",
            extra={"operation": "open_session", "terminal_id": terminal_id, "replaced": False},
        )
    else:
        Cart.objects.get_or_create(session=session)
    return session


def get_session(terminal_id) -> CartSession | None:
    terminal_id = normalize_terminal_id(terminal_id)
    return (
        CartSession.objects.select_related("cart", "customer")
        .filter(terminal_id=terminal_id)
        .first()
    )


def resolve_session(*, terminal_id, user=None, create: bool = True, now=None) -> CartSession:
    """
    Session for a cart request.

    - unknown terminal: created (create=True) or SessionNotFound
    - expired: SessionExpired
    """
    now = now or timezone.now()
    session = get_session(terminal_id)

    if session is None:
        if not create:
            raise SessionNotFound(details={"terminal_id": str(terminal_id)})
        session = open_session(terminal_id=terminal_id, user=user, now=now)

    if session.is_expired(now):
        raise SessionExpired(details={"terminal_id": session.terminal_id})

    if not hasattr(session, "cart"):
        Cart.objects.get_or_create(session=session)
        session.refresh_from_db()

    return session


def validate_session(*, session_id, terminal_id, now=None) -> CartSession:
    terminal_id = normalize_terminal_id(terminal_id)
    session_id = str(session_id or "").strip()
    if not session_id:
        raise SessionInvalid("session_id is required")

    now = now or timezone.now()
    session = CartSession.objects.filter(session_id=session_id).first()
    if session is None:
        raise SessionInvalid()

    if session.terminal_id != terminal_id:
        logger.warning(
            "pos session terminal mismatch",
            extra={"operation": "validate_session", "terminal_id": terminal_id},
        )
        raise TerminalMismatch()

    if session.is_expired(now):
        raise SessionExpired(details={"terminal_id": terminal_id})

    CartSession.objects.filter(pk=session.pk).update(last_activity=now)
    session.last_activity = now
    return session


@transaction.atomic
def extend_session(*, terminal_id, seconds=None, now=None) -> CartSession:
    terminal_id = normalize_terminal_id(terminal_id)
    now = now or timezone.now()

    if seconds in (None, ""):
        seconds = session_extension()
    try:
        seconds = int(seconds)
    except (TypeError, ValueError):
        raise ValidationFailed("additional_time must be a whole number of seconds")
    if seconds <= 0:
        raise ValidationFailed("additional_time must be positive")

    session = CartSession.objects.select_for_update().filter(terminal_id=terminal_id).first()
    if session is None:
        raise SessionInvalid(details={"terminal_id": terminal_id})
    if session.is_expired(now):
        raise SessionExpired(details={"terminal_id": terminal_id})

    ceiling = now + timedelta(seconds=session_max_lifetime())
    session.expires_at = min(session.expires_at + timedelta(seconds=seconds), ceiling)
    session.last_activity = now
    session.save(update_fields=["expires_at", "last_activity", "updated_at"])

    logger.info(
        "pos session extended",
        extra={"operation": "extend_session", "terminal_id": terminal_id, "seconds": seconds},
    )
    return session


@transaction.atomic
def destroy_session(*, terminal_id) -> bool:
    terminal_id = normalize_terminal_id(terminal_id)
    session = CartSession.objects.select_for_update().filter(terminal_id=terminal_id).first()
    if session is None:
        return False

    _teardown(session)
    logger.info(
        "pos session destroyed",
        extra={"operation": "destroy_session", "terminal_id": terminal_id},
    )
    return True


# =====================================================
# SESSION ATTRIBUTES
# =====================================================

def set_customer(*, session: CartSession, customer_id) -> CartSession:
    if customer_id in GUEST_CUSTOMER_IDS:
        session.customer = None
    else:
        try:
            parsed = uuid.UUID(str(customer_id))
        except (TypeError, ValueError, AttributeError):
            raise ValidationFailed("customer_id must be a valid id", details={"field": "customer_id"})

        if get_customer(parsed) is None:
            raise CustomerNotFound(details={"customer_id": str(parsed)})
        session.customer_id = parsed

    session.save(update_fields=["customer", "updated_at"])
    return session


def set_customer_location(*, session: CartSession, location) -> CartSession:
    if not isinstance(location, dict):
        raise ValidationFailed("location must be an object", details={"field": "location"})

    country = str(location.get("country") or "").strip().upper()
    if country and len(country) != 2:
        raise ValidationFailed("country must be a 2-letter code", details={"field": "country"})

    session.location_country = country
    session.location_state = str(location.get("state") or "").strip()[:100]
    session.location_postcode = str(location.get("postcode") or "").strip().upper()[:20]
    session.location_city = str(location.get("city") or "").strip()[:100]
    session.save(
        update_fields=[
            "location_country",
            "location_state",
            "location_postcode",
            "location_city",
            "updated_at",
        ]
    )
    return session


# =====================================================
# HOUSEKEEPING
# =====================================================

def cleanup_expired_sessions(now=None) -> int:
    now = now or timezone.now()
    count = 0
    for session in CartSession.objects.filter(expires_at__lte=now):
        with transaction.atomic():
            _teardown(session)
        count += 1

    if count:
        logger.info(
            "expired pos sessions purged",
            extra={"operation": "cleanup_expired_sessions", "count": count},
        )
    return count


def latest_terminal_for(user, now=None) -> str | None:
    """Terminal of the user's most recently used, still-active session."""
    if not getattr(user, "is_authenticated", False):
        return None
    return (
        CartSession.objects.filter(user=user, expires_at__gt=now or timezone.now())
        .order_by("-last_activity")
        .values_list("terminal_id", flat=True)
        .first()
    )
