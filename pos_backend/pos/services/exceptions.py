# pos/services/exceptions.py

"""
======================================================
PATH: pos/services/exceptions.py
======================================================
POS DOMAIN ERRORS

Every error the cart / session / reservation services raise carries:
- code: stable machine-readable string (snake_case)
- http_status: the status the API layer answers with
- message: human readable, safe to show to a cashier
- details: structured state the caller can retry with (e.g. available qty)

Taxonomy:
- ValidationFailed (400)
- NotFound (404)
- Conflict (409)
- SessionInvalid (401)
- DependencyUnavailable (503)
- RateLimited (429)
"""

from __future__ import annotations


class POSError(Exception):
    """Base exception for POS domain failures."""

    code = "pos_error"
    http_status = 400
    default_message = "POS operation failed"

    def __init__(self, message: str | None = None, *, details: dict | None = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


# =====================================================
# 400
# =====================================================

class ValidationFailed(POSError):
    code = "validation_error"
    http_status = 400
    default_message = "Invalid request"


class TerminalIdRequired(ValidationFailed):
    code = "terminal_id_required"
    default_message = "terminal_id is required"


class CouponInvalid(ValidationFailed):
    code = "coupon_invalid"
    default_message = "Coupon cannot be applied"


class ConfirmationRequired(ValidationFailed):
    code = "confirmation_required"
    default_message = "This action requires confirm=true"


class EmptyCart(ValidationFailed):
    code = "empty_cart"
    default_message = "Cart is empty"


class InsufficientPayment(ValidationFailed):
    code = "insufficient_payment"
    default_message = "Amount tendered does not cover the total"


# =====================================================
# 404
# =====================================================

class NotFound(POSError):
    code = "not_found"
    http_status = 404
    default_message = "Not found"


class ProductNotFound(NotFound):
    code = "product_not_found"
    default_message = "Product not found"


class ItemNotFound(NotFound):
    code = "item_not_found"
    default_message = "Cart item not found"


class CouponNotApplied(NotFound):
    code = "coupon_not_applied"
    default_message = "Coupon is not applied to this cart"


class SessionNotFound(NotFound):
    code = "session_not_found"
    default_message = "No POS session for this terminal"


class CustomerNotFound(NotFound):
    code = "customer_not_found"
    default_message = "Customer not found"


# =====================================================
# 409
# =====================================================

class Conflict(POSError):
    code = "conflict"
    http_status = 409
    default_message = "Conflict"


class InsufficientStock(Conflict):
    code = "insufficient_stock"
    default_message = "Insufficient stock"

    def __init__(self, message=None, *, product_id=None, requested: int = 0, available: int = 0):
        self.product_id = product_id
        self.requested = int(requested)
        self.available = int(available)
        super().__init__(
            message or f"Insufficient stock. Available: {self.available}, Requested: {self.requested}",
            details={
                "product_id": str(product_id) if product_id else None,
                "requested": self.requested,
                "available": self.available,
            },
        )


class ProductNotPurchasable(Conflict):
    code = "product_not_purchasable"
    default_message = "Product is not available for sale"


class CouponAlreadyApplied(Conflict):
    code = "coupon_already_applied"
    default_message = "Coupon is already applied"


class StaleCartVersion(Conflict):
    code = "stale_cart_version"
    default_message = "Cart was modified by another request"


# =====================================================
# 401 / 503 / 429
# =====================================================

class SessionInvalid(POSError):
    code = "session_invalid"
    http_status = 401
    default_message = "POS session is not valid"


class SessionExpired(SessionInvalid):
    code = "session_expired"
    default_message = "POS session has expired"


class TerminalMismatch(SessionInvalid):
    code = "terminal_mismatch"
    default_message = "Session does not belong to this terminal"


class DependencyUnavailable(POSError):
    code = "dependency_unavailable"
    http_status = 503
    default_message = "A required service is unavailable"


class RateLimited(POSError):
    code = "rate_limited"
    http_status = 429
    default_message = "Too many requests"
