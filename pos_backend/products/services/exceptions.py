# products/services/exceptions.py

"""
CATALOG SERVICE ERRORS

Raised by the catalog facade and inventory services. Callers (cart manager,
checkout) translate them into their own error taxonomy.
"""


class CatalogError(Exception):
    """Base exception for catalog facade failures."""


class ProductMissing(CatalogError):
    """Raised when a product or variation id does not resolve."""


class ProductNotForSale(CatalogError):
    """Raised when a product exists but cannot be sold right now."""


class CouponRejected(CatalogError):
    """Raised when a coupon code cannot be applied to the current cart."""

    def __init__(self, reason: str, message: str | None = None):
        self.reason = reason
        super().__init__(message or reason)


class InsufficientOnHand(CatalogError):
    """Raised when on-hand stock cannot cover a deduction."""

    def __init__(self, *, product_id, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock. Available: {available}, Requested: {requested}"
        )
