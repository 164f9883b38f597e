from .cart import (
    AddCartItemSerializer,
    BatchAddSerializer,
    CartQuerySerializer,
    CheckoutSerializer,
    ClearCartSerializer,
    CouponSerializer,
    CustomerSerializer,
    LocationSerializer,
    TerminalScopedSerializer,
    UpdateCartItemSerializer,
)
from .session import (
    CartSessionSerializer,
    CreateSessionSerializer,
    ExtendSessionSerializer,
    ValidateSessionSerializer,
)
from .stock import ReleaseStockSerializer, ReserveStockSerializer

__all__ = [
    "AddCartItemSerializer",
    "BatchAddSerializer",
    "CartQuerySerializer",
    "CheckoutSerializer",
    "ClearCartSerializer",
    "CouponSerializer",
    "CustomerSerializer",
    "LocationSerializer",
    "TerminalScopedSerializer",
    "UpdateCartItemSerializer",
    "CartSessionSerializer",
    "CreateSessionSerializer",
    "ExtendSessionSerializer",
    "ValidateSessionSerializer",
    "ReleaseStockSerializer",
    "ReserveStockSerializer",
]
