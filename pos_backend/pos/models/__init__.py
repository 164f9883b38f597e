from .session import CartSession
from .cart import Cart
from .cart_item import CartItem
from .reservation import StockReservation

__all__ = [
    "CartSession",
    "Cart",
    "CartItem",
    "StockReservation",
]
