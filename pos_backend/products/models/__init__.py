"""
PATH: products/models/__init__.py

Products models export surface.
"""

from .category import Category
from .coupon import Coupon
from .product import Product
from .stock_movement import StockMovement

__all__ = [
    "Category",
    "Coupon",
    "Product",
    "StockMovement",
]
