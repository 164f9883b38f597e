# products/views/__init__.py

"""
Products views package exports.
"""

from .product import CategoryViewSet, ProductViewSet

__all__ = [
    "CategoryViewSet",
    "ProductViewSet",
]
