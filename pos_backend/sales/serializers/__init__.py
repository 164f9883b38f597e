from .sale import SaleSerializer
from .sale_item import SaleItemSerializer

__all__ = [
    "SaleSerializer",
    "SaleItemSerializer",
]
