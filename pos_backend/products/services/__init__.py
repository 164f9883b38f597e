from .inventory import adjust_stock, deduct_for_sale, receive_stock

__all__ = [
    "adjust_stock",
    "deduct_for_sale",
    "receive_stock",
]
