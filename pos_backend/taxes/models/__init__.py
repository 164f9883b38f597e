from .tax_rate import TaxRate

__all__ = [
    "TaxRate",
]
