from .cart import (
    CartAddView,
    CartApplyDiscountView,
    CartBatchAddView,
    CartCalculateView,
    CartClearView,
    CartRemoveDiscountView,
    CartRemoveView,
    CartStatusView,
    CartSummaryView,
    CartTaxesView,
    CartTotalsView,
    CartUpdateView,
    CartView,
)
from .checkout import CartCheckoutView
from .health import POSHealthCheckView
from .session import (
    CartCustomerView,
    CartLocationView,
    SessionCreateView,
    SessionDestroyView,
    SessionExtendView,
    SessionValidateView,
)
from .stock import StockReleaseView, StockReserveView

__all__ = [
    "CartAddView",
    "CartApplyDiscountView",
    "CartBatchAddView",
    "CartCalculateView",
    "CartCheckoutView",
    "CartClearView",
    "CartCustomerView",
    "CartLocationView",
    "CartRemoveDiscountView",
    "CartRemoveView",
    "CartStatusView",
    "CartSummaryView",
    "CartTaxesView",
    "CartTotalsView",
    "CartUpdateView",
    "CartView",
    "POSHealthCheckView",
    "SessionCreateView",
    "SessionDestroyView",
    "SessionExtendView",
    "SessionValidateView",
    "StockReleaseView",
    "StockReserveView",
]
