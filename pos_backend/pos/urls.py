"""
PATH: pos/urls.py

POS URLS

Purpose:
- Terminal cart lifecycle (contents, items, coupons, totals)
- Terminal session lifecycle
- Direct stock reservations
- Checkout (finalizes to Sale via checkout orchestrator)
"""

from django.urls import path

from pos.views import (
    CartAddView,
    CartApplyDiscountView,
    CartBatchAddView,
    CartCalculateView,
    CartCheckoutView,
    CartClearView,
    CartCustomerView,
    CartLocationView,
    CartRemoveDiscountView,
    CartRemoveView,
    CartStatusView,
    CartSummaryView,
    CartTaxesView,
    CartTotalsView,
    CartUpdateView,
    CartView,
    POSHealthCheckView,
    SessionCreateView,
    SessionDestroyView,
    SessionExtendView,
    SessionValidateView,
    StockReleaseView,
    StockReserveView,
)

app_name = "pos"

urlpatterns = [
    path("health/", POSHealthCheckView.as_view(), name="health"),

    # Cart
    path("cart/", CartView.as_view(), name="cart"),
    path("cart/add/", CartAddView.as_view(), name="cart-add"),
    path("cart/update/<str:item_key>/", CartUpdateView.as_view(), name="cart-update"),
    path("cart/remove/<str:item_key>/", CartRemoveView.as_view(), name="cart-remove"),
    path("cart/clear/", CartClearView.as_view(), name="cart-clear"),
    path("cart/totals/", CartTotalsView.as_view(), name="cart-totals"),
    path("cart/calculate/", CartCalculateView.as_view(), name="cart-calculate"),
    path("cart/taxes/", CartTaxesView.as_view(), name="cart-taxes"),
    path("cart/apply-discount/", CartApplyDiscountView.as_view(), name="cart-apply-discount"),
    path("cart/remove-discount/", CartRemoveDiscountView.as_view(), name="cart-remove-discount"),
    path("cart/customer/", CartCustomerView.as_view(), name="cart-customer"),
    path("cart/location/", CartLocationView.as_view(), name="cart-location"),
    path("cart/batch-add/", CartBatchAddView.as_view(), name="cart-batch-add"),
    path("cart/summary/", CartSummaryView.as_view(), name="cart-summary"),
    path("cart/status/", CartStatusView.as_view(), name="cart-status"),
    path("cart/checkout/", CartCheckoutView.as_view(), name="cart-checkout"),

    # Session
    path("cart/session/create/", SessionCreateView.as_view(), name="session-create"),
    path("cart/session/validate/", SessionValidateView.as_view(), name="session-validate"),
    path("cart/session/extend/", SessionExtendView.as_view(), name="session-extend"),
    path("cart/session/destroy/", SessionDestroyView.as_view(), name="session-destroy"),

    # Stock
    path("stock/reserve/", StockReserveView.as_view(), name="stock-reserve"),
    path("stock/release/", StockReleaseView.as_view(), name="stock-release"),
]
