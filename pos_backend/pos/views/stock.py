# pos/views/stock.py

"""
DIRECT STOCK RESERVATION VIEWS

For clients that hold stock outside the cart flow (e.g. a quote on screen).

Rules:
- order_key defaults to the terminal cart's direct_order_key, never to the
  cart's own key: the line holds stay equal to the cart lines.
- An explicit order_key that belongs to a cart is refused for the same reason.
"""

from __future__ import annotations

from drf_spectacular.utils import extend_schema

from permissions.roles import CAP_STOCK_RESERVE
from pos.models import Cart
from pos.serializers import ReleaseStockSerializer, ReserveStockSerializer
from pos.services.exceptions import ValidationFailed
from pos.services.reservations import available_quantity, release_stock, reserve_stock
from pos.views.helpers import POSAPIView, ok, validated_payload


def _direct_order_key(view, request, data, *, create: bool) -> str:
    order_key = (data.get("order_key") or "").strip()
    if not order_key:
        return view.get_session(request, create=create).cart.direct_order_key

    if Cart.objects.filter(order_key=order_key).exists():
        raise ValidationFailed(
            "order_key belongs to a cart; cart holds follow the cart lines",
            details={"field": "order_key"},
        )
    return order_key


class StockReserveView(POSAPIView):
    required_capability = CAP_STOCK_RESERVE

    @extend_schema(request=ReserveStockSerializer, responses={200: dict})
    def post(self, request):
        data = validated_payload(ReserveStockSerializer, request)
        order_key = _direct_order_key(self, request, data, create=True)

        reservation = reserve_stock(
            product_id=data["product_id"],
            quantity=data["quantity"],
            order_key=order_key,
            timeout=data.get("timeout"),
        )
        return ok(
            {
                "product_id": str(data["product_id"]),
                "order_key": order_key,
                "quantity": reservation.quantity if reservation else 0,
                "expires_at": reservation.expires_at.isoformat() if reservation else None,
                "available": available_quantity(data["product_id"]),
            }
        )


class StockReleaseView(POSAPIView):
    required_capability = CAP_STOCK_RESERVE

    @extend_schema(request=ReleaseStockSerializer, responses={200: dict})
    def post(self, request):
        data = validated_payload(ReleaseStockSerializer, request)
        order_key = _direct_order_key(self, request, data, create=False)

        released = release_stock(order_key=order_key, product_id=data.get("product_id"))
        return ok({"order_key": order_key, "released": released})
