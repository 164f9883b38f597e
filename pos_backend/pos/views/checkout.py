# pos/views/checkout.py

from __future__ import annotations

from drf_spectacular.utils import OpenApiExample, extend_schema

from permissions.roles import CAP_POS_CHECKOUT
from pos.serializers import CheckoutSerializer
from pos.views.helpers import POSAPIView, ok, validated_payload
from sales.serializers import SaleSerializer
from sales.services.checkout_orchestrator import checkout_cart


class CartCheckoutView(POSAPIView):
    """
    Complete the terminal's cart as a Sale.

    Calls:
    - sales.services.checkout_orchestrator.checkout_cart()
    """

    required_capability = CAP_POS_CHECKOUT

    @extend_schema(
        request=CheckoutSerializer,
        responses={201: SaleSerializer},
        examples=[
            OpenApiExample(
                "Cash with change",
                value={"terminal_id": "till-01", "payment_method": "cash", "amount_tendered": "50.00"},
                request_only=True,
            )
        ],
    )
    def post(self, request):
        data = validated_payload(CheckoutSerializer, request)
        session = self.get_session(request, create=False)

        sale = checkout_cart(
            user=request.user,
            session=session,
            payment_method=data.get("payment_method") or "cash",
            amount_tendered=data.get("amount_tendered"),
            expected_version=data.get("expected_version"),
        )
        return ok(SaleSerializer(sale).data, status=201)
