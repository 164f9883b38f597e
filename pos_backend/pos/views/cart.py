# pos/views/cart.py

"""
POS CART VIEWS

Thin HTTP layer over pos.services.cart_manager:
- validate request shape (serializers)
- resolve terminal -> session
- call the service, wrap the result in the success envelope

Error translation is centralised in pos.exceptions.pos_exception_handler.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiExample, extend_schema

from pos.serializers import (
    AddCartItemSerializer,
    BatchAddSerializer,
    CartQuerySerializer,
    ClearCartSerializer,
    CouponSerializer,
    TerminalScopedSerializer,
    UpdateCartItemSerializer,
)
from pos.services import cart_manager
from pos.services.exceptions import ConfirmationRequired
from pos.views.helpers import POSAPIView, POSPollThrottle, ok, validated_payload


class CartView(POSAPIView):
    """Current cart contents (totals included unless calculate_totals=false)."""

    @extend_schema(parameters=[CartQuerySerializer], responses={200: dict})
    def get(self, request):
        data = validated_payload(CartQuerySerializer, request)
        session = self.get_session(request)
        return ok(
            cart_manager.get_cart_contents(
                session=session,
                with_totals=data.get("calculate_totals", True),
            )
        )


class CartAddView(POSAPIView):
    @extend_schema(
        request=AddCartItemSerializer,
        responses={201: dict},
        examples=[
            OpenApiExample(
                "Variation with custom data",
                value={
                    "terminal_id": "till-01",
                    "product_id": "0b8f6f54-3f1f-4c43-8c4c-0f7d3c5b2b11",
                    "variation_id": "5a3f2f0e-1c1e-4e52-9a4e-8a7b0c6d9e21",
                    "quantity": 2,
                    "variation_data": {"size": "L"},
                    "item_data": {"engraving": "AB"},
                },
                request_only=True,
            )
        ],
    )
    def post(self, request):
        data = validated_payload(AddCartItemSerializer, request)
        session = self.get_session(request)

        item = cart_manager.add_to_cart(
            session=session,
            product_id=data["product_id"],
            quantity=data["quantity"],
            variation_id=data.get("variation_id"),
            variation_data=data.get("variation_data"),
            item_data=data.get("item_data"),
            expected_version=data.get("expected_version"),
        )
        contents = cart_manager.get_cart_contents(session=session)
        return ok({"item_key": item.item_key, "cart": contents}, status=201)


class CartUpdateView(POSAPIView):
    @extend_schema(request=UpdateCartItemSerializer, responses={200: dict})
    def put(self, request, item_key):
        data = validated_payload(UpdateCartItemSerializer, request)
        session = self.get_session(request, create=False)

        item = cart_manager.update_cart_item_quantity(
            session=session,
            item_key=item_key,
            quantity=data["quantity"],
            expected_version=data.get("expected_version"),
        )
        return ok(
            {
                "item_key": item_key,
                "removed": item is None,
                "cart": cart_manager.get_cart_contents(session=session),
            }
        )


class CartRemoveView(POSAPIView):
    @extend_schema(request=TerminalScopedSerializer, responses={200: dict})
    def delete(self, request, item_key):
        data = validated_payload(TerminalScopedSerializer, request)
        session = self.get_session(request, create=False)

        cart_manager.remove_cart_item(
            session=session,
            item_key=item_key,
            expected_version=data.get("expected_version"),
        )
        return ok({"item_key": item_key, "cart": cart_manager.get_cart_contents(session=session)})


class CartClearView(POSAPIView):
    @extend_schema(request=ClearCartSerializer, responses={200: dict})
    def delete(self, request):
        data = validated_payload(ClearCartSerializer, request)
        if not data.get("confirm"):
            raise ConfirmationRequired("Clearing the cart requires confirm=true")

        session = self.get_session(request, create=False)
        removed = cart_manager.clear_cart(session=session, expected_version=data.get("expected_version"))
        return ok({"removed": removed, "cart": cart_manager.get_cart_contents(session=session)})


class CartTotalsView(POSAPIView):
    @extend_schema(responses={200: dict})
    def get(self, request):
        session = self.get_session(request)
        totals = cart_manager.calculate_totals(session=session)
        return ok(totals.to_dict())


class CartCalculateView(POSAPIView):
    """Force a recompute; bypasses the tax cache."""

    @extend_schema(request=TerminalScopedSerializer, responses={200: dict})
    def post(self, request):
        session = self.get_session(request)
        totals = cart_manager.calculate_totals(session=session, use_cache=False)
        return ok(totals.to_dict())


class CartTaxesView(POSAPIView):
    @extend_schema(responses={200: dict})
    def get(self, request):
        session = self.get_session(request)
        totals = cart_manager.calculate_totals(session=session)
        return ok(
            {
                "tax_lines": [t.to_dict() for t in totals.tax_lines],
                "total_tax": f"{totals.total_tax:.2f}",
                "prices_include_tax": totals.prices_include_tax,
                "customer_location": session.customer_location,
            }
        )


class CartApplyDiscountView(POSAPIView):
    @extend_schema(request=CouponSerializer, responses={200: dict})
    def post(self, request):
        data = validated_payload(CouponSerializer, request)
        session = self.get_session(request, create=False)

        coupon = cart_manager.apply_coupon(
            session=session,
            code=data["code"],
            expected_version=data.get("expected_version"),
        )
        return ok({"code": coupon.code, "cart": cart_manager.get_cart_contents(session=session)})


class CartRemoveDiscountView(POSAPIView):
    @extend_schema(request=CouponSerializer, responses={200: dict})
    def delete(self, request):
        data = validated_payload(CouponSerializer, request)
        session = self.get_session(request, create=False)

        cart_manager.remove_coupon(
            session=session,
            code=data["code"],
            expected_version=data.get("expected_version"),
        )
        return ok({"code": data["code"], "cart": cart_manager.get_cart_contents(session=session)})


class CartBatchAddView(POSAPIView):
    @extend_schema(request=BatchAddSerializer, responses={200: dict})
    def post(self, request):
        data = validated_payload(BatchAddSerializer, request)
        session = self.get_session(request)

        result = cart_manager.batch_add_to_cart(
            session=session,
            items=list(data["items"]),
            expected_version=data.get("expected_version"),
        )
        return ok(result)


class CartSummaryView(POSAPIView):
    throttle_classes = [POSPollThrottle]

    @extend_schema(responses={200: dict})
    def get(self, request):
        session = self.get_session(request)
        return ok(cart_manager.get_cart_summary(session=session))


class CartStatusView(POSAPIView):
    throttle_classes = [POSPollThrottle]

    @extend_schema(responses={200: dict})
    def get(self, request):
        session = self.get_session(request)
        return ok(cart_manager.check_cart_status(session=session))
