# pos/views/session.py

"""
POS SESSION VIEWS

create / validate / extend / destroy for the terminal session, plus the
session attributes that feed totals (customer, tax location).
"""

from __future__ import annotations

from drf_spectacular.utils import extend_schema

from pos.serializers import (
    CartSessionSerializer,
    CreateSessionSerializer,
    CustomerSerializer,
    ExtendSessionSerializer,
    LocationSerializer,
    ValidateSessionSerializer,
)
from pos.services import session_handler
from pos.services.exceptions import SessionInvalid
from pos.views.helpers import (
    POSAPIView,
    POSPollThrottle,
    session_token,
    ok,
    resolve_terminal_id,
    validated_payload,
)


class SessionCreateView(POSAPIView):
    @extend_schema(request=CreateSessionSerializer, responses={201: CartSessionSerializer})
    def post(self, request):
        validated_payload(CreateSessionSerializer, request)
        terminal_id = resolve_terminal_id(request, allow_latest=False)

        session = session_handler.create_session(terminal_id=terminal_id, user=request.user)
        return ok(CartSessionSerializer(session).data, status=201)


class SessionValidateView(POSAPIView):
    throttle_classes = [POSPollThrottle]

    @extend_schema(parameters=[ValidateSessionSerializer], responses={200: CartSessionSerializer})
    def get(self, request):
        validated_payload(ValidateSessionSerializer, request)
        terminal_id = resolve_terminal_id(request)
        token = session_token(request)
        if not token:
            raise SessionInvalid("session_id is required")

        session = session_handler.validate_session(session_id=token, terminal_id=terminal_id)
        return ok(CartSessionSerializer(session).data)


class SessionExtendView(POSAPIView):
    @extend_schema(request=ExtendSessionSerializer, responses={200: CartSessionSerializer})
    def put(self, request):
        data = validated_payload(ExtendSessionSerializer, request)
        terminal_id = resolve_terminal_id(request)

        session = session_handler.extend_session(
            terminal_id=terminal_id,
            seconds=data.get("additional_time"),
        )
        return ok(CartSessionSerializer(session).data)


class SessionDestroyView(POSAPIView):
    @extend_schema(request=CreateSessionSerializer, responses={200: dict})
    def delete(self, request):
        terminal_id = resolve_terminal_id(request)
        destroyed = session_handler.destroy_session(terminal_id=terminal_id)
        return ok({"terminal_id": terminal_id, "destroyed": destroyed})


class CartCustomerView(POSAPIView):
    @extend_schema(request=CustomerSerializer, responses={200: CartSessionSerializer})
    def put(self, request):
        data = validated_payload(CustomerSerializer, request)
        session = self.get_session(request)

        session = session_handler.set_customer(session=session, customer_id=data.get("customer_id"))
        return ok(CartSessionSerializer(session).data)


class CartLocationView(POSAPIView):
    @extend_schema(request=LocationSerializer, responses={200: CartSessionSerializer})
    def put(self, request):
        data = validated_payload(LocationSerializer, request)
        session = self.get_session(request)

        session = session_handler.set_customer_location(
            session=session,
            location={k: data.get(k, "") for k in ("country", "state", "postcode", "city")},
        )
        return ok(CartSessionSerializer(session).data)
