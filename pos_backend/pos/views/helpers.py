# pos/views/helpers.py

"""
POS VIEW HELPERS

- POSAPIView: auth + capability + throttle defaults for every POS endpoint
- request payload merge (query params + body)
- terminal resolution:
    1) ?terminal_id=
    2) body terminal_id
    3) X-POS-Terminal header
    4) the caller's most recent active session
    5) TerminalIdRequired
- success envelope: {"success": true, "data": ...}
"""

from __future__ import annotations

from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle
from rest_framework.views import APIView

from permissions.roles import CAP_POS_OPERATE, HasCapability
from pos.services.exceptions import TerminalIdRequired
from pos.services.session_handler import (
    latest_terminal_for,
    normalize_terminal_id,
    resolve_session,
    validate_session,
)

TERMINAL_HEADER = "X-POS-Terminal"
SESSION_HEADER = "X-POS-Session"

WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


class POSWriteThrottle(UserRateThrottle):
    scope = "pos_write"

    def allow_request(self, request, view):
        if request.method not in WRITE_METHODS:
            return True
        return super().allow_request(request, view)


class POSPollThrottle(UserRateThrottle):
    scope = "pos_poll"


def ok(data=None, *, status=200) -> Response:
    return Response({"success": True, "data": data if data is not None else {}}, status=status)


def request_payload(request) -> dict:
    payload = {k: v for k, v in request.query_params.items()}
    if isinstance(request.data, dict):
        payload.update(request.data)
    return payload


def resolve_terminal_id(request, *, allow_latest: bool = True) -> str:
    raw = (request.query_params.get("terminal_id") or "").strip()

    if not raw and isinstance(request.data, dict):
        raw = str(request.data.get("terminal_id") or "").strip()

    if not raw:
        raw = (request.headers.get(TERMINAL_HEADER) or "").strip()

    if not raw and allow_latest:
        raw = latest_terminal_for(request.user) or ""

    if not raw:
        raise TerminalIdRequired()

    terminal_id = normalize_terminal_id(raw)
    request.pos_terminal_id = terminal_id
    return terminal_id


def session_token(request) -> str:
    token = (request.headers.get(SESSION_HEADER) or "").strip()
    if not token:
        token = (request.query_params.get("session_id") or "").strip()
    if not token and isinstance(request.data, dict):
        token = str(request.data.get("session_id") or "").strip()
    return token


class POSAPIView(APIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_POS_OPERATE
    throttle_classes = [POSWriteThrottle]

    def get_session(self, request, *, create: bool = True):
        """
        Session of the resolved terminal. When the client sends a session
        token (X-POS-Session / session_id) it must belong to that terminal.
        """
        terminal_id = resolve_terminal_id(request)
        token = session_token(request)
        if token:
            validate_session(session_id=token, terminal_id=terminal_id)
        return resolve_session(terminal_id=terminal_id, user=request.user, create=create)


def validated_payload(serializer_class, request) -> dict:
    serializer = serializer_class(data=request_payload(request))
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data
