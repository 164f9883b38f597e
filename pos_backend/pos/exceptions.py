# pos/exceptions.py

"""
======================================================
PATH: pos/exceptions.py
======================================================
API ERROR ENVELOPE (DRF EXCEPTION_HANDLER)

Every error leaves the API as:

    {"success": false, "error": {"code": ..., "message": ..., "details": {...}}}

Mapping:
- POSError subclasses       -> their own code / http_status
- DRF ValidationError       -> 400 validation_error (field errors in details)
- NotAuthenticated / AuthenticationFailed -> 401
- PermissionDenied          -> 403
- Http404 / DRF NotFound    -> 404
- Throttled                 -> 429 rate_limited (+ Retry-After)
- DatabaseError             -> 503 dependency_unavailable
- anything else             -> 500 internal_error (logged, generic message)
"""

from __future__ import annotations

import logging

from django.db import DatabaseError
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from pos.services.exceptions import DependencyUnavailable, POSError, RateLimited

logger = logging.getLogger(__name__)

INTERNAL_MESSAGE = "An unexpected error occurred. Please try again."


def error_response(*, code: str, message: str, http_status: int, details=None, headers=None):
    return Response(
        {
            "success": False,
            "error": {
                "code": code,
                "message": message,
                "details": details or {},
            },
        },
        status=http_status,
        headers=headers,
    )


def _context_terminal(context) -> str:
    request = (context or {}).get("request")
    if request is None:
        return ""
    return str(getattr(request, "pos_terminal_id", "") or "")


def _operation(context) -> str:
    view = (context or {}).get("view")
    return view.__class__.__name__ if view is not None else ""


def _from_pos_error(exc: POSError, headers=None):
    return error_response(
        code=exc.code,
        message=exc.message,
        http_status=exc.http_status,
        details=exc.details,
        headers=headers,
    )


def pos_exception_handler(exc, context):
    if isinstance(exc, POSError):
        if exc.http_status >= 500:
            logger.error(
                "pos dependency failure",
                extra={"operation": _operation(context), "terminal_id": _context_terminal(context)},
            )
        return _from_pos_error(exc)

    if isinstance(exc, DatabaseError):
        logger.exception(
            "database unavailable",
            extra={"operation": _operation(context), "terminal_id": _context_terminal(context)},
        )
        return _from_pos_error(DependencyUnavailable("The data store is temporarily unavailable."))

    if isinstance(exc, drf_exceptions.Throttled):
        wait = int(exc.wait) if exc.wait is not None else None
        return _from_pos_error(
            RateLimited(details={"retry_after": wait}),
            headers={"Retry-After": str(wait)} if wait is not None else None,
        )

    response = drf_exception_handler(exc, context)

    if response is None:
        logger.exception(
            "unhandled api error",
            extra={"operation": _operation(context), "terminal_id": _context_terminal(context)},
        )
        return error_response(
            code="internal_error",
            message=INTERNAL_MESSAGE,
            http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, drf_exceptions.ValidationError):
        code, message, details = "validation_error", "Invalid request", {"fields": response.data}
    elif isinstance(exc, (drf_exceptions.NotAuthenticated, drf_exceptions.AuthenticationFailed)):
        code, message, details = "unauthorized", str(exc.detail), {}
    elif isinstance(exc, drf_exceptions.PermissionDenied):
        code, message, details = "forbidden", str(exc.detail), {}
    elif isinstance(exc, drf_exceptions.NotFound) or response.status_code == 404:
        code, message, details = "not_found", "Not found", {}
    elif isinstance(exc, drf_exceptions.APIException):
        code, message, details = str(exc.default_code), str(exc.detail), {}
    else:
        code, message, details = "error", "Request failed", {}

    headers = {k: v for k, v in response.items() if k in ("WWW-Authenticate", "Allow")}
    return error_response(
        code=code,
        message=message,
        http_status=response.status_code,
        details=details,
        headers=headers or None,
    )
