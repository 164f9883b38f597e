# sales/views/sale.py

"""
======================================================
PATH: sales/views/sale.py
======================================================
SALE VIEWSET (STAFF)

Purpose:
- Sales history: list + retrieve completed POS sales.
- Receipt endpoint (print-ready payload).

Security:
- Requires IsAuthenticated
- Requires ANY of: sales.view, pos.checkout

Filters (query params):
- terminal_id
- date_from / date_to (YYYY-MM-DD, on created_at)
- payment_method
- q (invoice number contains)
"""

from __future__ import annotations

from datetime import datetime

from drf_spectacular.utils import extend_schema
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from permissions.roles import CAP_POS_CHECKOUT, CAP_SALES_VIEW, HasAnyCapability
from sales.models import Sale
from sales.serializers import SaleSerializer


def _parse_date(value):
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return None


class SaleViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = SaleSerializer
    permission_classes = [IsAuthenticated, HasAnyCapability]
    required_any_capabilities = {CAP_SALES_VIEW, CAP_POS_CHECKOUT}

    def get_queryset(self):
        qs = Sale.objects.select_related("user", "customer").prefetch_related("items")
        params = self.request.query_params

        terminal_id = (params.get("terminal_id") or "").strip()
        if terminal_id:
            qs = qs.filter(terminal_id=terminal_id)

        payment_method = (params.get("payment_method") or "").strip().lower()
        if payment_method:
            qs = qs.filter(payment_method=payment_method)

        date_from = _parse_date(params.get("date_from"))
        if date_from:
            qs = qs.filter(created_at__date__gte=date_from)

        date_to = _parse_date(params.get("date_to"))
        if date_to:
            qs = qs.filter(created_at__date__lte=date_to)

        q = (params.get("q") or "").strip()
        if q:
            qs = qs.filter(invoice_no__icontains=q)

        return qs.order_by("-created_at")

    @extend_schema(responses={200: SaleSerializer})
    @action(detail=True, methods=["get"])
    def receipt(self, request, pk=None):
        return Response(SaleSerializer(self.get_object()).data)
