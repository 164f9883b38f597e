# products/views/product.py

"""
CATALOG VIEWS (READ-ONLY)

Purpose:
- Browse endpoints used by the till to find products before adding to cart.

Routes (under /api/products/):
- GET products/                 paginated list (django-filter + search)
- GET products/<id>/            detail incl. variations (cached facade) + live availability
- GET products/search/?q=       quick search (cached facade, short TTL)
- GET products/<id>/stock/      stock snapshot + available-to-sell
- GET products/<id>/tax/        tax preview for a location
- GET categories/               category list (cached facade)

Rules:
- Catalog writes happen in Django admin; no write endpoints here.
"""

import uuid

from django.http import Http404
from django.shortcuts import get_object_or_404
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import filters, serializers, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from permissions.roles import CAP_CATALOG_VIEW, HasCapability
from pos.services.reservations import available_quantity
from products.models import Category, Product
from products.serializers import CategorySerializer, ProductSerializer
from products.services import catalog
from taxes.services.tax_calculator import calculate_product_tax


class ProductViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = ProductSerializer
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_CATALOG_VIEW
    lookup_value_regex = "[0-9a-fA-F-]{32,36}"

    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ["category", "parent", "is_purchasable", "manage_stock"]
    search_fields = ["name", "sku"]

    def get_queryset(self):
        return Product.objects.select_related("category").filter(is_active=True).order_by("name")

    @extend_schema(
        responses={200: dict, 404: OpenApiResponse(description="Product not found")},
        description="Product detail (cached) with live available-to-sell quantities.",
    )
    def retrieve(self, request, *args, **kwargs):
        product = get_object_or_404(Product, pk=kwargs.get(self.lookup_field), is_active=True)

        payload = catalog.get_product_data(product.pk)
        if payload is None:
            raise Http404

        live = {
            str(pid): row
            for pid, row in catalog.fresh_products(
                [product.pk, *[v["id"] for v in payload["variations"]]]
            ).items()
        }

        data = dict(payload)
        data["available"] = available_quantity(product)
        data["variations"] = [
            {**v, "available": available_quantity(live[v["id"]])}
            for v in payload["variations"]
            if v["id"] in live
        ]
        return Response(data)

    @extend_schema(
        parameters=[
            OpenApiParameter(name="q", type=str, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="category", type=str, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="limit", type=int, location=OpenApiParameter.QUERY, required=False),
        ],
        responses={200: dict},
        description="Quick product search for the till (cached).",
    )
    @action(detail=False, methods=["get"], url_path="search")
    def search(self, request):
        q = request.query_params.get("q", "")
        category_id = (request.query_params.get("category") or "").strip() or None
        try:
            limit = int(request.query_params.get("limit") or 20)
        except ValueError:
            limit = 20

        if category_id:
            try:
                category_id = uuid.UUID(category_id)
            except ValueError:
                raise serializers.ValidationError({"category": "Must be a valid UUID."})

        return Response({"results": catalog.search_products(q, category_id=category_id, limit=limit)})

    @extend_schema(responses={200: dict}, description="Stock snapshot plus live available-to-sell.")
    @action(detail=True, methods=["get"], url_path="stock")
    def stock(self, request, pk=None):
        level = catalog.get_stock_level(pk)
        if level is None:
            raise Http404

        return Response(
            {
                "product_id": str(pk),
                "manage_stock": level["manage_stock"],
                "stock_quantity": level["stock_quantity"],
                "available": available_quantity(pk),
            }
        )

    @extend_schema(
        parameters=[
            OpenApiParameter(name=name, type=str, location=OpenApiParameter.QUERY, required=False)
            for name in ("country", "state", "postcode", "city")
        ]
        + [OpenApiParameter(name="quantity", type=int, location=OpenApiParameter.QUERY, required=False)],
        responses={200: dict},
        description="Tax preview for a product at a location.",
    )
    @action(detail=True, methods=["get"], url_path="tax")
    def tax(self, request, pk=None):
        product = get_object_or_404(Product, pk=pk, is_active=True)
        try:
            quantity = max(1, int(request.query_params.get("quantity") or 1))
        except ValueError:
            raise serializers.ValidationError({"quantity": "Must be a whole number."})

        location = {k: request.query_params.get(k, "") for k in ("country", "state", "postcode", "city")}
        result = calculate_product_tax(product, location, quantity=quantity)
        return Response({"product_id": str(product.pk), "quantity": quantity, **result.to_dict()})


class CategoryViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = CategorySerializer
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_CATALOG_VIEW
    pagination_class = None

    def get_queryset(self):
        return Category.objects.filter(is_active=True).order_by("name")

    @extend_schema(responses={200: CategorySerializer(many=True)})
    def list(self, request, *args, **kwargs):
        return Response(catalog.list_categories())
