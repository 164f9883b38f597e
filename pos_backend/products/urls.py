# products/urls.py

"""
PRODUCTS URLS

Purpose:
- Register read-only catalog routes under /api/products/
    /api/products/products/
    /api/products/products/search/
    /api/products/categories/
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from products.views import CategoryViewSet, ProductViewSet

app_name = "products"

router = DefaultRouter()

router.register(r"categories", CategoryViewSet, basename="categories")
router.register(r"products", ProductViewSet, basename="products")

urlpatterns = [
    path("", include(router.urls)),
]
