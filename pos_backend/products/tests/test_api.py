from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from pos.services.reservations import reserve_stock
from products.models import Category, Product
from taxes.models import TaxRate

User = get_user_model()


class CatalogAPITests(TestCase):
    """
    GUARANTEES:
    - Catalog endpoints are read-only and staff-only
    - Availability shown to the till subtracts active reservations
    """

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.cashier = User.objects.create_user(email="cashier@example.com", password="pass", role="cashier")
        self.client.force_authenticate(user=self.cashier)

        self.category = Category.objects.create(name="Stationery", slug="stationery")
        self.product = Product.objects.create(
            category=self.category,
            sku="PEN-1",
            name="Ballpoint pen",
            price=Decimal("2.00"),
            stock_quantity=10,
        )
        Product.objects.create(sku="INK-1", name="Ink refill", price=Decimal("4.00"), stock_quantity=3)

    def test_list_and_search(self):
        res = self.client.get(reverse("products:products-list"), {"search": "pen"})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["count"], 1)

        res = self.client.get(reverse("products:products-search"), {"q": "ink"})
        self.assertEqual([p["sku"] for p in res.data["results"]], ["INK-1"])

    def test_detail_and_stock_show_available_to_sell(self):
        reserve_stock(product_id=self.product.id, quantity=4, order_key="pos_elsewhere")

        res = self.client.get(reverse("products:products-detail", args=[self.product.pk]))
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["available"], 6)

        res = self.client.get(reverse("products:products-stock", args=[self.product.pk]))
        self.assertEqual(res.data["stock_quantity"], 10)
        self.assertEqual(res.data["available"], 6)

    def test_tax_preview(self):
        TaxRate.objects.create(label="VAT", rate=Decimal("7.5000"), country="NG")

        res = self.client.get(
            reverse("products:products-tax", args=[self.product.pk]),
            {"country": "NG", "quantity": 4},
        )

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["total_tax"], "0.60")
        self.assertEqual(res.data["tax_lines"][0]["rate_label"], "VAT")

        res = self.client.get(reverse("products:products-tax", args=[self.product.pk]), {"country": "GH"})
        self.assertEqual(res.data["total_tax"], "0.00")

    def test_categories(self):
        res = self.client.get(reverse("products:categories-list"))
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data[0]["slug"], "stationery")

    def test_customers_cannot_browse(self):
        customer = User.objects.create_user(email="walkin@example.com", role="customer")
        self.client.force_authenticate(user=customer)

        res = self.client.get(reverse("products:products-list"))
        self.assertEqual(res.status_code, 403)
