# products/management/commands/seed_products.py

from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from products.models import Category, Coupon, Product
from products.services import receive_stock


class Command(BaseCommand):
    help = "Seed categories, products (with a variable product), stock and demo coupons"

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write(self.style.WARNING("Seeding catalog..."))

        # -------------------------------
        # CATEGORIES
        # -------------------------------
        category_objs = {}
        for name in ["Groceries", "Beverages", "Apparel", "Services"]:
            obj, _ = Category.objects.get_or_create(name=name, defaults={"slug": name.lower()})
            category_objs[name] = obj

        # -------------------------------
        # SIMPLE PRODUCTS
        # -------------------------------
        products_data = [
            ("RICE-5KG", "Rice 5kg", "Groceries", "12.50", True, 40),
            ("MILK-1L", "Milk 1L", "Groceries", "1.20", True, 120),
            ("COLA-330", "Cola 330ml", "Beverages", "0.90", True, 200),
            ("WATER-1L", "Still Water 1L", "Beverages", "0.60", True, 150),
            ("GIFTWRAP", "Gift Wrapping", "Services", "2.00", False, 0),
        ]

        for sku, name, cat, price, manage_stock, qty in products_data:
            product, created = Product.objects.get_or_create(
                sku=sku,
                defaults={
                    "name": name,
                    "category": category_objs[cat],
                    "price": Decimal(price),
                    "manage_stock": manage_stock,
                    "tax_status": (
                        Product.TaxStatus.NONE if cat == "Services" else Product.TaxStatus.TAXABLE
                    ),
                },
            )
            if created and manage_stock and qty:
                receive_stock(product=product, quantity=qty, note="seed")

        # -------------------------------
        # VARIABLE PRODUCT
        # -------------------------------
        tee, _ = Product.objects.get_or_create(
            sku="TEE",
            defaults={
                "name": "T-Shirt",
                "category": category_objs["Apparel"],
                "price": Decimal("15.00"),
                "manage_stock": False,
            },
        )
        for size in ["S", "M", "L"]:
            variation, created = Product.objects.get_or_create(
                sku=f"TEE-{size}",
                defaults={
                    "parent": tee,
                    "name": f"T-Shirt ({size})",
                    "category": category_objs["Apparel"],
                    "price": Decimal("15.00"),
                    "attributes": {"size": size},
                },
            )
            if created:
                receive_stock(product=variation, quantity=10, note="seed")

        # -------------------------------
        # COUPONS
        # -------------------------------
        Coupon.objects.get_or_create(
            code="save10",
            defaults={"discount_type": Coupon.DiscountType.PERCENT, "amount": Decimal("10.00")},
        )
        Coupon.objects.get_or_create(
            code="fiveoff",
            defaults={
                "discount_type": Coupon.DiscountType.FIXED_CART,
                "amount": Decimal("5.00"),
                "minimum_spend": Decimal("20.00"),
            },
        )

        self.stdout.write(self.style.SUCCESS("Catalog seeded successfully."))
