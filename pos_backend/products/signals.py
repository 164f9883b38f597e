# products/signals.py

"""
CATALOG CACHE INVALIDATION

Any write to a catalog row bumps the catalog cache generation, so cached
browse payloads (product detail, search, categories, stock) are rebuilt on
next read. Customer writes bump the customer generation.
"""

from django.contrib.auth import get_user_model
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from products.models import Category, Coupon, Product
from products.services.catalog import invalidate_catalog, invalidate_customers


@receiver(post_save, sender=Product)
@receiver(post_delete, sender=Product)
@receiver(post_save, sender=Category)
@receiver(post_delete, sender=Category)
@receiver(post_save, sender=Coupon)
@receiver(post_delete, sender=Coupon)
def catalog_changed(sender, **kwargs):
    invalidate_catalog()


@receiver(post_save, sender=get_user_model())
def customer_changed(sender, **kwargs):
    invalidate_customers()
