# pos/signals.py

"""
Cart summaries are cached per cart version; price, coupon and tax-rate
writes do not bump any cart version, so they drop every cached summary.
"""

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from products.models import Coupon, Product
from products.services.cache import bump_generation
from taxes.models import TaxRate

from pos.services.cart_manager import TOTALS_NS


@receiver(post_save, sender=Product)
@receiver(post_delete, sender=Product)
@receiver(post_save, sender=Coupon)
@receiver(post_delete, sender=Coupon)
@receiver(post_save, sender=TaxRate)
@receiver(post_delete, sender=TaxRate)
def pricing_inputs_changed(sender, **kwargs):
    bump_generation(TOTALS_NS)
