# taxes/signals.py

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from taxes.models import TaxRate
from taxes.services.tax_calculator import clear_cache


@receiver(post_save, sender=TaxRate)
@receiver(post_delete, sender=TaxRate)
def tax_rates_changed(sender, **kwargs):
    clear_cache()
