# taxes/admin.py

from django.contrib import admin

from taxes.models import TaxRate


@admin.register(TaxRate)
class TaxRateAdmin(admin.ModelAdmin):
    list_display = (
        "label",
        "rate",
        "country",
        "state",
        "postcode",
        "city",
        "tax_class",
        "priority",
        "compound",
        "order",
        "is_active",
    )
    list_filter = ("country", "tax_class", "compound", "is_active")
    search_fields = ("label", "country", "state", "postcode", "city")
    ordering = ("priority", "order")
