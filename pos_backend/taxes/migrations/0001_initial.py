"""
======================================================
PATH: taxes/migrations/0001_initial.py
======================================================
MIGRATION: CREATE TaxRate

Purpose:
- Location-matched tax rates (country/state/postcode/city), stackable by
  priority, optionally compound.
"""

from __future__ import annotations

import uuid

from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="TaxRate",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("label", models.CharField(max_length=100)),
                (
                    "rate",
                    models.DecimalField(
                        decimal_places=4,
                        help_text="Percentage, e.g. 7.2500",
                        max_digits=7,
                    ),
                ),
                ("country", models.CharField(blank=True, max_length=2)),
                ("state", models.CharField(blank=True, max_length=100)),
                ("postcode", models.CharField(blank=True, max_length=20)),
                ("city", models.CharField(blank=True, max_length=100)),
                (
                    "tax_class",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Blank = standard rate class.",
                        max_length=50,
                    ),
                ),
                ("priority", models.PositiveSmallIntegerField(default=1)),
                ("compound", models.BooleanField(default=False)),
                ("order", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["priority", "order", "label"],
                "indexes": [
                    models.Index(
                        fields=["tax_class", "is_active"], name="taxrate_class_active_idx"
                    ),
                ],
            },
        ),
    ]
