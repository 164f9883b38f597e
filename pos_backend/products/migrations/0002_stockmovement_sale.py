"""
======================================================
PATH: products/migrations/0002_stockmovement_sale.py
======================================================
MIGRATION: LINK StockMovement -> Sale

Purpose:
- SALE movements reference the completed sale (added after sales.0001 exists).
"""

from __future__ import annotations

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    dependencies = [
        ("products", "0001_initial"),
        ("sales", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="stockmovement",
            name="sale",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="stock_movements",
                to="sales.sale",
            ),
        ),
    ]
