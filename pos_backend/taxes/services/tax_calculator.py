# taxes/services/tax_calculator.py

"""
======================================================
PATH: taxes/services/tax_calculator.py
======================================================
TAX CALCULATOR

Purpose:
- Turn (taxable lines after discount, customer location, tax settings)
  into an ordered list of tax lines plus per-line tax amounts.
- Deterministic and side-effect free apart from the advisory result cache.

Rules:
- Money is Decimal, 2dp, ROUND_HALF_UP.
- One matching rate per priority; priorities stack in ascending order.
- Compound rates are charged on the line amount plus the taxes already
  computed for that line.
- prices_include_tax: the line amount already contains tax; tax is backed
  out so that net + tax == amount.
- round_at_subtotal: taxes are summed per rate unrounded and rounded once
  per rate; otherwise every (line, rate) amount is rounded.
- Caching is keyed by a fingerprint of (lines, location, settings). A cache
  miss or a cache outage never changes the result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings

from products.services.cache import (
    bump_generation,
    cache_delete,
    cache_get,
    cache_set,
    fingerprint,
    versioned_key,
)
from taxes.models import TaxRate

logger = logging.getLogger(__name__)

TAX_NS = "taxes"

ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

DISPLAY_EXCL = "excl"
DISPLAY_INCL = "incl"


def _money(value) -> Decimal:
    return Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


# =====================================================
# INPUT / OUTPUT SHAPES
# =====================================================

@dataclass(frozen=True)
class TaxSettings:
    enabled: bool = True
    prices_include_tax: bool = False
    display_mode: str = DISPLAY_EXCL
    round_at_subtotal: bool = False
    cache_enabled: bool = True
    cache_ttl: int = 300

    @classmethod
    def from_settings(cls) -> "TaxSettings":
        mode = str(getattr(settings, "TAX_DISPLAY_MODE", DISPLAY_EXCL) or DISPLAY_EXCL).lower()
        return cls(
            enabled=bool(getattr(settings, "TAXES_ENABLED", True)),
            prices_include_tax=bool(getattr(settings, "TAX_PRICES_INCLUDE_TAX", False)),
            display_mode=DISPLAY_INCL if mode == DISPLAY_INCL else DISPLAY_EXCL,
            round_at_subtotal=bool(getattr(settings, "TAX_ROUND_AT_SUBTOTAL", False)),
            cache_enabled=bool(getattr(settings, "TAX_CACHE_ENABLED", True)),
            cache_ttl=int(getattr(settings, "TAX_CACHE_TTL", 300)),
        )

    def fingerprint_payload(self) -> dict:
        return {
            "enabled": self.enabled,
            "incl": self.prices_include_tax,
            "round_at_subtotal": self.round_at_subtotal,
        }


@dataclass(frozen=True)
class TaxableLine:
    key: str
    amount: Decimal
    tax_class: str = ""
    taxable: bool = True


@dataclass
class TaxLine:
    rate_id: str
    label: str
    rate: Decimal
    compound: bool
    amount: Decimal

    def to_dict(self) -> dict:
        return {
            "rate_id": self.rate_id,
            "rate_label": self.label,
            "rate": f"{self.rate:.4f}",
            "compound": self.compound,
            "amount": f"{self.amount:.2f}",
        }


@dataclass
class TaxResult:
    tax_lines: list[TaxLine] = field(default_factory=list)
    line_taxes: dict[str, Decimal] = field(default_factory=dict)
    total_tax: Decimal = ZERO
    prices_include_tax: bool = False

    def to_dict(self) -> dict:
        return {
            "tax_lines": [t.to_dict() for t in self.tax_lines],
            "line_taxes": {k: f"{v:.2f}" for k, v in self.line_taxes.items()},
            "total_tax": f"{self.total_tax:.2f}",
            "prices_include_tax": self.prices_include_tax,
        }


# =====================================================
# RATE MATCHING
# =====================================================

def _normalize_location(location) -> dict:
    location = location or {}
    return {
        "country": str(location.get("country") or "").strip().upper(),
        "state": str(location.get("state") or "").strip(),
        "postcode": str(location.get("postcode") or "").strip().upper(),
        "city": str(location.get("city") or "").strip(),
    }


def get_matching_rates(location, tax_class: str = "") -> list[TaxRate]:
    """
    Rates that apply to `location` for `tax_class`, one per priority,
    ascending by priority.
    """
    location = _normalize_location(location)
    chosen: dict[int, TaxRate] = {}

    candidates = TaxRate.objects.filter(is_active=True, tax_class=tax_class or "").order_by(
        "priority", "order", "label"
    )
    for rate in candidates:
        if rate.priority in chosen:
            continue
        if rate.matches(location):
            chosen[rate.priority] = rate

    return [chosen[p] for p in sorted(chosen)]


def _exclusive_taxes(net: Decimal, rates: list[TaxRate]) -> list[Decimal]:
    taxes: list[Decimal] = []
    for rate in rates:
        base = net + sum(taxes, Decimal("0")) if rate.compound else net
        taxes.append(base * Decimal(rate.rate) / HUNDRED)
    return taxes


def _back_out_net(gross: Decimal, rates: list[TaxRate]) -> Decimal:
    # gross = net * multiplier, where compound rates multiply the running total
    multiplier = Decimal("1")
    flat = Decimal("0")
    for rate in rates:
        r = Decimal(rate.rate) / HUNDRED
        if rate.compound:
            multiplier = (multiplier + flat) * (1 + r)
            flat = Decimal("0")
        else:
            flat += r
    multiplier += flat
    return gross / multiplier


# =====================================================
# CALCULATION
# =====================================================

def _compute(lines: list[TaxableLine], location, config: TaxSettings) -> TaxResult:
    result = TaxResult(prices_include_tax=config.prices_include_tax)

    if not config.enabled:
        result.line_taxes = {line.key: ZERO for line in lines}
        return result

    rates_by_class: dict[str, list[TaxRate]] = {}
    per_rate: dict[str, Decimal] = {}
    rate_meta: dict[str, TaxRate] = {}

    for line in lines:
        amount = Decimal(line.amount)
        if not line.taxable or amount <= 0:
            result.line_taxes[line.key] = ZERO
            continue

        tax_class = line.tax_class or ""
        if tax_class not in rates_by_class:
            rates_by_class[tax_class] = get_matching_rates(location, tax_class)
        rates = rates_by_class[tax_class]

        if not rates:
            result.line_taxes[line.key] = ZERO
            continue

        net = _back_out_net(amount, rates) if config.prices_include_tax else amount
        raw_taxes = _exclusive_taxes(net, rates)

        line_tax = ZERO
        for rate, raw in zip(rates, raw_taxes):
            rid = str(rate.id)
            rate_meta[rid] = rate
            if config.round_at_subtotal:
                per_rate[rid] = per_rate.get(rid, Decimal("0")) + raw
                line_tax += raw
            else:
                rounded = _money(raw)
                per_rate[rid] = per_rate.get(rid, ZERO) + rounded
                line_tax += rounded
        result.line_taxes[line.key] = _money(line_tax)

    ordered = sorted(rate_meta.values(), key=lambda r: (r.priority, r.order, r.label))
    for rate in ordered:
        amount = _money(per_rate[str(rate.id)])
        result.tax_lines.append(
            TaxLine(
                rate_id=str(rate.id),
                label=rate.label,
                rate=Decimal(rate.rate),
                compound=rate.compound,
                amount=amount,
            )
        )

    result.total_tax = _money(sum((t.amount for t in result.tax_lines), ZERO))
    return result


def _cache_key(lines: list[TaxableLine], location, config: TaxSettings) -> str:
    payload = {
        "lines": [
            [line.key, f"{Decimal(line.amount):.2f}", line.tax_class or "", bool(line.taxable)]
            for line in lines
        ],
        "location": _normalize_location(location),
        "config": config.fingerprint_payload(),
    }
    return versioned_key(TAX_NS, fingerprint(payload))


def calculate_taxes(
    lines: list[TaxableLine],
    location=None,
    *,
    config: TaxSettings | None = None,
    use_cache: bool = True,
) -> TaxResult:
    config = config or TaxSettings.from_settings()

    if not lines:
        return TaxResult(prices_include_tax=config.prices_include_tax)

    if not (use_cache and config.cache_enabled):
        return _compute(lines, location, config)

    key = _cache_key(lines, location, config)
    cached = cache_get(key)
    if isinstance(cached, TaxResult):
        return cached

    result = _compute(lines, location, config)
    cache_set(key, result, config.cache_ttl)
    return result


def calculate_product_tax(product, location=None, *, quantity: int = 1, config=None) -> TaxResult:
    """Tax on `quantity` units of a single product at its current price."""
    line = TaxableLine(
        key=str(product.id),
        amount=_money(Decimal(product.price) * int(quantity)),
        tax_class=product.tax_class or "",
        taxable=product.is_taxable,
    )
    return calculate_taxes([line], location, config=config)


def clear_cache(key: str | None = None) -> None:
    if key:
        cache_delete(key)
        return
    bump_generation(TAX_NS)
    logger.debug("tax cache cleared")
