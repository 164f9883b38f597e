# pos/services/totals.py

"""
======================================================
PATH: pos/services/totals.py
======================================================
CART TOTALS

Pure computation: (priced lines, valid coupons, location, tax settings)
-> TotalsResult. Nothing here touches the cart rows.

MONEY RULES:
- Decimal, 2dp, ROUND_HALF_UP.
- line_subtotal = unit_price * quantity (rounded per line)
- Percent coupons first, in the order they were applied, each on what is
  left of every line. Then fixed_cart coupons, split across lines by what
  is left of each line (remainder on the last line). No line goes below 0.
- Tax is computed on the discounted line amounts.
- prices exclusive of tax:  subtotal = sum(line_subtotal)
  prices inclusive of tax:  subtotal = sum(line_subtotal) - total_tax
- total = subtotal - discount_total + total_tax, always, from the rounded
  components.

Display mode only changes line "display_total"; stored semantics are the
same in both modes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal

from products.models import Coupon
from taxes.services.tax_calculator import (
    DISPLAY_INCL,
    TaxableLine,
    TaxLine,
    TaxSettings,
    calculate_taxes,
)

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def _money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _fmt(value: Decimal) -> str:
    return f"{value:.2f}"


@dataclass
class PricedLine:
    item_key: str
    product_id: str
    variation_id: str | None
    name: str
    sku: str
    quantity: int
    unit_price: Decimal
    tax_class: str = ""
    taxable: bool = True


@dataclass
class LineTotals:
    item_key: str
    product_id: str
    variation_id: str | None
    name: str
    sku: str
    quantity: int
    unit_price: Decimal
    line_subtotal: Decimal
    line_discount: Decimal = ZERO
    line_tax: Decimal = ZERO
    line_total: Decimal = ZERO
    display_total: Decimal = ZERO

    def to_dict(self) -> dict:
        return {
            "item_key": self.item_key,
            "product_id": self.product_id,
            "variation_id": self.variation_id,
            "name": self.name,
            "sku": self.sku,
            "quantity": self.quantity,
            "unit_price": _fmt(self.unit_price),
            "line_subtotal": _fmt(self.line_subtotal),
            "line_discount": _fmt(self.line_discount),
            "line_tax": _fmt(self.line_tax),
            "line_total": _fmt(self.line_total),
            "display_total": _fmt(self.display_total),
        }


@dataclass
class TotalsResult:
    lines: list[LineTotals] = field(default_factory=list)
    subtotal: Decimal = ZERO
    discount_total: Decimal = ZERO
    tax_lines: list[TaxLine] = field(default_factory=list)
    total_tax: Decimal = ZERO
    total: Decimal = ZERO
    coupons: list[dict] = field(default_factory=list)
    coupon_errors: list[dict] = field(default_factory=list)
    prices_include_tax: bool = False
    display_mode: str = "excl"

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def to_dict(self, *, include_lines: bool = True) -> dict:
        data = {
            "subtotal": _fmt(self.subtotal),
            "discount_total": _fmt(self.discount_total),
            "tax_lines": [t.to_dict() for t in self.tax_lines],
            "total_tax": _fmt(self.total_tax),
            "total": _fmt(self.total),
            "coupons": [{**c, "amount": _fmt(c["amount"])} for c in self.coupons],
            "coupon_errors": list(self.coupon_errors),
            "prices_include_tax": self.prices_include_tax,
            "display_mode": self.display_mode,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


# =====================================================
# DISCOUNTS
# =====================================================

def allocate(amount: Decimal, weights: list[Decimal]) -> list[Decimal]:
    """
    Split `amount` across lines proportionally to `weights`, never giving a
    line more than its weight. Shares sum to min(amount, sum(weights)).
    """
    total = sum(weights, ZERO)
    if amount <= 0 or total <= 0:
        return [ZERO for _ in weights]

    amount = min(_money(amount), total)
    shares = [(amount * w / total).quantize(CENT, rounding=ROUND_DOWN) for w in weights[:-1]]
    shares.append(amount - sum(shares, ZERO))

    overflow = shares[-1] - weights[-1]
    if overflow > 0:
        shares[-1] = weights[-1]
        for i in range(len(shares) - 1):
            room = weights[i] - shares[i]
            take = min(room, overflow)
            if take > 0:
                shares[i] += take
                overflow -= take
            if overflow <= 0:
                break
    return shares


def _apply_coupons(remaining: list[Decimal], coupons: list[Coupon]) -> tuple[list[Decimal], list[dict]]:
    discounts = [ZERO for _ in remaining]
    applied: list[dict] = []

    percent = [c for c in coupons if c.discount_type == Coupon.DiscountType.PERCENT]
    fixed = [c for c in coupons if c.discount_type == Coupon.DiscountType.FIXED_CART]

    for coupon in percent:
        rate = min(Decimal(coupon.amount), HUNDRED) / HUNDRED
        coupon_total = ZERO
        for i, left in enumerate(remaining):
            share = min(_money(left * rate), left)
            remaining[i] = left - share
            discounts[i] += share
            coupon_total += share
        applied.append({"code": coupon.code, "discount_type": coupon.discount_type, "amount": coupon_total})

    for coupon in fixed:
        shares = allocate(Decimal(coupon.amount), list(remaining))
        for i, share in enumerate(shares):
            remaining[i] -= share
            discounts[i] += share
        applied.append(
            {"code": coupon.code, "discount_type": coupon.discount_type, "amount": sum(shares, ZERO)}
        )

    return discounts, applied


# =====================================================
# TOTALS
# =====================================================

def compute_totals(
    lines: list[PricedLine],
    *,
    coupons: list[Coupon] | None = None,
    location=None,
    config: TaxSettings | None = None,
    use_cache: bool = True,
) -> TotalsResult:
    config = config or TaxSettings.from_settings()
    result = TotalsResult(
        prices_include_tax=config.prices_include_tax,
        display_mode=config.display_mode,
    )
    if not lines:
        return result

    line_subtotals = [_money(Decimal(line.unit_price) * int(line.quantity)) for line in lines]
    discounts, applied = _apply_coupons(list(line_subtotals), list(coupons or []))

    taxable = [
        TaxableLine(
            key=line.item_key,
            amount=line_subtotals[i] - discounts[i],
            tax_class=line.tax_class,
            taxable=line.taxable,
        )
        for i, line in enumerate(lines)
    ]
    taxes = calculate_taxes(taxable, location, config=config, use_cache=use_cache)

    for i, line in enumerate(lines):
        line_tax = taxes.line_taxes.get(line.item_key, ZERO)
        line_total = line_subtotals[i] - discounts[i]

        if config.prices_include_tax and config.display_mode != DISPLAY_INCL:
            display_total = line_total - line_tax
        elif not config.prices_include_tax and config.display_mode == DISPLAY_INCL:
            display_total = line_total + line_tax
        else:
            display_total = line_total

        result.lines.append(
            LineTotals(
                item_key=line.item_key,
                product_id=line.product_id,
                variation_id=line.variation_id,
                name=line.name,
                sku=line.sku,
                quantity=int(line.quantity),
                unit_price=_money(line.unit_price),
                line_subtotal=line_subtotals[i],
                line_discount=discounts[i],
                line_tax=line_tax,
                line_total=line_total,
                display_total=display_total,
            )
        )

    gross = sum(line_subtotals, ZERO)
    result.discount_total = sum(discounts, ZERO)
    result.tax_lines = list(taxes.tax_lines)
    result.total_tax = taxes.total_tax
    result.coupons = applied
    result.subtotal = gross - result.total_tax if config.prices_include_tax else gross
    result.total = result.subtotal - result.discount_total + result.total_tax
    return result
