"""Tier lookup and live price quotes for both sales models."""
from __future__ import annotations
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from catalog import VariantIndex
from logo import is_acceptable, is_incomplete, logo_surcharge
from schemas import (
    BundlePricing,
    DiscountTier,
    LogoConfig,
    LogoSelection,
    PerUnitPricing,
    Quote,
)
from selection import Selection, validate_selection

CURRENCY_DECIMALS = 2
ZERO = Decimal("0")


def money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(Decimal(1).scaleb(-CURRENCY_DECIMALS), rounding=ROUND_HALF_UP)


def match_tier(tiers: Sequence[DiscountTier], qty: int) -> Optional[DiscountTier]:
    """First tier in list order whose range holds ``qty``; max == 0 means open-ended."""
    if qty <= 0 or not tiers:
        return None
    for tier in tiers:
        if qty >= tier.min and (tier.max == 0 or qty <= tier.max):
            return tier
    return None


def resolve_discount(tiers: Sequence[DiscountTier], qty: int) -> Decimal:
    tier = match_tier(tiers, qty)
    return tier.discount_per_unit if tier else ZERO


def _per_unit_quote(index, selection, config: PerUnitPricing, surcharge, incomplete) -> Quote:
    total_qty = sum(selection.values())
    tier = match_tier(config.tiers, total_qty)
    discount = tier.discount_per_unit if tier else ZERO

    subtotal = ZERO
    for key, qty in selection.items():
        if qty <= 0:
            continue
        unit = max(ZERO, index[key].unit_price - discount + surcharge)
        subtotal += unit * qty
    subtotal = money(max(ZERO, subtotal))

    return Quote(
        mode="product",
        total_quantity=total_qty,
        matched_tier=tier,
        matched_discount=discount,
        savings=money(discount * total_qty),
        logo_surcharge=surcharge,
        subtotal=subtotal,
        grand_total=subtotal,
        logo_incomplete=incomplete,
        committable=total_qty > 0 and not incomplete,
    )


def _bundle_quote(selection, config: BundlePricing, surcharge, incomplete) -> Quote:
    bundle = config.bundle
    total_qty = sum(selection.values())
    required = bundle.required_qty
    percent = min(100.0, total_qty / required * 100) if required else 0.0

    return Quote(
        mode="bundle",
        total_quantity=total_qty,
        logo_surcharge=surcharge,
        subtotal=money(bundle.fixed_price),
        grand_total=money(bundle.fixed_price + surcharge * required),
        logo_incomplete=incomplete,
        committable=total_qty == required and not incomplete,
        required_quantity=required,
        percent_complete=percent,
        remaining=max(0, required - total_qty),
        over=total_qty > required,
    )


def compute_quote(
    index: VariantIndex,
    selection: Selection,
    config,
    logo_config: Optional[LogoConfig] = None,
    logo: Optional[LogoSelection] = None,
) -> Quote:
    """Price the current selection.

    Never raises for a selection that matches the catalog; "not ready yet" is
    reported through ``committable``, which is also False for a logo the
    composer would reject (disallowed position or unknown method). A selection
    that references an unknown variant or exceeds capacity raises
    ``InvalidSelectionError``.
    """
    validate_selection(index, selection)
    surcharge = logo_surcharge(logo_config, logo)
    incomplete = is_incomplete(logo_config, logo)

    if isinstance(config, BundlePricing):
        quote = _bundle_quote(selection, config, surcharge, incomplete)
    else:
        quote = _per_unit_quote(index, selection, config, surcharge, incomplete)
    if not is_acceptable(logo_config, logo):
        quote.committable = False
    return quote
