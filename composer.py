"""
Order composition and price recomputation.

``OrderComposer.compose`` turns a committed selection into priced line items.
Everything needed to price a line again later is stored on the line itself,
so ``recompute_line_price`` can run any number of times with the same result:

- product mode keeps the undiscounted base price and the discount apart;
- bundle mode puts the whole bundle price on the first line of the group
  (split over its own quantity) and prices every sibling at zero.

Lines sharing a ``group_id`` are created together and must be removed
together (see ``remove_line_group``).
"""
from __future__ import annotations
import logging
import os
import uuid
from decimal import Decimal
from typing import Callable, Dict, List, Mapping, Optional, Union

from catalog import index_variants
from errors import BundleQuantityMismatchError, EmptySelectionError, LogoIncompleteError, SizeGridError
from logo import describe, has_positions, is_incomplete, logo_surcharge, validate_logo
from pricing import ZERO, money, resolve_discount
from schemas import (
    BundlePricing,
    LineItem,
    LineItemPlan,
    LineLogo,
    LogoConfig,
    LogoSelection,
    OrderTotals,
    Product,
    VariantCatalog,
)
from selection import Selection, validate_selection

logger = logging.getLogger(__name__)

CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "£")

BeforeHook = Callable[[str, Selection, str], None]
AfterHook = Callable[[str, LineItemPlan, str], None]


def new_group_id(product_slug: str, bundle: bool = False) -> str:
    prefix = "bnd" if bundle else "grp"
    return f"{prefix}_{product_slug}_{uuid.uuid4().hex[:13]}"


def format_price(amount: Decimal) -> str:
    return f"{CURRENCY_SYMBOL}{money(amount)}"


def _line_logo(config: Optional[LogoConfig], logo: Optional[LogoSelection]) -> Optional[LineLogo]:
    if not has_positions(logo):
        return None
    return LineLogo(
        positions=list(logo.positions),
        method=logo.method,
        surcharge=logo_surcharge(config, logo),
        attachment_ref=logo.attachment_ref,
        attachment_url=logo.attachment_url,
        notes=logo.notes,
        no_logo=logo.no_logo,
    )


def _logo_meta(line_logo: Optional[LineLogo]) -> Dict[str, str]:
    if line_logo is None:
        return {}
    meta = {"Logo": describe(line_logo.positions, line_logo.method)}
    if line_logo.notes:
        meta["Logo notes"] = line_logo.notes
    return meta


class OrderComposer:
    """Builds line-item plans; ``before_compose``/``after_compose`` hooks run in registration order."""

    def __init__(self) -> None:
        self.before_compose: List[BeforeHook] = []
        self.after_compose: List[AfterHook] = []

    def register_before(self, handler: BeforeHook) -> BeforeHook:
        self.before_compose.append(handler)
        return handler

    def register_after(self, handler: AfterHook) -> AfterHook:
        self.after_compose.append(handler)
        return handler

    def compose(
        self,
        product: Product,
        catalog: VariantCatalog,
        selection: Selection,
        logo: Optional[LogoSelection] = None,
    ) -> LineItemPlan:
        index = index_variants(catalog)
        config = product.pricing
        if not has_positions(logo):
            logo = None

        try:
            self._validate(index, selection, product, logo)
        except SizeGridError as exc:
            logger.warning("Rejected %s order for %s: %s (%s)", config.mode, product.slug, type(exc).__name__, exc)
            raise

        # handlers observe a copy; the validated selection is what gets composed
        for handler in self.before_compose:
            handler(product.slug, dict(selection), config.mode)

        line_logo = _line_logo(product.logo, logo)
        if isinstance(config, BundlePricing):
            plan = self._compose_bundle(product, index, selection, line_logo)
        else:
            plan = self._compose_per_unit(product, index, selection, line_logo)

        for handler in self.after_compose:
            handler(product.slug, plan, config.mode)

        logger.info("Composed %s plan %s with %d line(s)", plan.mode, plan.group_id, len(plan.lines))
        return plan

    def _validate(self, index, selection: Selection, product: Product, logo: Optional[LogoSelection]) -> None:
        validate_selection(index, selection)
        total_qty = sum(selection.values())

        config = product.pricing
        if isinstance(config, BundlePricing):
            if total_qty != config.bundle.required_qty:
                raise BundleQuantityMismatchError(config.bundle.required_qty, total_qty)
        elif total_qty <= 0:
            raise EmptySelectionError()

        if logo is not None:
            validate_logo(product.logo, logo)
            if is_incomplete(product.logo, logo):
                raise LogoIncompleteError()

    def _compose_per_unit(self, product, index, selection, line_logo) -> LineItemPlan:
        total_qty = sum(selection.values())
        discount = resolve_discount(product.pricing.tiers, total_qty)
        group_id = new_group_id(product.slug)

        lines = []
        for (color, size), qty in selection.items():
            if qty <= 0:
                continue
            variant = index[(color, size)]
            meta = {"Colour": variant.color_label, "Size": variant.size_label}
            if discount > 0:
                meta["Bulk discount"] = f"-{format_price(discount)} per item"
            meta.update(_logo_meta(line_logo))
            lines.append(
                LineItem(
                    variant_ref=variant.variant_ref,
                    color_slug=color,
                    size_slug=size,
                    quantity=qty,
                    mode="product",
                    unit_price_override=variant.unit_price,
                    group_id=group_id,
                    group_index=len(lines),
                    discount_per_unit=discount,
                    logo=line_logo,
                    display_meta=meta,
                )
            )
        return LineItemPlan(product_slug=product.slug, mode="product", group_id=group_id, lines=lines)

    def _compose_bundle(self, product, index, selection, line_logo) -> LineItemPlan:
        bundle = product.pricing.bundle
        surcharge = line_logo.surcharge if line_logo else ZERO
        bundle_price = bundle.fixed_price + surcharge * bundle.required_qty
        group_id = new_group_id(product.slug, bundle=True)

        picked = [(index[key], qty) for key, qty in selection.items() if qty > 0]
        breakdown = ", ".join(f"{v.color_label} {v.size_label} ×{qty}" for v, qty in picked)
        display_name = bundle.display_name or f"{bundle.required_qty} × {product.title}"

        lines = []
        for i, (variant, qty) in enumerate(picked):
            meta = {"Colour": variant.color_label, "Size": variant.size_label}
            if i == 0:
                meta["Bundle"] = display_name
                meta["Sizes ordered"] = breakdown
                meta.update(_logo_meta(line_logo))
            lines.append(
                LineItem(
                    variant_ref=variant.variant_ref,
                    color_slug=variant.color_slug,
                    size_slug=variant.size_slug,
                    quantity=qty,
                    mode="bundle",
                    unit_price_override=bundle_price / qty if i == 0 else ZERO,
                    group_id=group_id,
                    group_index=i,
                    bundle_price=bundle_price if i == 0 else None,
                    bundle_qty=bundle.required_qty if i == 0 else None,
                    logo=line_logo if i == 0 else None,
                    display_meta=meta,
                )
            )
        return LineItemPlan(product_slug=product.slug, mode="bundle", group_id=group_id, lines=lines)


def _as_line(entry: Union[LineItem, Mapping]) -> LineItem:
    return entry if isinstance(entry, LineItem) else LineItem.model_validate(entry)


def recompute_line_price(entry: Union[LineItem, Mapping]) -> Decimal:
    """Unit price of a stored line, derived only from the line's own metadata."""
    line = _as_line(entry)
    if line.mode == "bundle":
        if line.group_index == 0 and line.bundle_price is not None:
            return line.bundle_price / line.quantity
        return ZERO

    surcharge = line.logo.surcharge if line.logo and line.logo.positions else ZERO
    return max(ZERO, line.unit_price_override - line.discount_per_unit + surcharge)


def recompute_totals(entries) -> OrderTotals:
    lines = [_as_line(e) for e in entries]
    prices = [recompute_line_price(line) for line in lines]

    grand_total = sum((p * line.quantity for p, line in zip(prices, lines)), ZERO)
    logo_total = ZERO
    for line in lines:
        if not (line.logo and line.logo.positions):
            continue
        if line.mode == "bundle":
            logo_total += line.logo.surcharge * (line.bundle_qty or line.quantity)
        else:
            logo_total += line.logo.surcharge * line.quantity

    grand_total = money(grand_total)
    logo_total = money(logo_total)
    return OrderTotals(
        line_prices=prices,
        sub_total=max(ZERO, grand_total - logo_total),
        logo_total=logo_total,
        grand_total=grand_total,
    )


def remove_line_group(entries, group_id: str) -> List[LineItem]:
    """Drop every line of ``group_id``; a group is never partially removed."""
    return [line for line in map(_as_line, entries) if line.group_id != group_id]


def cascade_remove(entries, position: int) -> List[LineItem]:
    """Remove the line at ``position`` together with all of its group siblings."""
    lines = [_as_line(e) for e in entries]
    return remove_line_group(lines, lines[position].group_id)
