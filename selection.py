"""Selection state: (colour, size) -> quantity, plus the grid's colour rules."""
from __future__ import annotations
from typing import Dict, Iterable, List, Optional, Tuple

from catalog import DEFAULT_SLUG, VariantIndex, index_variants
from errors import InvalidSelectionError
from schemas import BundlePricing, PerUnitPricing, PricingConfig, SelectionLine, VariantCatalog

Selection = Dict[Tuple[str, str], int]


def selection_from_lines(lines: Iterable[SelectionLine]) -> Selection:
    """Zero-quantity lines are dropped; a repeated (colour, size) key is an error."""
    selection: Selection = {}
    for line in lines:
        key = (line.color, line.size)
        if key in selection:
            raise InvalidSelectionError(f"Duplicate selection for {line.color}/{line.size}")
        if line.quantity < 0:
            raise InvalidSelectionError(f"Negative quantity for {line.color}/{line.size}")
        if line.quantity:
            selection[key] = line.quantity
    return selection


def check_quantity(index: VariantIndex, color: str, size: str, qty: int) -> None:
    variant = index.get((color, size))
    if variant is None:
        raise InvalidSelectionError(f"Unknown variant {color}/{size}")
    if qty < 0:
        raise InvalidSelectionError(f"Negative quantity for {color}/{size}")
    if qty and not variant.in_stock:
        raise InvalidSelectionError(f"{variant.color_label} {variant.size_label} is out of stock")
    if variant.capacity is not None and qty > variant.capacity:
        raise InvalidSelectionError(
            f"Only {variant.capacity} of {variant.color_label} {variant.size_label} available"
        )


def validate_selection(index: VariantIndex, selection: Selection) -> None:
    for (color, size), qty in selection.items():
        check_quantity(index, color, size, qty)


class GridState:
    """
    Mutable selection held by one shopper while they use the grid.

    Product mode is single-colour: picking another colour resets the grid.
    Bundle mode toggles colours on and off, and turning one off drops its quantities.
    Quantities are only accepted for colours currently selected.
    """

    def __init__(self, catalog: VariantCatalog, pricing: Optional[PricingConfig] = None) -> None:
        self.pricing = pricing if pricing is not None else PerUnitPricing()
        self._catalog = catalog
        self._index = index_variants(catalog)
        self.selected_colors: List[str] = []
        self.quantities: Selection = {}
        if catalog.is_single_variant and DEFAULT_SLUG in catalog.colors:
            self.selected_colors = [DEFAULT_SLUG]

    @property
    def multi_color(self) -> bool:
        return isinstance(self.pricing, BundlePricing)

    def select_color(self, color: str) -> None:
        if color not in self._catalog.colors:
            raise InvalidSelectionError(f"Unknown colour {color}")

        if not self.multi_color:
            if self.selected_colors == [color]:
                return
            self.selected_colors = [color]
            self.quantities = {}
            return

        if color in self.selected_colors:
            self.remove_color(color)
        else:
            self.selected_colors.append(color)

    def remove_color(self, color: str) -> None:
        if color in self.selected_colors:
            self.selected_colors.remove(color)
        for key in [k for k in self.quantities if k[0] == color]:
            del self.quantities[key]

    def set_quantity(self, color: str, size: str, qty: int) -> None:
        check_quantity(self._index, color, size, qty)
        if qty > 0 and color not in self.selected_colors:
            raise InvalidSelectionError(f"Colour {color} is not selected")
        if qty > 0:
            self.quantities[(color, size)] = qty
        else:
            self.quantities.pop((color, size), None)

    @property
    def total_quantity(self) -> int:
        return sum(self.quantities.values())

    def snapshot(self) -> Selection:
        return dict(self.quantities)

    def clear(self) -> None:
        self.quantities = {}
