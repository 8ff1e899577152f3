"""
Variant catalog resolution.

Turns a product's raw attributes and variations into the colour -> sizes map
the size grid renders, plus the swatch helpers used to paint it.
"""
from __future__ import annotations
import logging
from typing import Dict, Iterable, Mapping, Optional, Tuple

from schemas import ColorEntry, Product, RawVariation, Variant, VariantCatalog

logger = logging.getLogger(__name__)

COLOR_KEYWORDS = ("color", "colour")
SIZE_KEYWORDS = ("size",)

DEFAULT_SLUG = "default"
DEFAULT_LABEL = "Default"
FALLBACK_HEX = "#cccccc"

COLOR_MAP = {
    "black": "#000000",
    "white": "#ffffff",
    "red": "#ff0000",
    "blue": "#0000ff",
    "navy": "#1e3a5f",
    "royal-blue": "#4169e1",
    "sky-blue": "#87ceeb",
    "light-blue": "#add8e6",
    "green": "#008000",
    "lime": "#00ff00",
    "forest-green": "#228b22",
    "yellow": "#ffff00",
    "gold": "#ffd700",
    "orange": "#ffa500",
    "pink": "#ffc0cb",
    "hot-pink": "#ff69b4",
    "purple": "#800080",
    "violet": "#ee82ee",
    "brown": "#8b4513",
    "tan": "#d2b48c",
    "beige": "#f5f5dc",
    "cream": "#fffdd0",
    "grey": "#808080",
    "gray": "#808080",
    "light-grey": "#d3d3d3",
    "dark-grey": "#a9a9a9",
    "charcoal": "#36454f",
    "silver": "#c0c0c0",
    "maroon": "#800000",
    "teal": "#008080",
    "cyan": "#00ffff",
    "coral": "#ff7f50",
    "salmon": "#fa8072",
    "burgundy": "#800020",
    "khaki": "#c3b091",
    "olive": "#808000",
    "heather-grey": "#b6b6b4",
}

VariantIndex = Dict[Tuple[str, str], Variant]


def detect_semantic_attribute(candidates: Mapping[str, str], keywords: Iterable[str]) -> Optional[str]:
    """Return the slug of the attribute whose label or slug contains one of ``keywords``.

    ``candidates`` maps attribute slug -> label. Matching is a case-insensitive
    substring test; when several attributes match, the last one wins.
    """
    keywords = [k.lower() for k in keywords]
    found = None
    for slug, label in candidates.items():
        haystacks = ((label or "").lower(), (slug or "").lower())
        if any(k in h for k in keywords for h in haystacks):
            found = slug
    return found


def resolve_swatch_color(name: str, slug: str = "", meta_hex: Optional[str] = None) -> str:
    """Explicit hex metadata first, then the colour table (slug, then name), then grey."""
    if meta_hex and meta_hex.startswith("#"):
        return meta_hex

    slug_key = (slug or "").lower()
    if slug_key and slug_key in COLOR_MAP:
        return COLOR_MAP[slug_key]

    name_key = (name or "").lower().replace(" ", "-")
    if name_key in COLOR_MAP:
        return COLOR_MAP[name_key]

    return FALLBACK_HEX


def is_light_color(hex_value: str) -> bool:
    """Light when every RGB channel is strictly above 200."""
    value = (hex_value or "").lstrip("#")
    if len(value) == 3:
        value = "".join(c * 2 for c in value)
    if len(value) != 6:
        return False
    try:
        r, g, b = (int(value[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        return False
    return r > 200 and g > 200 and b > 200


def _capacity(raw: RawVariation) -> Tuple[bool, Optional[int]]:
    if raw.stock_quantity is None:
        return raw.in_stock, None
    if raw.stock_quantity <= 0:
        return False, None
    return raw.in_stock, raw.stock_quantity


def build_variant_catalog(product: Product) -> VariantCatalog:
    attrs = {a.slug: a.label for a in product.attributes}
    color_attr = detect_semantic_attribute(attrs, COLOR_KEYWORDS)
    size_attr = detect_semantic_attribute(attrs, SIZE_KEYWORDS)

    if color_attr is None or size_attr is None:
        logger.warning(
            "Could not detect color/size attributes for product %s. Found attributes: %s",
            product.slug, ", ".join(attrs),
        )
    if color_attr is None and size_attr is None:
        return VariantCatalog(colors={}, is_single_variant=True)

    terms = {a.slug: {t.slug: t for t in a.terms} for a in product.attributes}
    colors: Dict[str, ColorEntry] = {}
    seen = set()

    for raw in product.variations:
        color_slug, color_label, hex_value = DEFAULT_SLUG, DEFAULT_LABEL, FALLBACK_HEX
        if color_attr:
            slug = raw.attributes.get(color_attr, "")
            if slug:
                term = terms[color_attr].get(slug)
                color_slug = slug
                color_label = term.name if term else slug
                hex_value = resolve_swatch_color(color_label, slug, term.hex if term else None)

        size_slug, size_label = DEFAULT_SLUG, DEFAULT_LABEL
        if size_attr:
            slug = raw.attributes.get(size_attr, "")
            if slug:
                term = terms[size_attr].get(slug)
                size_slug = slug
                size_label = term.name if term else slug

        if (color_slug, size_slug) in seen:
            logger.warning("Duplicate variation %s/%s on product %s ignored", color_slug, size_slug, product.slug)
            continue
        seen.add((color_slug, size_slug))

        entry = colors.get(color_slug)
        if entry is None:
            entry = colors[color_slug] = ColorEntry(
                label=color_label,
                swatch_color=hex_value,
                is_light=is_light_color(hex_value),
            )

        in_stock, capacity = _capacity(raw)
        entry.sizes.append(
            Variant(
                color_slug=color_slug,
                size_slug=size_slug,
                color_label=color_label,
                swatch_color=hex_value,
                size_label=size_label,
                unit_price=raw.price,
                in_stock=in_stock,
                capacity=capacity,
                variant_ref=raw.variant_ref,
            )
        )

    return VariantCatalog(colors=colors, is_single_variant=list(colors) in ([], [DEFAULT_SLUG]))


def index_variants(catalog: VariantCatalog) -> VariantIndex:
    return {(v.color_slug, v.size_slug): v for entry in catalog.colors.values() for v in entry.sizes}


def find_variant_by_ref(catalog: VariantCatalog, variant_ref: str) -> Optional[Variant]:
    for entry in catalog.colors.values():
        for v in entry.sizes:
            if v.variant_ref == variant_ref:
                return v
    return None
