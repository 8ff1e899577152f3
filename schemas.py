"""
Database Schemas for the Workwear Size Grid

Each Pydantic model that stores a document maps to a MongoDB collection
(collection name = lowercase class name).

Collections:
- Product: a variable garment with its raw variations, pricing mode and logo options
- Order: a submitted order made of priced line items
"""
from __future__ import annotations
from decimal import Decimal
from pydantic import BaseModel, Field, field_validator
from typing import Annotated, Dict, List, Literal, Optional, Union

# ---------------------------
# Raw catalog data (as stored on the product)
# ---------------------------
class AttributeTerm(BaseModel):
    slug: str = Field(..., description="Term slug, e.g. 'navy'")
    name: str = Field(..., description="Term label, e.g. 'Navy'")
    hex: Optional[str] = Field(None, description="Explicit swatch colour, e.g. '#1e3a5f'")

class ProductAttribute(BaseModel):
    slug: str = Field(..., description="Attribute slug, e.g. 'pa_colour'")
    label: str = Field(..., description="Attribute label, e.g. 'Colour'")
    terms: List[AttributeTerm] = Field(default_factory=list)

class RawVariation(BaseModel):
    variant_ref: str = Field(..., description="Identifies the variation to the order system")
    attributes: Dict[str, str] = Field(default_factory=dict, description="Attribute slug -> term slug")
    price: Decimal = Field(..., ge=0)
    in_stock: bool = Field(True)
    stock_quantity: Optional[int] = Field(None, description="Managed stock; None = not managed")

# ---------------------------
# Resolved variant catalog
# ---------------------------
class Variant(BaseModel):
    """One purchasable colour x size combination."""
    color_slug: str
    size_slug: str
    color_label: str
    swatch_color: str = Field(..., description="Hex colour")
    size_label: str
    unit_price: Decimal = Field(..., ge=0)
    in_stock: bool = True
    capacity: Optional[int] = Field(None, gt=0, description="Max quantity; None = unlimited")
    variant_ref: str

class ColorEntry(BaseModel):
    label: str
    swatch_color: str
    is_light: bool = False
    sizes: List[Variant] = Field(default_factory=list)

class VariantCatalog(BaseModel):
    colors: Dict[str, ColorEntry] = Field(default_factory=dict)
    is_single_variant: bool = False

# ---------------------------
# Pricing configuration
# ---------------------------
class DiscountTier(BaseModel):
    min: int = Field(..., ge=1)
    max: int = Field(0, ge=0, description="0 = unbounded")
    discount_per_unit: Decimal = Field(..., ge=0)

class BundleSpec(BaseModel):
    required_qty: int = Field(..., gt=0)
    fixed_price: Decimal = Field(..., ge=0)
    display_name: str = Field("", description="Shown instead of '<qty> x <title>' when set")

class PerUnitPricing(BaseModel):
    mode: Literal["product"] = "product"
    tiers: List[DiscountTier] = Field(default_factory=list)

    @field_validator("tiers", mode="before")
    @classmethod
    def _drop_empty_and_sort(cls, value):
        # Rows with min == 0 are blank admin rows.
        if not isinstance(value, list):
            return value
        rows = []
        for row in value:
            data = row.model_dump() if isinstance(row, BaseModel) else row
            if isinstance(data, dict) and not int(data.get("min") or 0):
                continue
            rows.append(data)
        return sorted(rows, key=lambda r: int(r.get("min") or 0) if isinstance(r, dict) else 0)

class BundlePricing(BaseModel):
    mode: Literal["bundle"] = "bundle"
    bundle: BundleSpec

PricingConfig = Annotated[Union[PerUnitPricing, BundlePricing], Field(discriminator="mode")]

# ---------------------------
# Logo customization
# ---------------------------
class LogoConfig(BaseModel):
    allowed_positions: List[str] = Field(default_factory=list)
    print_surcharge: Decimal = Field(Decimal("0"), ge=0)
    embroidery_surcharge: Decimal = Field(Decimal("0"), ge=0)

class LogoSelection(BaseModel):
    positions: List[str] = Field(default_factory=list, description="Chosen position slugs")
    method: str = Field("print", description="print or embroidery")
    attachment_ref: Optional[str] = Field(None, description="Opaque reference returned by the upload service")
    attachment_url: Optional[str] = None
    notes: Optional[str] = None
    no_logo: bool = Field(False, description="Shopper has no logo yet and will be contacted")

# ---------------------------
# Product Catalog
# ---------------------------
class Product(BaseModel):
    """
    Collection: "product"
    A variable garment sold through the size grid.
    """
    title: str = Field(..., description="Display name, e.g. 'Heavyweight Hoodie'")
    slug: str = Field(..., description="URL slug, unique")
    description: Optional[str] = None
    attributes: List[ProductAttribute] = Field(default_factory=list)
    variations: List[RawVariation] = Field(default_factory=list)
    pricing: PricingConfig = Field(default_factory=PerUnitPricing)
    logo: Optional[LogoConfig] = Field(None, description="None = logo customization unavailable")

# ---------------------------
# Selection & quote
# ---------------------------
class SelectionLine(BaseModel):
    color: str = Field(..., description="Colour slug")
    size: str = Field(..., description="Size slug")
    quantity: int

class QuoteRequest(BaseModel):
    items: List[SelectionLine] = Field(default_factory=list)
    logo: Optional[LogoSelection] = None

class Quote(BaseModel):
    mode: Literal["product", "bundle"]
    total_quantity: int = 0
    matched_tier: Optional[DiscountTier] = None
    matched_discount: Decimal = Decimal("0")
    savings: Decimal = Decimal("0")
    logo_surcharge: Decimal = Decimal("0")
    subtotal: Decimal = Decimal("0")
    grand_total: Decimal = Decimal("0")
    logo_incomplete: bool = False
    committable: bool = False
    # bundle mode only
    required_quantity: Optional[int] = None
    percent_complete: Optional[float] = None
    remaining: Optional[int] = None
    over: bool = False

# ---------------------------
# Orders
# ---------------------------
class LineLogo(BaseModel):
    positions: List[str] = Field(default_factory=list)
    method: str = "print"
    surcharge: Decimal = Field(Decimal("0"), ge=0, description="Per unit")
    attachment_ref: Optional[str] = None
    attachment_url: Optional[str] = None
    notes: Optional[str] = None
    no_logo: bool = False

class LineItem(BaseModel):
    variant_ref: str
    color_slug: str
    size_slug: str
    quantity: int = Field(..., ge=1)
    mode: Literal["product", "bundle"]
    unit_price_override: Decimal = Field(..., ge=0, description="Base price (product) or split bundle price")
    group_id: str
    group_index: int = Field(0, ge=0)
    discount_per_unit: Decimal = Field(Decimal("0"), ge=0)
    bundle_price: Optional[Decimal] = Field(None, ge=0, description="Representative bundle line only")
    bundle_qty: Optional[int] = Field(None, gt=0)
    logo: Optional[LineLogo] = None
    display_meta: Dict[str, str] = Field(default_factory=dict)

class LineItemPlan(BaseModel):
    product_slug: str
    mode: Literal["product", "bundle"]
    group_id: str
    lines: List[LineItem]

class CreateOrder(BaseModel):
    customer_name: str
    customer_email: str
    items: List[SelectionLine]
    logo: Optional[LogoSelection] = None
    notes: Optional[str] = None

class Order(BaseModel):
    """
    Collection: "order"
    Stores a submitted order; totals are always re-derived from the lines.
    """
    customer_name: str = Field(...)
    customer_email: str = Field(...)
    product_slug: str = Field(...)
    lines: List[LineItem] = Field(...)
    sub_total: Decimal = Field(..., ge=0, description="Before logo surcharges")
    logo_total: Decimal = Field(Decimal("0"), ge=0)
    grand_total: Decimal = Field(..., ge=0)
    notes: Optional[str] = Field(None)

class OrderTotals(BaseModel):
    line_prices: List[Decimal] = Field(..., description="Recomputed unit price per line")
    sub_total: Decimal
    logo_total: Decimal
    grand_total: Decimal
