import os
import sys
from decimal import Decimal

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from bson import ObjectId

from catalog import build_variant_catalog, index_variants
from schemas import (
    AttributeTerm,
    BundlePricing,
    BundleSpec,
    DiscountTier,
    LogoConfig,
    PerUnitPricing,
    Product,
    ProductAttribute,
    RawVariation,
)


def make_product(pricing=None, logo=None, slug="hoodie"):
    colours = [("navy", "Navy"), ("black", "Black")]
    sizes = [("s", "S"), ("m", "M"), ("l", "L")]
    variations = []
    for c, _ in colours:
        for s, _ in sizes:
            variations.append(
                RawVariation(
                    variant_ref=f"{c}-{s}",
                    attributes={"pa_colour": c, "pa_size": s},
                    price=Decimal("12.50"),
                    in_stock=s != "m",
                    stock_quantity=0 if s == "m" else (10 if s == "s" else None),
                )
            )
    return Product(
        title="Heavyweight Hoodie",
        slug=slug,
        attributes=[
            ProductAttribute(slug="pa_colour", label="Colour", terms=[AttributeTerm(slug=c, name=n) for c, n in colours]),
            ProductAttribute(slug="pa_size", label="Size", terms=[AttributeTerm(slug=s, name=n) for s, n in sizes]),
        ],
        variations=variations,
        pricing=pricing or PerUnitPricing(),
        logo=logo,
    )


@pytest.fixture
def logo_config():
    return LogoConfig(
        allowed_positions=["left-chest", "back"],
        print_surcharge=Decimal("2.00"),
        embroidery_surcharge=Decimal("4.50"),
    )


@pytest.fixture
def per_unit_product(logo_config):
    tiers = [
        DiscountTier(min=5, max=9, discount_per_unit=Decimal("0.50")),
        DiscountTier(min=10, max=0, discount_per_unit=Decimal("1.00")),
    ]
    return make_product(PerUnitPricing(tiers=tiers), logo_config)


@pytest.fixture
def bundle_product(logo_config):
    bundle = BundleSpec(required_qty=16, fixed_price=Decimal("99.99"))
    return make_product(BundlePricing(bundle=bundle), logo_config, slug="bundle-tee")


@pytest.fixture
def catalog(per_unit_product):
    return build_variant_catalog(per_unit_product)


@pytest.fixture
def index(catalog):
    return index_variants(catalog)


class FakeStore:
    """In-memory stand-in for the database helpers used by main."""

    def __init__(self):
        self.collections = {}
        self.fail_inserts = False

    def create_document(self, collection_name, data):
        if self.fail_inserts:
            raise RuntimeError("Database not available")
        doc = data.model_dump(mode="json") if hasattr(data, "model_dump") else dict(data)
        doc["_id"] = ObjectId()
        self.collections.setdefault(collection_name, []).append(doc)
        return str(doc["_id"])

    def get_documents(self, collection_name, filter_dict=None, limit=None):
        docs = [
            dict(d) for d in self.collections.get(collection_name, [])
            if all(d.get(k) == v for k, v in (filter_dict or {}).items())
        ]
        return docs[:limit] if limit else docs

    def get_document_by_id(self, collection_name, doc_id):
        for d in self.collections.get(collection_name, []):
            if str(d["_id"]) == doc_id:
                return d
        return None

    def update_document(self, collection_name, doc_id, fields):
        doc = self.get_document_by_id(collection_name, doc_id)
        if doc is None:
            return False
        doc.update(fields)
        return True

    def pull_line_group(self, order_id, group_id, totals):
        doc = self.get_document_by_id("order", order_id)
        if doc is None or not any(l["group_id"] == group_id for l in doc["lines"]):
            return False
        doc["lines"] = [l for l in doc["lines"] if l["group_id"] != group_id]
        doc.update(totals)
        return True


@pytest.fixture
def store(monkeypatch):
    import main

    fake = FakeStore()
    for name in ("create_document", "get_documents", "get_document_by_id", "update_document", "pull_line_group"):
        monkeypatch.setattr(main, name, getattr(fake, name))
    return fake
