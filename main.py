import os
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pymongo.errors import PyMongoError
from typing import Any, Dict, List

from database import db, create_document, get_documents, get_document_by_id, update_document, pull_line_group
from schemas import CreateOrder, LineItem, Order, OrderTotals, Product, Quote, QuoteRequest, VariantCatalog
from catalog import build_variant_catalog, find_variant_by_ref, index_variants
from composer import OrderComposer, recompute_line_price, recompute_totals, remove_line_group
from errors import OrderSubmissionError, SizeGridError
from logo import known_positions
from pricing import compute_quote
from selection import selection_from_lines

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

app = FastAPI(title="Workwear Size Grid API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

composer = OrderComposer()


@composer.register_after
def _log_plan(product_slug: str, plan, mode: str) -> None:
    units = sum(line.quantity for line in plan.lines)
    logger.info("Order plan for %s (%s): %d unit(s) across %d line(s)", product_slug, mode, units, len(plan.lines))


@app.exception_handler(SizeGridError)
async def size_grid_error_handler(request: Request, exc: SizeGridError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

# ---------- Utilities ----------

def to_str_id(doc):
    if doc is None:
        return doc
    d = dict(doc)
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return d

def load_product(slug: str) -> Product:
    docs = get_documents("product", {"slug": slug}, limit=1)
    if not docs:
        raise HTTPException(status_code=404, detail="Product not found")
    doc = dict(docs[0])
    doc.pop("_id", None)
    return Product.model_validate(doc)

def load_order(order_id: str) -> Dict[str, Any]:
    doc = get_document_by_id("order", order_id)
    if not doc:
        raise HTTPException(status_code=404, detail="Order not found")
    return doc

def _totals_fields(totals: OrderTotals) -> Dict[str, Any]:
    return totals.model_dump(mode="json", exclude={"line_prices"})

# ---------- Health & Test ----------

@app.get("/")
def read_root():
    return {"message": "Workwear Size Grid Backend"}

@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": None,
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }
    try:
        if db is not None:
            response["database"] = "✅ Available"
            response["database_url"] = "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set"
            response["database_name"] = "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set"
            try:
                collections = db.list_collection_names()
                response["collections"] = collections[:10]
                response["database"] = "✅ Connected & Working"
                response["connection_status"] = "Connected"
            except Exception as e:
                response["database"] = f"⚠️ Connected but Error: {str(e)[:50]}"
        else:
            response["database"] = "⚠️ Available but not initialized"
    except Exception as e:
        response["database"] = f"❌ Error: {str(e)[:50]}"
    return response

# ---------- Product Catalog ----------

@app.get("/api/products")
def list_products():
    docs = get_documents("product")
    return [to_str_id(d) for d in docs]

@app.get("/api/products/{slug}")
def get_product(slug: str):
    return load_product(slug).model_dump(mode="json")

@app.post("/api/products", status_code=201)
def create_product(payload: Product):
    if get_documents("product", {"slug": payload.slug}, limit=1):
        raise HTTPException(status_code=400, detail="Slug already in use")

    # Only positions the shop can label are kept.
    if payload.logo is not None:
        payload.logo.allowed_positions = known_positions(payload.logo.allowed_positions)

    new_id = create_document("product", payload)
    return {"id": new_id}

@app.get("/api/products/{slug}/variants", response_model=VariantCatalog)
def get_variants(slug: str):
    return build_variant_catalog(load_product(slug))

# ---------- Quotes ----------

@app.post("/api/products/{slug}/quote", response_model=Quote)
def quote(slug: str, payload: QuoteRequest):
    product = load_product(slug)
    index = index_variants(build_variant_catalog(product))
    selection = selection_from_lines(payload.items)
    return compute_quote(index, selection, product.pricing, product.logo, payload.logo)

# ---------- Orders ----------

def check_stock(slug: str, lines: List[LineItem]) -> None:
    """Re-read the catalog right before writing; any line that no longer fits rejects the whole order."""
    catalog = build_variant_catalog(load_product(slug))
    for line in lines:
        variant = find_variant_by_ref(catalog, line.variant_ref)
        if variant is None or not variant.in_stock:
            raise OrderSubmissionError(f"{line.display_meta.get('Colour', '')} {line.display_meta.get('Size', '')} is no longer available".strip())
        if variant.capacity is not None and line.quantity > variant.capacity:
            raise OrderSubmissionError(f"Only {variant.capacity} of {variant.color_label} {variant.size_label} left in stock")

@app.post("/api/products/{slug}/orders", status_code=201)
def create_order(slug: str, payload: CreateOrder):
    product = load_product(slug)
    catalog = build_variant_catalog(product)
    selection = selection_from_lines(payload.items)

    plan = composer.compose(product, catalog, selection, payload.logo)
    check_stock(slug, plan.lines)

    totals = recompute_totals(plan.lines)
    order = Order(
        customer_name=payload.customer_name,
        customer_email=payload.customer_email,
        product_slug=slug,
        lines=plan.lines,
        sub_total=totals.sub_total,
        logo_total=totals.logo_total,
        grand_total=totals.grand_total,
        notes=payload.notes,
    )

    try:
        order_id = create_document("order", order)
    except (PyMongoError, RuntimeError) as e:
        logger.exception("Order submission failed for %s: %s", slug, e)
        raise OrderSubmissionError() from e

    return {"id": order_id, "group_id": plan.group_id, "grand_total": str(totals.grand_total)}

@app.get("/api/orders/{order_id}")
def get_order(order_id: str):
    return to_str_id(load_order(order_id))

@app.post("/api/orders/{order_id}/recalculate", response_model=OrderTotals)
def recalculate_order(order_id: str):
    doc = load_order(order_id)
    totals = recompute_totals(doc.get("lines", []))
    update_document("order", order_id, _totals_fields(totals))
    return totals

@app.delete("/api/orders/{order_id}/lines/{group_id}")
def remove_order_lines(order_id: str, group_id: str):
    doc = load_order(order_id)
    lines = doc.get("lines", [])
    survivors = remove_line_group(lines, group_id)
    removed = len(lines) - len(survivors)
    if not removed:
        raise HTTPException(status_code=404, detail="Line group not found")

    totals = recompute_totals(survivors)
    if not pull_line_group(order_id, group_id, _totals_fields(totals)):
        raise OrderSubmissionError("The order changed while removing items. Please reload it.")

    logger.info("Removed group %s (%d line(s)) from order %s", group_id, removed, order_id)
    return {"removed": removed, "totals": totals.model_dump(mode="json")}

class RecomputeResponse(BaseModel):
    unit_price: str

@app.post("/api/recompute-line", response_model=RecomputeResponse)
def recompute_line(entry: LineItem):
    return RecomputeResponse(unit_price=str(recompute_line_price(entry)))

if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
