"""
Phase 2: Product Catalog

Generates a demo catalog matching the brief and exports it as a
Shopify-importable products.csv.
"""

import logging
from typing import Optional

from pydantic import BaseModel, Field

from ..generators.csv_export import write_product_csv
from ..models import Phase, Product, ProductImages, ProductVariant, SessionState, ThemeBrief
from ..ui.display import Display
from .common import ask_json, brief_context, build_messages, describe_model, require, task_prompt
from .context import PhaseContext

logger = logging.getLogger(__name__)

STEP_CATALOG = "product-catalog"

MIN_PRODUCTS = 5
MAX_PRODUCTS = 50


class ProductCatalog(BaseModel):
    products: list[Product] = Field(default_factory=list)


CATALOG_INSTRUCTIONS = """
Generate a product catalog as JSON: {"products": [...]}.
Each product has: id (url handle), name, description, price, compare_at_price (or null),
category, collection, variants [{name, option1, option2, sku, inventory}],
seo_title and seo_description.
Spread prices across budget, mid-range and premium tiers, and group products
into 3-5 collections. Respond with valid JSON only.
"""


def fallback_catalog(brief: ThemeBrief, count: int) -> ProductCatalog:
    """Placeholder products in three price bands."""
    bands = [("Essential", 29.0), ("Signature", 79.0), ("Reserve", 189.0)]
    products = []
    for i in range(1, count + 1):
        band, base_price = bands[(i - 1) % len(bands)]
        products.append(
            Product(
                id=f"{band.lower()}-item-{i}",
                name=f"{band} {brief.industry.title()} {i}",
                description=f"A {band.lower()} piece for {brief.target_market}.",
                price=base_price + i,
                category=brief.industry.title(),
                collection=band,
                variants=[ProductVariant(name="Default", option1="Default", sku=f"ITEM-{i:03d}", inventory=10)],
            )
        )
    return ProductCatalog(products=products)


async def generate_catalog(
    ctx: PhaseContext, brief: ThemeBrief, count: int, feedback: Optional[str]
) -> ProductCatalog:
    system = task_prompt(
        STEP_CATALOG,
        "You are an expert e-commerce merchandiser.",
        f"{brief_context(brief)}\nCount: {count}",
        CATALOG_INSTRUCTIONS,
    )
    messages = build_messages(system, feedback, f"Generate {count} products now.")
    return await ask_json(
        ctx.chat,
        STEP_CATALOG,
        messages,
        ProductCatalog,
        "product catalog",
        fallback=lambda: fallback_catalog(brief, count),
    )


def display_catalog(display: Display, catalog: ProductCatalog) -> None:
    display.table(
        f"Product Catalog ({len(catalog.products)} products)",
        ["Handle", "Name", "Price", "Collection", "Variants"],
        [
            [p.id, p.name, f"${p.price:.2f}", p.collection, str(len(p.variants))]
            for p in catalog.products
        ],
    )


async def run(session: SessionState, ctx: PhaseContext) -> None:
    """Generate and approve the catalog, then write products.csv."""
    require(session.brief is not None, "The product catalog needs a brief")
    brief = session.brief
    display = ctx.display

    count = ctx.config.generation.products_count
    if session.stored_artifact(Phase.PRODUCTS, STEP_CATALOG) is None:
        count = ctx.prompter.number(
            "How many products should the catalog have?",
            default=count,
            minimum=MIN_PRODUCTS,
            maximum=MAX_PRODUCTS,
        )

    display.info(f"Using {describe_model(ctx.config, STEP_CATALOG)} for the catalog...")
    outcome = await ctx.approve(
        session,
        Phase.PRODUCTS,
        STEP_CATALOG,
        generate=lambda feedback: generate_catalog(ctx, brief, count, feedback),
        display=lambda catalog: display_catalog(display, catalog),
        artifact_type=ProductCatalog,
    )

    catalog = outcome.result
    if catalog is None:
        session.products = []
        display.warning("Product catalog skipped; no products.csv will be written")
        return

    session.products = [p.model_copy(update={"images": ProductImages()}) for p in catalog.products]
    csv_path = write_product_csv(session.products, ctx.output_dir(session) / "products.csv")
    logger.info("Wrote %d products to %s", len(session.products), csv_path)
    display.success(f"Products exported to {csv_path}")
