"""Shopify product import CSV.

One row per variant. Product-level columns (title, body, tags, SEO) are only
filled on the first row of each product, as Shopify's importer expects.
"""

import csv
import html
import io
from pathlib import Path

from ..models import Product, ProductVariant

GOOGLE_SHOPPING_HEADERS = [
    "Google Shopping / Google Product Category",
    "Google Shopping / Gender",
    "Google Shopping / Age Group",
    "Google Shopping / MPN",
    "Google Shopping / AdWords Grouping",
    "Google Shopping / AdWords Labels",
    "Google Shopping / Condition",
    "Google Shopping / Custom Product",
    "Google Shopping / Custom Label 0",
    "Google Shopping / Custom Label 1",
    "Google Shopping / Custom Label 2",
    "Google Shopping / Custom Label 3",
    "Google Shopping / Custom Label 4",
]

CSV_HEADERS = [
    "Handle",
    "Title",
    "Body (HTML)",
    "Vendor",
    "Product Category",
    "Type",
    "Tags",
    "Published",
    "Option1 Name",
    "Option1 Value",
    "Option2 Name",
    "Option2 Value",
    "Option3 Name",
    "Option3 Value",
    "Variant SKU",
    "Variant Grams",
    "Variant Inventory Tracker",
    "Variant Inventory Qty",
    "Variant Inventory Policy",
    "Variant Fulfillment Service",
    "Variant Price",
    "Variant Compare At Price",
    "Variant Requires Shipping",
    "Variant Taxable",
    "Variant Barcode",
    "Image Src",
    "Image Position",
    "Image Alt Text",
    "Gift Card",
    "SEO Title",
    "SEO Description",
    *GOOGLE_SHOPPING_HEADERS,
    "Variant Image",
    "Variant Weight Unit",
    "Variant Tax Code",
    "Cost per item",
    "Included / United States",
    "Price / United States",
    "Compare At Price / United States",
    "Included / International",
    "Price / International",
    "Compare At Price / International",
    "Status",
]

DEFAULT_INVENTORY = 25
DEFAULT_GRAMS = 500


def default_variant(product: Product) -> ProductVariant:
    return ProductVariant(
        name="Default",
        option1="Default Title",
        sku=product.id.upper().replace("-", ""),
        inventory=DEFAULT_INVENTORY,
    )


def format_description(description: str) -> str:
    return f"<p>{html.escape(description, quote=False)}</p>"


def format_tags(product: Product) -> str:
    tags = [product.collection, product.category]
    if product.compare_at_price and product.compare_at_price > product.price:
        tags.append("Sale")
    return ", ".join(t for t in tags if t)


def _format_price(value: float | None) -> str:
    return "" if value is None else f"{value:.2f}"


def product_rows(product: Product) -> list[dict[str, str]]:
    """CSV rows for one product, keyed by header."""
    variants = product.variants or [default_variant(product)]
    rows = []

    for i, variant in enumerate(variants):
        first = i == 0
        has_size = bool(variant.option1) and variant.option1 != "Default"
        row = {
            "Handle": product.id,
            "Option1 Value": variant.option1 or "Default Title",
            "Option2 Value": variant.option2 or "",
            "Option3 Value": variant.option3 or "",
            "Variant SKU": variant.sku,
            "Variant Grams": str(DEFAULT_GRAMS),
            "Variant Inventory Tracker": "shopify",
            "Variant Inventory Qty": str(variant.inventory or DEFAULT_INVENTORY),
            "Variant Inventory Policy": "deny",
            "Variant Fulfillment Service": "manual",
            "Variant Price": _format_price(variant.price if variant.price is not None else product.price),
            "Variant Compare At Price": _format_price(product.compare_at_price),
            "Variant Requires Shipping": "TRUE",
            "Variant Taxable": "TRUE",
            "Gift Card": "FALSE",
            "Variant Weight Unit": "g",
            "Included / United States": "TRUE",
            "Included / International": "TRUE",
        }
        if first:
            row.update({
                "Title": product.name,
                "Body (HTML)": format_description(product.description),
                "Product Category": product.category,
                "Type": product.category,
                "Tags": format_tags(product),
                "Published": "TRUE",
                "Option1 Name": "Size" if has_size else "Title",
                "Option2 Name": "Color" if variant.option2 else "",
                "Option3 Name": "Material" if variant.option3 else "",
                "Image Alt Text": product.name,
                "SEO Title": product.seo_title,
                "SEO Description": product.seo_description,
                "Status": "active",
            })
        rows.append(row)

    return rows


def generate_product_csv(products: list[Product]) -> str:
    """Render the full import CSV for a catalog."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_HEADERS, restval="", lineterminator="\n")
    writer.writeheader()
    for product in products:
        writer.writerows(product_rows(product))
    return buffer.getvalue()


def write_product_csv(products: list[Product], path: Path | str) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(generate_product_csv(products), encoding="utf-8")
    return path
