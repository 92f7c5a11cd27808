"""
Phase 3: Image Generation

For each product the studio shot is reviewed; angle and lifestyle shots
follow from the approved prompt without further review. Progress is saved
after every product, so an interrupted run picks up at the next product
without images.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from ..ai.images import DEFAULT_ANGLES, DEFAULT_LIFESTYLE_CONTEXTS, ImageResult, build_studio_prompt
from ..models import Phase, Product, SessionState
from ..ui.display import Display
from .context import PhaseContext

logger = logging.getLogger(__name__)


def studio_step(product: Product) -> str:
    return f"studio-{product.id}"


async def generate_studio_image(
    ctx: PhaseContext, product: Product, style: str, feedback: Optional[str]
) -> ImageResult:
    prompt = build_studio_prompt(product.name, product.description, style)
    if feedback:
        prompt = f"{prompt} Adjustments: {feedback}"
    return await ctx.images.generate(prompt, "studio")


def display_image_result(display: Display, product: Product, result: ImageResult) -> None:
    if result.success:
        display.proposal(
            f"Studio shot: {product.name}",
            f"Prompt: {result.prompt}\n\nImage: {result.image_url}",
        )
    else:
        display.error(f"Image generation failed for {product.name}: {result.error}")


async def _download_all(
    ctx: PhaseContext, results: list[ImageResult], target_dir: Path, prefix: str
) -> list[str]:
    paths = []
    for result in results:
        if not result.success or not result.image_url:
            logger.warning("Skipping failed %s image %s: %s", prefix, result.variant, result.error)
            continue
        path = await ctx.images.download(result.image_url, target_dir / f"{prefix}-{result.variant}.png")
        paths.append(str(path))
    return paths


async def generate_product_images(
    session: SessionState, ctx: PhaseContext, product: Product, style: str
) -> None:
    """Review the studio shot for one product, then fill in the rest of its set."""
    outcome = await ctx.approve(
        session,
        Phase.IMAGES,
        studio_step(product),
        generate=lambda feedback: generate_studio_image(ctx, product, style, feedback),
        display=lambda result: display_image_result(ctx.display, product, result),
        artifact_type=ImageResult,
    )

    studio = outcome.result
    if studio is None:
        ctx.display.warning(f"Skipped images for {product.name}")
        return

    product_dir = ctx.output_dir(session) / "images" / product.id
    generation = ctx.config.generation

    if studio.success and studio.image_url:
        path = await ctx.images.download(studio.image_url, product_dir / "studio.png")
        product.images.studio = str(path)

    angles = await ctx.images.generate_angles(
        product.name, product.description, DEFAULT_ANGLES[: generation.angles_per_product]
    )
    product.images.angles = await _download_all(ctx, angles, product_dir, "angle")

    lifestyle = await ctx.images.generate_lifestyle(
        product.name,
        product.description,
        DEFAULT_LIFESTYLE_CONTEXTS[: generation.lifestyle_images_per_product],
    )
    product.images.lifestyle = await _download_all(ctx, lifestyle, product_dir, "lifestyle")


def write_image_manifest(session: SessionState, path: Path) -> Path:
    manifest = {p.id: p.images.model_dump() for p in session.products}
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(manifest, indent=2), encoding="utf-8")
    return path


async def run(session: SessionState, ctx: PhaseContext) -> None:
    """Generate product imagery for every product still missing it."""
    display = ctx.display
    if not session.products:
        display.warning("No products to photograph; skipping image generation")
        return

    pending = [p for p in session.products if p.images.empty]
    done = len(session.products) - len(pending)
    if done:
        display.info(f"{done} products already have images")
    if not pending:
        display.success("All products have images")
    elif not ctx.prompter.confirm(f"Generate images for {len(pending)} products?", default=True):
        display.warning("Image generation skipped by operator")
        return

    style = session.brief.style_direction if session.brief else None
    for index, product in enumerate(pending, 1):
        display.section_header(f"Product {index}/{len(pending)}: {product.name}")
        await generate_product_images(session, ctx, product, style)
        ctx.checkpoint(session)

    manifest_path = write_image_manifest(session, ctx.output_dir(session) / "images" / "manifest.json")
    session.image_manifest = str(manifest_path)
    display.success(f"Image manifest written to {manifest_path}")
