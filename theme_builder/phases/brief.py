"""
Phase 1: Brief & Market Analysis

Collects the theme brief from the operator, then has the planning model
propose brand positioning, differentiation and recommended theme features.
"""

import logging
from typing import Optional

from pydantic import BaseModel, Field

from ..models import Phase, SessionState, ThemeBrief
from ..ui.display import Display
from .common import ask_json, brief_context, build_messages, describe_model, slugify, task_prompt
from .context import PhaseContext

logger = logging.getLogger(__name__)

STEP_MARKET_ANALYSIS = "market-analysis"

STYLE_DIRECTIONS = [
    ("Minimalist & Clean", "minimalist"),
    ("Bold & Vibrant", "bold"),
    ("Luxury & Elegant", "luxury"),
    ("Warm & Organic", "organic"),
    ("Modern & Technical", "modern"),
    ("Playful & Creative", "playful"),
]


class TargetAudience(BaseModel):
    demographics: str = ""
    psychographics: str = ""
    pain_points: list[str] = Field(default_factory=list)


class MarketDifferentiation(BaseModel):
    unique_value: str = ""
    competitor_gaps: list[str] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)


class ThemeFeatures(BaseModel):
    must_have: list[str] = Field(default_factory=list)
    nice_to_have: list[str] = Field(default_factory=list)
    unique: list[str] = Field(default_factory=list)


class ColorMood(BaseModel):
    primary: str = ""
    mood: str = ""
    reasoning: str = ""


class MarketAnalysis(BaseModel):
    """Planning model output for the brief."""

    brand_name: str
    positioning: str
    target_audience: TargetAudience = Field(default_factory=TargetAudience)
    differentiation: MarketDifferentiation = Field(default_factory=MarketDifferentiation)
    theme_features: ThemeFeatures = Field(default_factory=ThemeFeatures)
    color_mood: ColorMood = Field(default_factory=ColorMood)


ANALYSIS_INSTRUCTIONS = """
Generate a detailed market analysis as JSON with these keys:
brand_name, positioning,
target_audience {demographics, psychographics, pain_points[]},
differentiation {unique_value, competitor_gaps[], opportunities[]},
theme_features {must_have[], nice_to_have[], unique[]},
color_mood {primary, mood, reasoning}.
Respond with valid JSON only, no additional text.
"""


def collect_brief(ctx: PhaseContext) -> ThemeBrief:
    """Ask the operator for the brief."""
    ctx.display.info("Please provide information about your target theme.")
    industry = ctx.prompter.text("What industry or niche is this theme for?")
    target_market = ctx.prompter.text("Describe your target customer")
    style_direction = ctx.prompter.select("What overall style direction?", STYLE_DIRECTIONS)
    competitors = ctx.prompter.list_items("Competitor store URL")
    return ThemeBrief(
        industry=industry,
        target_market=target_market,
        style_direction=style_direction,
        competitors=competitors,
    )


def fallback_analysis(brief: ThemeBrief) -> MarketAnalysis:
    """Deterministic analysis used when the model reply cannot be parsed."""
    industry = brief.industry.lower()
    return MarketAnalysis(
        brand_name=f"{brief.industry.split()[0].title()} Store" if brief.industry.strip() else "Store",
        positioning=f"Premium {industry} for {brief.target_market}",
        target_audience=TargetAudience(
            demographics=brief.target_market,
            psychographics="Quality-focused, design-conscious consumers",
            pain_points=["Finding quality products", "Trusting online stores", "Getting good value"],
        ),
        differentiation=MarketDifferentiation(
            unique_value=f"Curated {industry} with exceptional design",
            competitor_gaps=["Better user experience", "Stronger visual identity", "More engaging content"],
            opportunities=["Niche positioning", "Premium branding", "Community building"],
        ),
        theme_features=ThemeFeatures(
            must_have=["Quick shop", "Product filtering", "Mobile-first design"],
            nice_to_have=["Wishlist", "Size guide", "Product comparisons"],
            unique=["Shoppable lookbook", "Style quiz"],
        ),
        color_mood=ColorMood(
            primary="Deep navy or black" if brief.style_direction == "luxury" else "Warm neutral",
            mood=brief.style_direction,
            reasoning=f"Aligns with the {brief.style_direction} aesthetic and target market",
        ),
    )


async def generate_market_analysis(
    ctx: PhaseContext, brief: ThemeBrief, feedback: Optional[str]
) -> MarketAnalysis:
    competitors = "\n".join(brief.competitors) or "None provided"
    system = task_prompt(
        STEP_MARKET_ANALYSIS,
        "You are a senior e-commerce strategist and brand consultant.",
        f"{brief_context(brief)}\nCompetitors: {competitors}",
        ANALYSIS_INSTRUCTIONS,
    )
    messages = build_messages(system, feedback, "Generate the market analysis now.")
    return await ask_json(
        ctx.chat,
        STEP_MARKET_ANALYSIS,
        messages,
        MarketAnalysis,
        "market analysis",
        fallback=lambda: fallback_analysis(brief),
    )


def display_market_analysis(display: Display, analysis: MarketAnalysis) -> None:
    def bullets(items: list[str], mark: str = "-") -> str:
        return "\n".join(f"  {mark} {item}" for item in items) or "  (none)"

    audience = analysis.target_audience
    diff = analysis.differentiation
    features = analysis.theme_features
    display.proposal(
        "Market Analysis Proposal",
        f"""
BRAND NAME: {analysis.brand_name}

POSITIONING
{analysis.positioning}

TARGET AUDIENCE
Demographics: {audience.demographics}
Psychographics: {audience.psychographics}
Pain points:
{bullets(audience.pain_points)}

MARKET DIFFERENTIATION
Unique value: {diff.unique_value}
Competitor gaps:
{bullets(diff.competitor_gaps)}
Opportunities:
{bullets(diff.opportunities)}

RECOMMENDED THEME FEATURES
Must have:
{bullets(features.must_have, "✓")}
Nice to have:
{bullets(features.nice_to_have, "○")}
Unique:
{bullets(features.unique, "★")}

COLOR & MOOD
Primary direction: {analysis.color_mood.primary}
Mood: {analysis.color_mood.mood}
Reasoning: {analysis.color_mood.reasoning}
""",
    )


async def run(session: SessionState, ctx: PhaseContext) -> None:
    """Collect the brief and negotiate the market analysis."""
    display = ctx.display

    display.section_header("Step 1: Theme Brief")
    if session.brief is None:
        session.brief = collect_brief(ctx)
        ctx.checkpoint(session)
        display.success("Brief collected")
    else:
        display.info(f"Using the saved brief for {session.brief.industry}")
    brief = session.brief

    display.section_header("Step 2: AI Market Analysis")
    display.info(f"Using {describe_model(ctx.config, STEP_MARKET_ANALYSIS)} for analysis...")

    outcome = await ctx.approve(
        session,
        Phase.BRIEF,
        STEP_MARKET_ANALYSIS,
        generate=lambda feedback: generate_market_analysis(ctx, brief, feedback),
        display=lambda analysis: display_market_analysis(display, analysis),
        artifact_type=MarketAnalysis,
    )

    analysis = outcome.result
    if analysis is None:
        display.warning("Market analysis skipped; naming the theme after the industry")
        session.theme_name = slugify(brief.industry)
        return

    brief.brand_name = analysis.brand_name or None
    brief.positioning = analysis.positioning or None
    session.theme_name = analysis.brand_name or slugify(brief.industry)
    display.success(f"Market analysis complete: {session.theme_name}")
