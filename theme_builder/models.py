"""
Core data models used across the application.

Includes models for:
- Workflow phases and approval records
- Phase payloads (brief, catalog, sections, design system, tests, submission)
- The persisted session state
"""

import secrets
import string
import time
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# PHASES
# ============================================================================


class Phase(str, Enum):
    """Workflow phases, declared in execution order."""

    BRIEF = "brief"
    PRODUCTS = "products"
    IMAGES = "images"
    DIFFERENTIATION = "differentiation"
    DESIGN_SYSTEM = "design-system"
    CODE_GENERATION = "code-generation"
    TESTING = "testing"
    SUBMISSION = "submission"

    @classmethod
    def ordered(cls) -> list["Phase"]:
        return list(cls)

    @classmethod
    def parse(cls, value: "str | Phase") -> "Phase":
        """Resolve a phase name, raising ValueError for unknown names."""
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown phase: {value!r}") from None

    @property
    def position(self) -> int:
        return Phase.ordered().index(self)

    @property
    def display_name(self) -> str:
        return PHASE_TITLES[self]


PHASE_TITLES: dict[Phase, str] = {
    Phase.BRIEF: "Brief & Market Analysis",
    Phase.PRODUCTS: "Product Catalog",
    Phase.IMAGES: "Image Generation",
    Phase.DIFFERENTIATION: "Theme Differentiation",
    Phase.DESIGN_SYSTEM: "Design System",
    Phase.CODE_GENERATION: "Code Generation",
    Phase.TESTING: "Preview & Testing",
    Phase.SUBMISSION: "Submission Assets",
}


# ============================================================================
# APPROVAL
# ============================================================================

SKIPPED_FEEDBACK = "SKIPPED - max iterations"


class ApprovalRecord(BaseModel):
    """One completed negotiation round for a (phase, step) pair."""

    phase: Phase
    step: str
    iteration: int = Field(ge=1)
    accepted: bool
    feedback: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)
    forced: bool = False
    skipped: bool = False

    @property
    def terminal(self) -> bool:
        """Whether this record ended its loop."""
        return self.accepted or self.skipped


# ============================================================================
# BRIEF & CATALOG
# ============================================================================


class ThemeBrief(BaseModel):
    """Operator-supplied brief, enriched by the market analysis."""

    industry: str
    target_market: str
    style_direction: str
    competitors: list[str] = Field(default_factory=list)
    brand_name: Optional[str] = None
    positioning: Optional[str] = None


class ProductVariant(BaseModel):
    name: str
    option1: str = "Default"
    option2: Optional[str] = None
    option3: Optional[str] = None
    sku: str = ""
    inventory: int = 0
    price: Optional[float] = None


class ProductImages(BaseModel):
    """Local paths of generated product images."""

    studio: Optional[str] = None
    angles: list[str] = Field(default_factory=list)
    lifestyle: list[str] = Field(default_factory=list)

    @property
    def empty(self) -> bool:
        return self.studio is None and not self.angles and not self.lifestyle


class Product(BaseModel):
    id: str = Field(description="Product handle")
    name: str
    description: str
    price: float
    compare_at_price: Optional[float] = None
    category: str
    collection: str
    variants: list[ProductVariant] = Field(default_factory=list)
    seo_title: str = ""
    seo_description: str = ""
    images: ProductImages = Field(default_factory=ProductImages)


# ============================================================================
# DIFFERENTIATION
# ============================================================================


class SectionProposal(BaseModel):
    id: str
    name: str
    type: Literal["new", "modified"]
    concept: str
    functionality: str = ""
    unique_features: list[str] = Field(default_factory=list)
    settings_schema: Optional[dict[str, Any]] = None
    skipped: bool = False


class GeneratedFile(BaseModel):
    """A theme file produced by an accepted code step."""

    path: str = Field(description="Path relative to the theme root, e.g. sections/header.liquid")
    content: str
    step: str
    origin: Literal["rewrite", "new", "modified"] = "rewrite"


# ============================================================================
# DESIGN SYSTEM
# ============================================================================


class ColorScheme(BaseModel):
    name: str
    primary: str
    secondary: str
    accent: str
    background: str
    text: str
    muted: str


class Typography(BaseModel):
    heading_font: str
    heading_fallback: str = "serif"
    heading_weight: int = 700
    body_font: str
    body_fallback: str = "sans-serif"
    body_weight: int = 400
    base_size: str = "16px"
    scale: float = 1.25
    line_height_heading: float = 1.2
    line_height_body: float = 1.6


class Spacing(BaseModel):
    base_unit: int = 8
    scale: list[float] = Field(default_factory=lambda: [0.25, 0.5, 1, 1.5, 2, 3, 4, 6, 8])
    section_padding_mobile: str = "40px"
    section_padding_desktop: str = "80px"
    container_width: str = "1200px"
    grid_gap: str = "24px"


class ButtonStyle(BaseModel):
    border_radius: str = "4px"
    padding_x: str = "24px"
    padding_y: str = "12px"
    font_weight: int = 600
    text_transform: Literal["none", "uppercase", "capitalize"] = "none"
    style: Literal["filled", "outline", "ghost"] = "filled"


class Corners(BaseModel):
    none: str = "0"
    small: str = "4px"
    medium: str = "8px"
    large: str = "16px"
    full: str = "9999px"


class DesignSystem(BaseModel):
    """Approved design tokens. Components are None when their step was skipped."""

    color_schemes: list[ColorScheme]
    selected_scheme: int = 0
    typography: Optional[Typography] = None
    spacing: Optional[Spacing] = None
    buttons: Optional[ButtonStyle] = None
    corners: Corners = Field(default_factory=Corners)

    @property
    def scheme(self) -> ColorScheme:
        return self.color_schemes[self.selected_scheme]


# ============================================================================
# BUILD, TEST, SUBMISSION
# ============================================================================


class ThemeBuild(BaseModel):
    """Result of assembling the theme directory."""

    theme_dir: str
    homepage_sections: list[str] = Field(default_factory=list)
    new_sections: list[str] = Field(default_factory=list)
    modified_sections: list[str] = Field(default_factory=list)
    excluded_steps: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


class TestResult(BaseModel):
    __test__ = False

    passed: bool
    category: str
    name: str
    message: Optional[str] = None
    severity: Literal["error", "warning", "info"] = "info"


class SubmissionAssets(BaseModel):
    thumbnail: str = ""
    desktop_preview: str = ""
    mobile_preview: str = ""
    key_feature_images: list[str] = Field(default_factory=list)
    key_features: list[str] = Field(default_factory=list)
    documentation: str = ""
    preview_url: str = ""
    theme_name: str = ""
    package_path: str = ""
    generated_at: Optional[datetime] = None


# ============================================================================
# SESSION
# ============================================================================

_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def new_session_id() -> str:
    """Timestamp-prefixed id, e.g. 'm1x2k3l4-a9f0zq'."""
    stamp = _to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"{stamp}-{suffix}"


class SessionSummary(BaseModel):
    """Lightweight listing entry for stored sessions."""

    id: str
    theme_name: str
    last_updated_at: datetime
    current_phase: Phase


class SessionState(BaseModel):
    """
    Complete, persisted state of one theme generation run.

    Payload fields are owned by exactly one phase; see
    ``theme_builder.session.invalidation.PHASE_OWNED_FIELDS``.
    """

    model_config = ConfigDict(extra="ignore", validate_assignment=False)

    # === Identity & progress ===
    id: str = Field(default_factory=new_session_id, frozen=True)
    started_at: datetime = Field(default_factory=datetime.now)
    last_updated_at: datetime = Field(default_factory=datetime.now)
    current_phase: Phase = Phase.BRIEF
    completed_phases: list[Phase] = Field(default_factory=list)

    # === brief ===
    theme_name: str = ""
    brief: Optional[ThemeBrief] = None

    # === products / images ===
    products: list[Product] = Field(default_factory=list)
    image_manifest: Optional[str] = None

    # === differentiation ===
    sections: list[SectionProposal] = Field(default_factory=list)
    generated_files: list[GeneratedFile] = Field(default_factory=list)

    # === design-system / code-generation ===
    design_system: Optional[DesignSystem] = None
    theme_build: Optional[ThemeBuild] = None

    # === testing ===
    test_results: list[TestResult] = Field(default_factory=list)
    test_theme_preview_url: Optional[str] = None

    # === submission ===
    submission_assets: SubmissionAssets = Field(default_factory=SubmissionAssets)
    submission_theme_id: Optional[str] = None
    documentation: Optional[str] = None

    # === Negotiation log ===
    approval_history: list[ApprovalRecord] = Field(default_factory=list)
    step_artifacts: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @classmethod
    def create(cls) -> "SessionState":
        """Create an empty session positioned at the first phase."""
        return cls()

    @property
    def output_name(self) -> str:
        return self.theme_name or self.id

    def touch(self) -> None:
        self.last_updated_at = datetime.now()

    def mark_completed(self, phase: Phase) -> None:
        if phase not in self.completed_phases:
            self.completed_phases.append(phase)

    def remaining_phases(self) -> list[Phase]:
        return [p for p in Phase.ordered() if p not in self.completed_phases]

    # === Approval history helpers ===

    def add_approval_record(self, record: ApprovalRecord) -> None:
        self.approval_history.append(record)

    def phase_history(self, phase: Phase) -> list[ApprovalRecord]:
        return [r for r in self.approval_history if r.phase == phase]

    def step_history(self, phase: Phase, step: str) -> list[ApprovalRecord]:
        return [r for r in self.approval_history if r.phase == phase and r.step == step]

    def was_step_accepted(self, phase: Phase, step: str) -> bool:
        return any(r.accepted for r in self.step_history(phase, step))

    def was_step_skipped(self, phase: Phase, step: str) -> bool:
        return any(r.skipped for r in self.step_history(phase, step))

    def skipped_steps(self, phase: Optional[Phase] = None) -> list[str]:
        """Steps whose loop ended in a forced skip, as 'phase/step' labels."""
        return [
            f"{r.phase.value}/{r.step}"
            for r in self.approval_history
            if r.skipped and (phase is None or r.phase == phase)
        ]

    # === Step artifact checkpoints ===

    def stored_artifact(self, phase: Phase, step: str) -> Optional[dict[str, Any]]:
        return self.step_artifacts.get(phase.value, {}).get(step)

    def store_artifact(self, phase: Phase, step: str, data: Any, skipped: bool = False) -> None:
        self.step_artifacts.setdefault(phase.value, {})[step] = {
            "data": data,
            "skipped": skipped,
        }
