"""File generators: product CSV, design tokens, theme package and documentation."""

from .csv_export import generate_product_csv, write_product_csv
from .design_tokens import build_css_variables, build_settings_data
from .documentation import (
    DifferentiationScore,
    build_checklist,
    build_documentation,
    differentiation_score,
    key_features,
)
from .theme_package import (
    ThemeManifest,
    ThemePackageResult,
    VerificationResult,
    assemble_theme,
    package_summary,
    package_theme,
    verify_theme_package,
)

__all__ = [
    "generate_product_csv",
    "write_product_csv",
    "build_css_variables",
    "build_settings_data",
    "DifferentiationScore",
    "build_checklist",
    "build_documentation",
    "differentiation_score",
    "key_features",
    "ThemeManifest",
    "ThemePackageResult",
    "VerificationResult",
    "assemble_theme",
    "package_summary",
    "package_theme",
    "verify_theme_package",
]
