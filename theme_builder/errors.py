"""Exception hierarchy shared across the theme builder."""


class ThemeBuilderError(Exception):
    """Base class for all theme builder errors."""

    pass
