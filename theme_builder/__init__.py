"""
Theme Builder - human-in-the-loop Shopify theme generation.

A session moves through eight ordered phases (brief, products, images,
differentiation, design system, code generation, testing, submission).
Every generated artifact is negotiated with the operator through the
approval engine, and the session is persisted after each phase so a run
can be resumed or rewound at any point.
"""

__version__ = "0.1.0"
