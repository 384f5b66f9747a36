# PATH: monitoring/__init__.py
"""
Monitoring package: console rendering of update outcomes.
"""

from monitoring.report import (
    render_outcome,
    render_simulation,
    render_spread,
    render_summary,
)

__all__ = [
    "render_outcome",
    "render_simulation",
    "render_spread",
    "render_summary",
]
