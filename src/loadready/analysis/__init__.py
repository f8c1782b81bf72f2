from __future__ import annotations

from loadready.analysis.checks import Check, all_passed, validate
from loadready.analysis.report import render_header, render_progress, render_report

__all__ = [
    "Check",
    "all_passed",
    "render_header",
    "render_progress",
    "render_report",
    "validate",
]
