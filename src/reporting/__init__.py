"""Read-only reporting over stored pipeline records."""

from src.reporting.progress import build_timeline, compute_progress

__all__ = ["build_timeline", "compute_progress"]
