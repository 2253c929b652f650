"""Aggregate import for all API route modules."""

from . import control, answers, rankings, reorder

__all__ = [
    "control",
    "answers",
    "rankings",
    "reorder",
]
