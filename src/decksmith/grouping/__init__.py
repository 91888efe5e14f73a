"""Geometric grouping of text blocks: cleanup regions and reading order."""

from .reading_order import sort_reading_order
from .regions import consolidate_regions, merge_boxes

__all__ = [
    "consolidate_regions",
    "merge_boxes",
    "sort_reading_order",
]
