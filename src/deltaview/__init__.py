"""Row-aligned visual diffs of raster images."""

from __future__ import annotations

from .image_diff import DiffOptions, DiffResult, RenderStyle, compare_images, visual_diff

__all__ = ["DiffOptions", "DiffResult", "RenderStyle", "compare_images", "visual_diff"]

__version__ = "0.1.0"
