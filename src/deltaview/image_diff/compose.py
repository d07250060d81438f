from __future__ import annotations

from collections.abc import Iterable

from PIL import Image

from .types import RenderedBlock

BACKGROUND = (255, 255, 255, 255)


def compose(blocks: Iterable[RenderedBlock], width: int) -> Image.Image | None:
    """Stack blocks top to bottom. Returns ``None`` when nothing is left to draw."""
    non_empty = [block for block in blocks if block.height > 0]
    total_height = sum(block.height for block in non_empty)
    if total_height == 0:
        return None

    canvas = Image.new("RGBA", (width, total_height), BACKGROUND)
    top = 0
    for block in non_empty:
        canvas.paste(block.image, (0, top))
        top += block.height
    return canvas
