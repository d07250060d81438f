from __future__ import annotations

from PIL import Image
from pixelmatch.contrib.PIL import pixelmatch

from .errors import ExtractionOutOfBoundsError
from .types import BlockStyle, Opcode, OpcodeKind, RenderedBlock, RenderStyle, RGB

WHITE: RGB = (255, 255, 255)


def _alpha(opacity: float) -> int:
    return round(opacity * 255)


def extract_rows(image: Image.Image, top: int, height: int, width: int) -> Image.Image:
    if top < 0 or height < 0 or width <= 0 or top + height > image.height or width > image.width:
        raise ExtractionOutOfBoundsError(
            f"region top={top} height={height} width={width} is outside "
            f"a {image.width}x{image.height} image"
        )
    return image.crop((0, top, width, top + height))


def _overlay(block: Image.Image, color: RGB, opacity: float) -> Image.Image:
    layer = Image.new("RGBA", block.size, (*color, _alpha(opacity)))
    return Image.alpha_composite(block, layer)


def lighter_grayscale(block: Image.Image, lighten: float = 0.5) -> Image.Image:
    gray = block.convert("LA").convert("RGBA")
    return _overlay(gray, WHITE, lighten)


def tinted_grayscale(block: Image.Image, color: RGB, style: RenderStyle) -> Image.Image:
    return _overlay(lighter_grayscale(block, style.lighten), color, style.tint_alpha)


def pixel_diff(
    block1: Image.Image, block2: Image.Image, style: RenderStyle
) -> tuple[Image.Image, int]:
    """Highlight differing pixels of two equal-sized blocks on top of ``block2``."""
    output = Image.new("RGBA", block1.size)
    mismatch = pixelmatch(
        block1,
        block2,
        output,
        threshold=style.threshold,
        includeAA=style.include_aa,
        diff_mask=style.diff_mask,
    )
    return Image.alpha_composite(block2, output), mismatch


def _deleted(
    kind: OpcodeKind, image1: Image.Image, top: int, height: int, width: int, style: RenderStyle
) -> RenderedBlock:
    block = extract_rows(image1, top, height, width)
    tinted = tinted_grayscale(block, style.delete_color, style)
    return RenderedBlock(kind, BlockStyle.DELETED, tinted)


def _inserted(
    kind: OpcodeKind, image2: Image.Image, top: int, height: int, width: int, style: RenderStyle
) -> RenderedBlock:
    block = extract_rows(image2, top, height, width)
    tinted = tinted_grayscale(block, style.insert_color, style)
    return RenderedBlock(kind, BlockStyle.INSERTED, tinted)


def render_opcode(
    opcode: Opcode,
    image1: Image.Image,
    image2: Image.Image,
    width: int,
    style: RenderStyle | None = None,
) -> list[RenderedBlock]:
    """Render the rows covered by one opcode.

    A replace whose sides differ in height yields a pixel-diff block for the
    overlapping rows followed by an insert- or delete-styled block for the
    remainder. Empty regions produce no block.
    """
    style = style or RenderStyle()
    kind = opcode.kind

    if kind is OpcodeKind.EQUAL:
        if opcode.a_len == 0:
            return []
        block = extract_rows(image1, opcode.a_start, opcode.a_len, width)
        return [RenderedBlock(kind, BlockStyle.UNCHANGED, lighter_grayscale(block, style.lighten))]

    if kind is OpcodeKind.DELETE:
        if opcode.a_len == 0:
            return []
        return [_deleted(kind, image1, opcode.a_start, opcode.a_len, width, style)]

    if kind is OpcodeKind.INSERT:
        if opcode.b_len == 0:
            return []
        return [_inserted(kind, image2, opcode.b_start, opcode.b_len, width, style)]

    if kind is OpcodeKind.REPLACE:
        h1 = opcode.a_len
        h2 = opcode.b_len
        hmin = min(h1, h2)
        blocks: list[RenderedBlock] = []
        if hmin > 0:
            block1 = extract_rows(image1, opcode.a_start, hmin, width)
            block2 = extract_rows(image2, opcode.b_start, hmin, width)
            diff_image, mismatch = pixel_diff(block1, block2, style)
            blocks.append(RenderedBlock(kind, BlockStyle.PIXEL_DIFF, diff_image, mismatch))
        if h2 > h1:
            blocks.append(_inserted(kind, image2, opcode.b_start + hmin, h2 - h1, width, style))
        elif h1 > h2:
            blocks.append(_deleted(kind, image1, opcode.a_start + hmin, h1 - h2, width, style))
        return blocks

    raise AssertionError(f"unhandled opcode kind: {kind!r}")
