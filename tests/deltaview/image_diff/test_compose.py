from __future__ import annotations

from PIL import Image

from deltaview.image_diff.compose import compose
from deltaview.image_diff.types import BlockStyle, OpcodeKind, RenderedBlock


def _block(height: int, color: tuple[int, int, int, int], width: int = 8) -> RenderedBlock:
    return RenderedBlock(
        OpcodeKind.EQUAL, BlockStyle.UNCHANGED, Image.new("RGBA", (width, height), color)
    )


class TestCompose:
    def test_stacks_blocks_in_order(self):
        red = (255, 0, 0, 255)
        green = (0, 255, 0, 255)
        blue = (0, 0, 255, 255)
        canvas = compose([_block(3, red), _block(5, green), _block(2, blue)], 8)

        assert canvas is not None
        assert canvas.size == (8, 10)
        assert canvas.getpixel((0, 0)) == red
        assert canvas.getpixel((7, 2)) == red
        assert canvas.getpixel((0, 3)) == green
        assert canvas.getpixel((4, 7)) == green
        assert canvas.getpixel((0, 8)) == blue
        assert canvas.getpixel((7, 9)) == blue

    def test_skips_zero_height_blocks(self):
        gray = (128, 128, 128, 255)
        canvas = compose([_block(0, (255, 0, 0, 255)), _block(4, gray), _block(0, gray)], 8)
        assert canvas is not None
        assert canvas.size == (8, 4)
        assert canvas.getpixel((0, 0)) == gray

    def test_nothing_to_draw(self):
        assert compose([], 8) is None
        assert compose([_block(0, (0, 0, 0, 255))], 8) is None
