from __future__ import annotations

import io
import shutil
from collections.abc import Sequence

import pytest
from PIL import Image, ImageDraw

from deltaview.image_diff.compare import compare_images, load_image, visual_diff
from deltaview.image_diff.errors import InvalidImageError, OracleError
from deltaview.image_diff.oracle import SequenceMatcherOracle
from deltaview.image_diff.types import DiffOptions, Opcode, OpcodeKind, make_opcode

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")

DIFFLIB = DiffOptions(oracle="difflib")

WHITE = (255, 255, 255, 255)
BLACK = (0, 0, 0, 255)


def _make_solid_image(width: int, height: int, color: tuple[int, int, int, int]) -> Image.Image:
    return Image.new("RGBA", (width, height), color)


def _make_inserted_block_pair() -> tuple[Image.Image, Image.Image]:
    before = _make_solid_image(100, 300, WHITE)
    after = _make_solid_image(100, 350, WHITE)
    draw = ImageDraw.Draw(after)
    draw.rectangle((0, 100, 99, 149), fill=BLACK)
    return before, after


def _make_striped_image(width: int, height: int) -> Image.Image:
    img = _make_solid_image(width, height, WHITE)
    draw = ImageDraw.Draw(img)
    for y in range(0, height, 3):
        draw.line((0, y, width - 1, y), fill=(y % 256, 40, 200, 255))
    return img


class FixedOracle:
    def __init__(self, opcodes: list[Opcode]) -> None:
        self.opcodes = opcodes

    def align(self, tokens_a: Sequence[str], tokens_b: Sequence[str]) -> list[Opcode]:
        return list(self.opcodes)


class FailingOracle:
    def align(self, tokens_a: Sequence[str], tokens_b: Sequence[str]) -> list[Opcode]:
        raise OracleError("oracle unavailable")


class TestLoadImage:
    def test_converts_to_rgba(self):
        img = load_image(Image.new("RGB", (5, 4), (1, 2, 3)))
        assert img.mode == "RGBA"
        assert img.getpixel((0, 0)) == (1, 2, 3, 255)

    def test_bytes_and_path(self, tmp_path):
        img = _make_solid_image(6, 3, (10, 20, 30, 255))
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        path = tmp_path / "img.png"
        img.save(path)

        assert load_image(buf.getvalue()).tobytes() == img.tobytes()
        assert load_image(path).tobytes() == img.tobytes()
        assert load_image(str(path)).size == (6, 3)

    def test_undecodable(self, tmp_path):
        with pytest.raises(InvalidImageError):
            load_image(b"not an image")
        with pytest.raises(InvalidImageError):
            load_image(tmp_path / "missing.png")

    def test_zero_size(self):
        with pytest.raises(InvalidImageError):
            load_image(Image.new("RGBA", (0, 10)))
        with pytest.raises(InvalidImageError):
            load_image(Image.new("RGBA", (10, 0)))


class TestCompareImages:
    def test_identical_images(self):
        img = _make_striped_image(40, 60)
        result = compare_images(img, img.copy(), DIFFLIB)

        assert result.opcodes == (make_opcode(OpcodeKind.EQUAL, 0, 60, 0, 60),)
        assert not result.has_differences
        assert result.image is None
        assert result.height == 0
        assert result.changed_pixels == 0

    def test_inserted_block(self):
        before, after = _make_inserted_block_pair()
        result = compare_images(before, after, DIFFLIB)

        assert list(result.opcodes) == [
            make_opcode(OpcodeKind.EQUAL, 0, 100, 0, 100),
            make_opcode(OpcodeKind.INSERT, 100, 100, 100, 150),
            make_opcode(OpcodeKind.EQUAL, 100, 300, 150, 350),
        ]
        assert result.has_differences
        assert result.image is not None
        assert result.image.size == (100, 350)
        assert (result.width, result.height) == (100, 350)

        top = result.image.getpixel((50, 50))
        r, g, b, _ = result.image.getpixel((50, 120))
        bottom = result.image.getpixel((50, 300))
        assert top == bottom
        assert top[0] == top[1] == top[2]
        assert r > g and g == b
        assert r < top[0]

    def test_different_widths_degrade_to_mismatch(self):
        result = compare_images(_make_striped_image(100, 90), _make_striped_image(120, 90), DIFFLIB)

        non_equal = [op for op in result.opcodes if op.kind is not OpcodeKind.EQUAL]
        assert len(non_equal) / len(result.opcodes) > 0.9
        assert result.width == 100
        assert result.before_width == 100
        assert result.after_width == 120
        assert result.image is not None
        assert result.image.width == 100

    def test_modified_block(self):
        before = _make_solid_image(50, 40, (100, 100, 100, 255))
        after = before.copy()
        draw = ImageDraw.Draw(after)
        draw.rectangle((10, 10, 29, 19), fill=(255, 0, 0, 255))

        result = compare_images(before, after, DIFFLIB)

        assert [op.kind for op in result.opcodes] == [
            OpcodeKind.EQUAL,
            OpcodeKind.REPLACE,
            OpcodeKind.EQUAL,
        ]
        assert result.changed_pixels == 20 * 10
        assert result.height == 40

    def test_merge_threshold_collapses_small_changes(self):
        before = _make_striped_image(30, 20)
        after = _make_striped_image(30, 21)
        oracle = FixedOracle(
            [
                make_opcode(OpcodeKind.EQUAL, 0, 10, 0, 10),
                make_opcode(OpcodeKind.DELETE, 10, 12, 10, 10),
                make_opcode(OpcodeKind.INSERT, 12, 12, 10, 13),
                make_opcode(OpcodeKind.EQUAL, 12, 20, 13, 21),
            ]
        )

        plain = compare_images(before, after, oracle=oracle)
        merged = compare_images(before, after, DiffOptions(merge_threshold=4), oracle=oracle)

        assert [op.kind for op in plain.opcodes] == [
            OpcodeKind.EQUAL,
            OpcodeKind.DELETE,
            OpcodeKind.INSERT,
            OpcodeKind.EQUAL,
        ]
        assert plain.height == 10 + 2 + 3 + 8
        assert merged.opcodes[1] == make_opcode(OpcodeKind.REPLACE, 10, 12, 10, 13)
        assert merged.height == 10 + 2 + 1 + 8

    def test_perceptual_scheme_ignores_small_shifts(self):
        before = _make_solid_image(30, 20, (40, 40, 40, 255))
        after = _make_solid_image(30, 20, (43, 43, 43, 255))

        exact = compare_images(before, after, DIFFLIB)
        perceptual = compare_images(
            before, after, DiffOptions(oracle="difflib", hash_scheme="perceptual")
        )

        assert exact.has_differences
        assert not perceptual.has_differences

    def test_parallel_render_keeps_order(self):
        before, after = _make_inserted_block_pair()
        serial = compare_images(before, after, DiffOptions(oracle="difflib", max_workers=1))
        parallel = compare_images(before, after, DiffOptions(oracle="difflib", max_workers=8))

        assert serial.opcodes == parallel.opcodes
        assert serial.image is not None and parallel.image is not None
        assert serial.image.tobytes() == parallel.image.tobytes()

    def test_oracle_failure_is_fatal(self):
        img = _make_solid_image(10, 10, WHITE)
        with pytest.raises(OracleError):
            compare_images(img, img.copy(), oracle=FailingOracle())

    @requires_git
    def test_git_oracle_end_to_end(self):
        before, after = _make_inserted_block_pair()
        result = compare_images(before, after, DiffOptions(diff_algorithm="myers"))
        assert [op.kind for op in result.opcodes] == [
            OpcodeKind.EQUAL,
            OpcodeKind.INSERT,
            OpcodeKind.EQUAL,
        ]
        assert result.height == 350

    @requires_git
    def test_git_oracle_identical(self):
        img = _make_striped_image(20, 30)
        result = compare_images(img, img.copy())
        assert result.opcodes == (make_opcode(OpcodeKind.EQUAL, 0, 30, 0, 30),)
        assert not result.has_differences


class TestVisualDiff:
    def test_writes_output_when_images_differ(self, tmp_path):
        before, after = _make_inserted_block_pair()
        output = tmp_path / "diff.png"

        result = visual_diff(before, after, output, oracle=SequenceMatcherOracle())

        assert result.has_differences
        with Image.open(output) as saved:
            assert saved.size == (100, 350)

    def test_skips_output_when_identical(self, tmp_path):
        img = _make_striped_image(20, 20)
        output = tmp_path / "diff.png"

        result = visual_diff(img, img.copy(), output, DIFFLIB)

        assert not result.has_differences
        assert not output.exists()
