from __future__ import annotations

import io
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .compose import compose
from .errors import InvalidImageError
from .fingerprint import fingerprint
from .oracle import DiffOracle, get_oracle, validate_opcodes
from .refine import refine
from .render import render_opcode
from .types import DiffOptions, DiffResult, OpcodeKind, RenderedBlock

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = "image-diff.png"

ImageSource = bytes | str | Path | Image.Image


def load_image(source: ImageSource) -> Image.Image:
    """Decode ``source`` into an RGBA image with a non-zero size."""
    if isinstance(source, Image.Image):
        img = source.convert("RGBA") if source.mode != "RGBA" else source
    else:
        fp = io.BytesIO(source) if isinstance(source, bytes) else source
        try:
            with Image.open(fp) as opened:
                img = opened.convert("RGBA")
        except (OSError, UnidentifiedImageError, Image.DecompressionBombError) as e:
            raise InvalidImageError(f"could not decode image {_describe(source)}") from e

    if img.width == 0 or img.height == 0:
        raise InvalidImageError(
            f"image {_describe(source)} has zero size ({img.width}x{img.height})"
        )
    return img


def _describe(source: ImageSource) -> str:
    if isinstance(source, bytes):
        return f"<{len(source)} bytes>"
    if isinstance(source, Image.Image):
        return f"<{source.mode} {source.width}x{source.height}>"
    return str(source)


def _load_and_fingerprint(
    source: ImageSource, options: DiffOptions
) -> tuple[Image.Image, list[str]]:
    img = load_image(source)
    tokens = fingerprint(
        img,
        options.hash_scheme,
        bucket_size=options.bucket_size,
        sensitivity=options.sensitivity,
        transition_bucket=options.transition_bucket,
    )
    return img, tokens


def compare_images(
    before: ImageSource,
    after: ImageSource,
    options: DiffOptions | None = None,
    oracle: DiffOracle | None = None,
) -> DiffResult:
    options = options or DiffOptions()
    oracle = oracle or get_oracle(options.oracle, options.diff_algorithm)

    with ThreadPoolExecutor(max_workers=options.max_workers) as executor:
        before_future = executor.submit(_load_and_fingerprint, before, options)
        after_future = executor.submit(_load_and_fingerprint, after, options)
        image1, tokens1 = before_future.result()
        image2, tokens2 = after_future.result()

        width = min(image1.width, image2.width)
        if image1.width != image2.width:
            logger.warning(
                "Image widths differ, rows are compared at different widths",
                extra={"before_width": image1.width, "after_width": image2.width},
            )

        opcodes = refine(oracle.align(tokens1, tokens2), options.merge_threshold)
        validate_opcodes(opcodes, len(tokens1), len(tokens2))
        logger.info(
            "Aligned %d rows against %d rows into %d opcodes",
            len(tokens1),
            len(tokens2),
            len(opcodes),
            extra={"hash_scheme": options.hash_scheme, "merge_threshold": options.merge_threshold},
        )

        blocks: list[RenderedBlock] = []
        if any(op.kind is not OpcodeKind.EQUAL for op in opcodes):
            for rendered in executor.map(
                lambda op: render_opcode(op, image1, image2, width, options.style), opcodes
            ):
                blocks.extend(rendered)

    composite = compose(blocks, width)
    return DiffResult(
        opcodes=tuple(opcodes),
        before_width=image1.width,
        before_height=image1.height,
        after_width=image2.width,
        after_height=image2.height,
        width=width,
        height=composite.height if composite is not None else 0,
        changed_pixels=sum(block.changed_pixels for block in blocks),
        image=composite,
    )


def visual_diff(
    image1: ImageSource,
    image2: ImageSource,
    output: str | Path | None = DEFAULT_OUTPUT,
    options: DiffOptions | None = None,
    oracle: DiffOracle | None = None,
) -> DiffResult:
    """Diff two images and save the composite to ``output`` if they differ."""
    result = compare_images(image1, image2, options, oracle)

    if result.image is not None and output is not None:
        result.image.save(output, "PNG")
        logger.info(
            "Saved visual diff",
            extra={"output": str(output), "width": result.width, "height": result.height},
        )
    return result
