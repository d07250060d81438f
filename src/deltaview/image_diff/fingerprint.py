from __future__ import annotations

import hashlib

import numpy as np
from PIL import Image

from .types import HashScheme

CHANNELS = 4
DEFAULT_BUCKET_SIZE = 16
DEFAULT_SENSITIVITY = 48
DEFAULT_TRANSITION_BUCKET = 4


def _rows(image: Image.Image) -> np.ndarray:
    if image.mode != "RGBA":
        raise ValueError(f"expected an RGBA image, got mode {image.mode!r}")
    data = np.frombuffer(image.tobytes(), dtype=np.uint8)
    return data.reshape(image.height, image.width * CHANNELS)


def exact_row_hashes(image: Image.Image) -> list[str]:
    """MD5 of each raw row. Any pixel change anywhere in a row changes its token."""
    return [hashlib.md5(row.tobytes()).hexdigest() for row in _rows(image)]


def _perceptual_signature(
    row: np.ndarray, bucket_size: int, sensitivity: int, transition_bucket: int
) -> str:
    rgb = row.reshape(-1, CHANNELS)[:, :3].astype(np.int32)
    means = rgb.mean(axis=0)
    r, g, b = (int(m) // bucket_size for m in means)
    if len(rgb) > 1:
        deltas = np.abs(np.diff(rgb, axis=0)).sum(axis=1)
        transitions = int(np.count_nonzero(deltas > sensitivity))
    else:
        transitions = 0
    return f"{r},{g},{b}|{transitions // transition_bucket}"


def perceptual_row_hashes(
    image: Image.Image,
    *,
    bucket_size: int = DEFAULT_BUCKET_SIZE,
    sensitivity: int = DEFAULT_SENSITIVITY,
    transition_bucket: int = DEFAULT_TRANSITION_BUCKET,
) -> list[str]:
    """Digest of each row's quantized mean color and coarse edge count.

    Rows that differ only by anti-aliasing or small per-channel shifts collapse
    to the same token, while rows with a different average color or a
    different edge pattern do not.
    """
    return [
        hashlib.md5(
            _perceptual_signature(row, bucket_size, sensitivity, transition_bucket).encode()
        ).hexdigest()
        for row in _rows(image)
    ]


def fingerprint(
    image: Image.Image,
    scheme: HashScheme = "exact",
    *,
    bucket_size: int = DEFAULT_BUCKET_SIZE,
    sensitivity: int = DEFAULT_SENSITIVITY,
    transition_bucket: int = DEFAULT_TRANSITION_BUCKET,
) -> list[str]:
    if scheme == "exact":
        return exact_row_hashes(image)
    if scheme == "perceptual":
        return perceptual_row_hashes(
            image,
            bucket_size=bucket_size,
            sensitivity=sensitivity,
            transition_bucket=transition_bucket,
        )
    raise ValueError(f"unknown hash scheme: {scheme!r}")
