from .compare import compare_images, load_image, visual_diff
from .compose import compose
from .errors import (
    ExtractionOutOfBoundsError,
    ImageDiffError,
    InvalidImageError,
    OracleError,
    PreconditionError,
)
from .fingerprint import fingerprint
from .oracle import (
    DiffOracle,
    GitDiffOracle,
    SequenceMatcherOracle,
    get_oracle,
    parse_unified_diff,
    validate_opcodes,
)
from .refine import refine
from .render import render_opcode
from .types import (
    BlockStyle,
    DiffOptions,
    DiffResult,
    Opcode,
    OpcodeKind,
    RenderedBlock,
    RenderStyle,
    make_opcode,
)

__all__ = [
    "BlockStyle",
    "DiffOptions",
    "DiffOracle",
    "DiffResult",
    "ExtractionOutOfBoundsError",
    "GitDiffOracle",
    "ImageDiffError",
    "InvalidImageError",
    "Opcode",
    "OpcodeKind",
    "OracleError",
    "PreconditionError",
    "RenderStyle",
    "RenderedBlock",
    "SequenceMatcherOracle",
    "compare_images",
    "compose",
    "fingerprint",
    "get_oracle",
    "load_image",
    "make_opcode",
    "parse_unified_diff",
    "refine",
    "render_opcode",
    "validate_opcodes",
    "visual_diff",
]
