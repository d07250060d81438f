from __future__ import annotations

from enum import Enum
from typing import Literal, NamedTuple

from PIL import Image
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import PreconditionError

HashScheme = Literal["exact", "perceptual"]
DiffAlgorithm = Literal["myers", "minimal", "patience", "histogram"]
OracleName = Literal["git", "difflib"]
RGB = tuple[int, int, int]


class OpcodeKind(str, Enum):
    EQUAL = "equal"
    INSERT = "insert"
    DELETE = "delete"
    REPLACE = "replace"


class Opcode(BaseModel):
    """One edit operation over half-open row ranges of image A and image B."""

    model_config = ConfigDict(frozen=True)

    kind: OpcodeKind
    a_start: int = Field(ge=0)
    a_end: int = Field(ge=0)
    b_start: int = Field(ge=0)
    b_end: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_ranges(self) -> Opcode:
        if self.a_end < self.a_start or self.b_end < self.b_start:
            raise ValueError(f"negative-length range in {self.describe()}")
        a_len, b_len = self.a_len, self.b_len
        if self.kind is OpcodeKind.EQUAL and a_len != b_len:
            raise ValueError(f"equal ranges differ in length: {self.describe()}")
        if self.kind is OpcodeKind.DELETE and b_len != 0:
            raise ValueError(f"delete consumes rows of B: {self.describe()}")
        if self.kind is OpcodeKind.INSERT and a_len != 0:
            raise ValueError(f"insert consumes rows of A: {self.describe()}")
        if self.kind is OpcodeKind.REPLACE and (a_len == 0 or b_len == 0):
            raise ValueError(f"replace with an empty side: {self.describe()}")
        return self

    @property
    def a_len(self) -> int:
        return self.a_end - self.a_start

    @property
    def b_len(self) -> int:
        return self.b_end - self.b_start

    def describe(self) -> str:
        return (
            f"{self.kind.value.capitalize()}"
            f"({self.a_start},{self.a_end},{self.b_start},{self.b_end})"
        )


def make_opcode(kind: OpcodeKind, a_start: int, a_end: int, b_start: int, b_end: int) -> Opcode:
    try:
        return Opcode(kind=kind, a_start=a_start, a_end=a_end, b_start=b_start, b_end=b_end)
    except ValidationError as e:
        raise PreconditionError(
            f"invalid opcode {kind.value}({a_start},{a_end},{b_start},{b_end})"
        ) from e


class BlockStyle(str, Enum):
    UNCHANGED = "unchanged"
    DELETED = "deleted"
    INSERTED = "inserted"
    PIXEL_DIFF = "pixel_diff"


class RenderedBlock(NamedTuple):
    kind: OpcodeKind
    style: BlockStyle
    image: Image.Image
    changed_pixels: int = 0

    @property
    def height(self) -> int:
        return self.image.height


class RenderStyle(BaseModel):
    """Visual treatment applied to each kind of block."""

    model_config = ConfigDict(frozen=True)

    lighten: float = Field(
        default=0.5, ge=0.0, le=1.0, description="Opacity of the white layer over grayscale"
    )
    tint_alpha: float = Field(
        default=0.4, ge=0.0, le=1.0, description="Opacity of the insert/delete color tint"
    )
    delete_color: RGB = Field(default=(0, 0, 255), description="Tint for rows only in image 1")
    insert_color: RGB = Field(default=(255, 0, 0), description="Tint for rows only in image 2")
    threshold: float = Field(
        default=0.1, ge=0.0, le=1.0, description="pixelmatch matching threshold"
    )
    include_aa: bool = Field(default=False, description="Count anti-aliased pixels as different")
    diff_mask: bool = Field(
        default=True,
        description="Draw only differing pixels over image 2 instead of a faded copy of image 1",
    )


class DiffOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    hash_scheme: HashScheme = "exact"
    bucket_size: int = Field(default=16, ge=1, description="Perceptual mean color bucket size")
    sensitivity: int = Field(
        default=48, ge=0, description="Summed RGB delta that counts as an edge transition"
    )
    transition_bucket: int = Field(
        default=4, ge=1, description="Bucket size for coarsening the transition count"
    )
    oracle: OracleName = "git"
    diff_algorithm: DiffAlgorithm = "histogram"
    merge_threshold: int = Field(
        default=0, ge=0, description="Merge insert/delete groups spanning fewer rows (0 = off)"
    )
    max_workers: int | None = Field(default=None, ge=1)
    style: RenderStyle = Field(default_factory=RenderStyle)


class DiffResult(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    opcodes: tuple[Opcode, ...]
    before_width: int
    before_height: int
    after_width: int
    after_height: int
    width: int
    height: int
    changed_pixels: int = 0
    image: Image.Image | None = Field(default=None, exclude=True)

    @property
    def has_differences(self) -> bool:
        return self.image is not None
