from __future__ import annotations

from pathlib import Path
from typing import Literal

import orjson
from pydantic import BaseModel

from deltaview.image_diff.types import DiffResult, OpcodeKind


class OpcodeRecord(BaseModel):
    kind: Literal["equal", "insert", "delete", "replace"]
    a_start: int
    a_end: int
    b_start: int
    b_end: int


class DiffSummary(BaseModel):
    opcodes: int
    equal_rows: int
    inserted_rows: int
    deleted_rows: int
    replaced_rows_before: int
    replaced_rows_after: int
    changed_pixels: int


class DiffReport(BaseModel):
    image1: str
    image2: str
    output: str | None = None
    has_differences: bool
    before_width: int
    before_height: int
    after_width: int
    after_height: int
    width: int
    height: int
    summary: DiffSummary
    opcodes: list[OpcodeRecord]


def _summarize(result: DiffResult) -> DiffSummary:
    rows = {kind: [0, 0] for kind in OpcodeKind}
    for op in result.opcodes:
        rows[op.kind][0] += op.a_len
        rows[op.kind][1] += op.b_len
    return DiffSummary(
        opcodes=len(result.opcodes),
        equal_rows=rows[OpcodeKind.EQUAL][0],
        inserted_rows=rows[OpcodeKind.INSERT][1],
        deleted_rows=rows[OpcodeKind.DELETE][0],
        replaced_rows_before=rows[OpcodeKind.REPLACE][0],
        replaced_rows_after=rows[OpcodeKind.REPLACE][1],
        changed_pixels=result.changed_pixels,
    )


def build_report(
    result: DiffResult,
    image1: str | Path,
    image2: str | Path,
    output: str | Path | None = None,
) -> DiffReport:
    return DiffReport(
        image1=str(image1),
        image2=str(image2),
        output=str(output) if output is not None and result.has_differences else None,
        has_differences=result.has_differences,
        before_width=result.before_width,
        before_height=result.before_height,
        after_width=result.after_width,
        after_height=result.after_height,
        width=result.width,
        height=result.height,
        summary=_summarize(result),
        opcodes=[
            OpcodeRecord(
                kind=op.kind.value,
                a_start=op.a_start,
                a_end=op.a_end,
                b_start=op.b_start,
                b_end=op.b_end,
            )
            for op in result.opcodes
        ],
    )


def write_json_report(report: DiffReport, path: str | Path) -> None:
    Path(path).write_bytes(orjson.dumps(report.model_dump(), option=orjson.OPT_INDENT_2))
