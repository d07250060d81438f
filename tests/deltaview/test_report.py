from __future__ import annotations

import orjson
from PIL import Image

from deltaview.image_diff.types import DiffResult, OpcodeKind, make_opcode
from deltaview.report import build_report, write_json_report


def _result(image: Image.Image | None) -> DiffResult:
    return DiffResult(
        opcodes=(
            make_opcode(OpcodeKind.EQUAL, 0, 10, 0, 10),
            make_opcode(OpcodeKind.INSERT, 10, 10, 10, 14),
            make_opcode(OpcodeKind.REPLACE, 10, 13, 14, 15),
            make_opcode(OpcodeKind.DELETE, 13, 15, 15, 15),
            make_opcode(OpcodeKind.EQUAL, 15, 20, 15, 20),
        ),
        before_width=8,
        before_height=20,
        after_width=8,
        after_height=20,
        width=8,
        height=0 if image is None else image.height,
        changed_pixels=12,
        image=image,
    )


class TestBuildReport:
    def test_summary_counts_rows_per_kind(self):
        report = build_report(_result(Image.new("RGBA", (8, 26))), "a.png", "b.png", "out.png")

        assert report.has_differences
        assert report.output == "out.png"
        assert report.height == 26
        assert report.summary.opcodes == 5
        assert report.summary.equal_rows == 15
        assert report.summary.inserted_rows == 4
        assert report.summary.deleted_rows == 2
        assert report.summary.replaced_rows_before == 3
        assert report.summary.replaced_rows_after == 1
        assert report.summary.changed_pixels == 12
        assert [op.kind for op in report.opcodes] == [
            "equal",
            "insert",
            "replace",
            "delete",
            "equal",
        ]

    def test_no_output_without_differences(self):
        report = build_report(_result(None), "a.png", "b.png", "out.png")
        assert not report.has_differences
        assert report.output is None


class TestWriteJsonReport:
    def test_round_trips_through_json(self, tmp_path):
        report = build_report(_result(Image.new("RGBA", (8, 26))), "a.png", "b.png", "out.png")
        path = tmp_path / "report.json"

        write_json_report(report, path)

        data = orjson.loads(path.read_bytes())
        assert data["image1"] == "a.png"
        assert data["summary"]["inserted_rows"] == 4
        assert data["opcodes"][1] == {
            "kind": "insert",
            "a_start": 10,
            "a_end": 10,
            "b_start": 10,
            "b_end": 14,
        }
