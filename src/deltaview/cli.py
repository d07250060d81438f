"""Command line interface for deltaview."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from pydantic import ValidationError

from deltaview.image_diff.compare import DEFAULT_OUTPUT, visual_diff
from deltaview.image_diff.errors import ImageDiffError
from deltaview.image_diff.oracle import DIFF_ALGORITHMS
from deltaview.image_diff.types import DiffOptions, RenderStyle
from deltaview.report import build_report, write_json_report

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deltaview",
        description="Compare two images and generate a row-aligned visual diff.",
    )
    parser.add_argument("image1", help="First image to compare")
    parser.add_argument("image2", help="Second image to compare")
    parser.add_argument(
        "-o", "--output", default=DEFAULT_OUTPUT, help="Output filename for the diff image"
    )
    parser.add_argument(
        "--diff-algorithm",
        choices=DIFF_ALGORITHMS,
        default="histogram",
        help="The algorithm git uses to align rows",
    )
    parser.add_argument(
        "--oracle",
        choices=("git", "difflib"),
        default="git",
        help="Row alignment backend (git diff or Python's difflib)",
    )
    parser.add_argument(
        "--hash",
        dest="hash_scheme",
        choices=("exact", "perceptual"),
        default="exact",
        help="How rows are fingerprinted before alignment",
    )
    parser.add_argument(
        "--sensitivity",
        type=int,
        help="Summed RGB delta counted as an edge by the perceptual hash",
    )
    parser.add_argument(
        "--threshold", type=float, default=0.1, help="Matching threshold for pixelmatch (0 to 1)"
    )
    parser.add_argument(
        "--merge-threshold",
        type=int,
        default=0,
        help="Merge insert/delete runs spanning fewer rows into one replace (0 disables)",
    )
    parser.add_argument(
        "--include-aa",
        action="store_true",
        help="Include anti-aliased pixels in the diff",
    )
    parser.add_argument("--json", help="Write a JSON report of the diff to this path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    parser.add_argument("--version", action="version", version=f"%(prog)s {_version()}")
    return parser


def _version() -> str:
    from deltaview import __version__

    return __version__


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _build_options(args: argparse.Namespace) -> DiffOptions:
    overrides = {}
    if args.sensitivity is not None:
        overrides["sensitivity"] = args.sensitivity
    return DiffOptions(
        hash_scheme=args.hash_scheme,
        oracle=args.oracle,
        diff_algorithm=args.diff_algorithm,
        merge_threshold=args.merge_threshold,
        style=RenderStyle(threshold=args.threshold, include_aa=args.include_aa),
        **overrides,
    )


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        options = _build_options(args)
    except ValidationError as exc:
        parser.error(str(exc))

    if options.oracle == "git":
        print(f"[*] Using diff algorithm: {options.diff_algorithm}")
    else:
        print(f"[*] Using diff oracle: {options.oracle}")

    try:
        result = visual_diff(args.image1, args.image2, args.output, options)
        if args.json:
            report = build_report(result, args.image1, args.image2, args.output)
            write_json_report(report, args.json)
    except (ImageDiffError, OSError) as exc:
        logger.exception("Image diff failed")
        print(f"An error occurred during image diffing: {exc}", file=sys.stderr)
        return 1

    if not result.has_differences:
        print("Images are identical or no changes were detected.")
    else:
        print(f"[*] Visual diff image saved as {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
