from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
import tempfile
from collections.abc import Sequence
from difflib import SequenceMatcher
from pathlib import Path
from typing import Protocol

from .errors import OracleError, PreconditionError
from .types import DiffAlgorithm, Opcode, OpcodeKind, OracleName, make_opcode

logger = logging.getLogger(__name__)

DIFF_ALGORITHMS: tuple[DiffAlgorithm, ...] = ("myers", "minimal", "patience", "histogram")

# git exits with 1 when the inputs differ
GIT_DIFF_FOUND = 1

HUNK_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


class DiffOracle(Protocol):
    def align(self, tokens_a: Sequence[str], tokens_b: Sequence[str]) -> list[Opcode]: ...


def validate_opcodes(opcodes: Sequence[Opcode], len_a: int, len_b: int) -> None:
    """Check that ``opcodes`` tile ``[0, len_a)`` and ``[0, len_b)`` in order."""
    a_pos = 0
    b_pos = 0
    for op in opcodes:
        if op.a_start != a_pos or op.b_start != b_pos:
            raise PreconditionError(
                f"{op.describe()} does not start at ({a_pos}, {b_pos}); opcodes must be contiguous"
            )
        a_pos = op.a_end
        b_pos = op.b_end
    if a_pos != len_a or b_pos != len_b:
        raise PreconditionError(
            f"opcodes end at ({a_pos}, {b_pos}), expected ({len_a}, {len_b})"
        )


def _hunk_start(start: int, length: int) -> int:
    # An empty side names the line before the gap, so it is already 0-based.
    return start if length == 0 else start - 1


def parse_unified_diff(diff_output: str, len_a: int, len_b: int) -> list[Opcode]:
    opcodes: list[Opcode] = []
    last_a = 0
    last_b = 0

    for line in diff_output.splitlines():
        if not line.startswith("@@"):
            continue
        match = HUNK_RE.match(line)
        if match is None:
            continue

        a_len = int(match.group(2) if match.group(2) is not None else 1)
        b_len = int(match.group(4) if match.group(4) is not None else 1)
        a0 = _hunk_start(int(match.group(1)), a_len)
        b0 = _hunk_start(int(match.group(3)), b_len)

        if a0 > last_a or b0 > last_b:
            opcodes.append(make_opcode(OpcodeKind.EQUAL, last_a, a0, last_b, b0))

        a1 = a0 + a_len
        b1 = b0 + b_len
        if a_len > 0 and b_len > 0:
            opcodes.append(make_opcode(OpcodeKind.REPLACE, a0, a1, b0, b1))
        elif a_len > 0:
            opcodes.append(make_opcode(OpcodeKind.DELETE, a0, a1, b0, b1))
        elif b_len > 0:
            opcodes.append(make_opcode(OpcodeKind.INSERT, a0, a1, b0, b1))

        last_a = a1
        last_b = b1

    if last_a < len_a or last_b < len_b:
        opcodes.append(make_opcode(OpcodeKind.EQUAL, last_a, len_a, last_b, len_b))

    validate_opcodes(opcodes, len_a, len_b)
    return opcodes


def _find_git_binary() -> str:
    found = shutil.which("git")
    if found:
        return found
    raise OracleError("git binary not found. Install git to diff row fingerprints.")


def _write_tokens(path: Path, tokens: Sequence[str]) -> None:
    for token in tokens:
        if "\n" in token or "\r" in token:
            raise PreconditionError(f"row token is not line-safe: {token!r}")
    path.write_text("".join(f"{token}\n" for token in tokens), encoding="ascii")


def _git_env() -> dict[str, str]:
    # User and system config can change how hunks are formed.
    env = {key: value for key, value in os.environ.items() if not key.startswith("GIT_CONFIG")}
    env["GIT_CONFIG_NOSYSTEM"] = "1"
    env["GIT_CONFIG_GLOBAL"] = os.devnull
    return env


class GitDiffOracle:
    """Aligns token sequences with ``git diff --no-index``."""

    def __init__(self, algorithm: DiffAlgorithm = "histogram", git_binary: str | None = None):
        if algorithm not in DIFF_ALGORITHMS:
            raise ValueError(f"unknown diff algorithm: {algorithm!r}")
        self.algorithm = algorithm
        self._git_binary = git_binary

    def _command(self, path_a: Path, path_b: Path) -> list[str]:
        binary = self._git_binary or _find_git_binary()
        return [
            binary,
            "diff",
            "--no-index",
            "--no-color",
            "--no-ext-diff",
            f"--diff-algorithm={self.algorithm}",
            "--unified=0",
            "--inter-hunk-context=0",
            str(path_a),
            str(path_b),
        ]

    def align(self, tokens_a: Sequence[str], tokens_b: Sequence[str]) -> list[Opcode]:
        with tempfile.TemporaryDirectory(prefix="deltaview-") as tmpdir:
            tmpdir_path = Path(tmpdir)
            path_a = tmpdir_path / "file1.txt"
            path_b = tmpdir_path / "file2.txt"
            _write_tokens(path_a, tokens_a)
            _write_tokens(path_b, tokens_b)

            command = self._command(path_a, path_b)
            try:
                proc = subprocess.run(
                    command, capture_output=True, text=True, check=False, env=_git_env()
                )
            except OSError as e:
                raise OracleError(f"failed to run {command[0]}") from e

        if proc.returncode == 0:
            return [make_opcode(OpcodeKind.EQUAL, 0, len(tokens_a), 0, len(tokens_b))]
        if proc.returncode != GIT_DIFF_FOUND:
            logger.error(
                "git diff failed",
                extra={"returncode": proc.returncode, "algorithm": self.algorithm},
            )
            raise OracleError(
                f"git diff exited with status {proc.returncode}",
                returncode=proc.returncode,
                stderr=proc.stderr,
            )
        return parse_unified_diff(proc.stdout, len(tokens_a), len(tokens_b))


_SEQUENCE_MATCHER_KINDS = {
    "equal": OpcodeKind.EQUAL,
    "insert": OpcodeKind.INSERT,
    "delete": OpcodeKind.DELETE,
    "replace": OpcodeKind.REPLACE,
}


class SequenceMatcherOracle:
    """In-process alignment with :class:`difflib.SequenceMatcher`.

    The common head and tail are trimmed before matching, the same way git
    does, so that a block inserted into a run of identical rows is reported
    at the position where it was inserted.
    """

    def align(self, tokens_a: Sequence[str], tokens_b: Sequence[str]) -> list[Opcode]:
        len_a = len(tokens_a)
        len_b = len(tokens_b)

        head = 0
        limit = min(len_a, len_b)
        while head < limit and tokens_a[head] == tokens_b[head]:
            head += 1
        tail = 0
        limit -= head
        while tail < limit and tokens_a[len_a - 1 - tail] == tokens_b[len_b - 1 - tail]:
            tail += 1

        opcodes: list[Opcode] = []
        if head:
            opcodes.append(make_opcode(OpcodeKind.EQUAL, 0, head, 0, head))

        middle_a = tokens_a[head : len_a - tail]
        middle_b = tokens_b[head : len_b - tail]
        if middle_a or middle_b:
            matcher = SequenceMatcher(None, middle_a, middle_b, autojunk=False)
            for tag, i1, i2, j1, j2 in matcher.get_opcodes():
                opcodes.append(
                    make_opcode(
                        _SEQUENCE_MATCHER_KINDS[tag], head + i1, head + i2, head + j1, head + j2
                    )
                )

        if tail:
            opcodes.append(
                make_opcode(OpcodeKind.EQUAL, len_a - tail, len_a, len_b - tail, len_b)
            )
        if not opcodes:
            opcodes.append(make_opcode(OpcodeKind.EQUAL, 0, 0, 0, 0))

        validate_opcodes(opcodes, len_a, len_b)
        return opcodes


def get_oracle(name: OracleName = "git", algorithm: DiffAlgorithm = "histogram") -> DiffOracle:
    if name == "git":
        return GitDiffOracle(algorithm)
    if name == "difflib":
        return SequenceMatcherOracle()
    raise ValueError(f"unknown diff oracle: {name!r}")
