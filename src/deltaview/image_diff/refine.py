from __future__ import annotations

from collections.abc import Sequence

from .types import Opcode, OpcodeKind, make_opcode

_CHANGE_KINDS = (OpcodeKind.INSERT, OpcodeKind.DELETE)


def _close_group(group: list[Opcode], merge_threshold: int) -> list[Opcode]:
    first = group[0]
    last = group[-1]
    a_span = last.a_end - first.a_start
    b_span = last.b_end - first.b_start
    # A group touching only one side is already a single insert or delete.
    if a_span and b_span and max(a_span, b_span) < merge_threshold:
        return [
            make_opcode(OpcodeKind.REPLACE, first.a_start, last.a_end, first.b_start, last.b_end)
        ]
    return list(group)


def refine(opcodes: Sequence[Opcode], merge_threshold: int = 0) -> list[Opcode]:
    """Collapse runs of small alternating inserts and deletes into one replace.

    A run of consecutive insert/delete opcodes is merged when the larger of
    its A-span and B-span is below ``merge_threshold``. Runs that are too
    large, or that only consume rows from one image, keep their original
    opcodes. A threshold of 0 disables merging.
    """
    if merge_threshold <= 0 or not opcodes:
        return list(opcodes)

    merged: list[Opcode] = []
    group: list[Opcode] = []
    for op in opcodes:
        if op.kind in _CHANGE_KINDS:
            group.append(op)
            continue
        if group:
            merged.extend(_close_group(group, merge_threshold))
            group = []
        merged.append(op)

    if group:
        merged.extend(_close_group(group, merge_threshold))
    return merged
