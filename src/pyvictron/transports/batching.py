"""Read-batching for Modbus register lists.

A GX device rejects a whole multi-register read if any address inside the
requested span is undefined for the unit.  Registers may therefore only be
coalesced when they are exactly adjacent: each register must start where the
previous one ends.  A batch is also capped at :data:`MAX_BATCH_WORDS` words.
"""

from __future__ import annotations

from collections.abc import Sequence

from pyvictron.constants import MAX_BATCH_WORDS
from pyvictron.registers.definitions import RegisterDefinition


def plan_batches(
    definitions: Sequence[RegisterDefinition],
    max_words: int = MAX_BATCH_WORDS,
) -> list[list[RegisterDefinition]]:
    """Group registers sorted by address into contiguous read batches.

    Args:
        definitions: Register definitions sorted ascending by address
        max_words: Maximum span of one batch in words

    Returns:
        Ordered batches; concatenated they reproduce *definitions*.

    Example:
        >>> [len(b) for b in plan_batches(defs_at(100, 101, 200))]
        [2, 1]
    """
    batches: list[list[RegisterDefinition]] = []
    current: list[RegisterDefinition] = []

    for reg in definitions:
        if not current:
            current.append(reg)
            continue

        adjacent = reg.address == current[-1].end_address
        span = reg.end_address - current[0].address
        if adjacent and span <= max_words:
            current.append(reg)
            continue

        batches.append(current)
        current = [reg]

    if current:
        batches.append(current)

    return batches


def batch_span(batch: Sequence[RegisterDefinition]) -> tuple[int, int]:
    """Return ``(start_address, word_count)`` of the read covering *batch*."""
    start = batch[0].address
    return start, batch[-1].end_address - start


__all__ = ["batch_span", "plan_batches"]
