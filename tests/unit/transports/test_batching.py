"""Tests for Modbus read batching."""

from __future__ import annotations

from pyvictron.registers.definitions import RegisterDefinition
from pyvictron.transports.batching import batch_span, plan_batches


def _regs(*addresses: int, data_type: str = "uint16") -> list[RegisterDefinition]:
    return [
        RegisterDefinition(address=a, name=f"R{a}", data_type=data_type) for a in addresses
    ]


class TestPlanBatches:
    """Tests for plan_batches."""

    def test_contiguous_registers_share_one_batch(self) -> None:
        batches = plan_batches(_regs(100, 101, 102))

        assert len(batches) == 1
        assert batch_span(batches[0]) == (100, 3)

    def test_gap_splits_batches(self) -> None:
        batches = plan_batches(_regs(100, 101, 200))

        assert [len(b) for b in batches] == [2, 1]
        assert [batch_span(b) for b in batches] == [(100, 2), (200, 1)]

    def test_small_gap_is_not_bridged(self) -> None:
        """Registers one address apart are never read together."""
        batches = plan_batches(_regs(100, 102))
        assert [len(b) for b in batches] == [1, 1]

    def test_span_is_capped(self) -> None:
        batches = plan_batches(_regs(*range(0, 110)))

        assert [len(b) for b in batches] == [100, 10]
        for batch in batches:
            _, count = batch_span(batch)
            assert count <= 100

    def test_custom_cap(self) -> None:
        batches = plan_batches(_regs(*range(10)), max_words=4)
        assert [len(b) for b in batches] == [4, 4, 2]

    def test_multi_word_register_adjacency(self) -> None:
        """A register starting where a two-word register ends is adjacent."""
        regs = [
            RegisterDefinition(address=300, name="Energy", data_type="uint32"),
            RegisterDefinition(address=302, name="Power"),
        ]

        batches = plan_batches(regs)

        assert len(batches) == 1
        assert batch_span(batches[0]) == (300, 3)

    def test_overlapping_registers_are_not_merged(self) -> None:
        regs = [
            RegisterDefinition(address=300, name="Energy", data_type="uint32"),
            RegisterDefinition(address=301, name="Low word"),
        ]
        assert [len(b) for b in plan_batches(regs)] == [1, 1]

    def test_explicit_word_count(self) -> None:
        regs = [
            RegisterDefinition(address=800, name="Serial", data_type="string", words=6),
            RegisterDefinition(address=806, name="Next"),
        ]
        assert batch_span(plan_batches(regs)[0]) == (800, 7)

    def test_concatenation_reproduces_input(self) -> None:
        regs = _regs(1, 2, 3, 10, 11, 50)
        batches = plan_batches(regs)
        assert [r for batch in batches for r in batch] == regs

    def test_empty_input(self) -> None:
        assert plan_batches([]) == []
