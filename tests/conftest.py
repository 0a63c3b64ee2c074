"""
SUBLEQ Assembler - Test Configuration
=====================================

Shared fixtures for the test suite.

It provides:
- A reference SUBLEQ interpreter for executing assembled images
- Helpers that assemble a source string and return its context state
"""

from dataclasses import dataclass

import pytest

from subleq_asm.assembler import Assembler
from subleq_asm.config import AssemblerConfig, EncodingKind


# ═══════════════════════════════════════════════════════════════════════════════
# REFERENCE INTERPRETER
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class Machine:
    """
    Minimal SUBLEQ machine for checking assembled code.

    Executes `mem[A] -= mem[B]; if mem[A] <= 0 goto C else next` until the
    program counter reaches one of the halt addresses.
    """
    words: list[int]
    symbols: dict[str, int]
    config: AssemblerConfig

    @property
    def word_bits(self) -> int:
        return self.config.word_bits

    def signed(self, value: int) -> int:
        sign = 1 << (self.word_bits - 1)
        return value - (1 << self.word_bits) if value & sign else value

    def __getitem__(self, name: str) -> int:
        """Signed value of the word at a label."""
        return self.signed(self.words[self.symbols[name]])

    def fields(self, pc: int) -> tuple[int, int, int, int]:
        """Return (A, B, C, next_pc) of the instruction at pc."""
        if self.config.encoding is EncodingKind.PACKED:
            width = self.config.address_width
            mask = (1 << width) - 1
            word = self.words[pc]
            return (word >> 2 * width) & mask, (word >> width) & mask, word & mask, pc + 1
        return self.words[pc], self.words[pc + 1], self.words[pc + 2], pc + 3

    def run(self, start: str = "start", halt: str = "halt", max_steps: int = 10_000) -> int:
        """
        Run from a label until the halt label is reached.

        Returns:
            Number of instructions executed
        """
        mask = (1 << self.word_bits) - 1
        pc = self.symbols[start]
        stop = self.symbols[halt]

        for steps in range(max_steps):
            if pc == stop:
                return steps
            a, b, c, following = self.fields(pc)
            self.words[a] = (self.words[a] - self.words[b]) & mask
            pc = c if self.signed(self.words[a]) <= 0 else following

        raise AssertionError(f"program did not reach '{halt}' in {max_steps} steps")


# ═══════════════════════════════════════════════════════════════════════════════
# HELPER FIXTURES
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def machine():
    """
    Fixture: assemble a self-contained program and load it into a Machine.

    Usage:
        m = machine(source)
        m.run()
        assert m["x"] == 0
    """
    def _load(source: str, config: AssemblerConfig | None = None) -> Machine:
        asm = Assembler(config)
        asm.assemble_string(source, "<test>")
        obj = asm.get_object()
        assert obj.references == {}, "test programs must be self-contained"
        return Machine(list(obj.words), asm.get_symbols(), asm.config)

    return _load
