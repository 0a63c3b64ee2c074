"""
Assembler Context
=================

All mutable state of one assembly run lives in an AssemblerContext. The
driver creates a fresh context per run and passes it explicitly to the
parser, expander, resolver and emitter; nothing is kept at module level.

Memory Model
------------
The memory image is a bounds-checked word sequence. Words are written
sequentially while sections are parsed, so the length of the image is
both the write cursor during parsing and the final code length.
Capacity is the configured address space size; writing past it raises
MemoryOverflowError.
"""

from dataclasses import dataclass, field
from typing import Optional

from subleq_asm.config import AssemblerConfig, EncodingKind
from subleq_asm.errors import MemoryOverflowError, SourceLocation
from subleq_asm.assembler.symbols import SymbolTable


# =============================================================================
# Memory Image
# =============================================================================

class Memory:
    """
    Growable word image with a fixed capacity.

    Values are stored modulo 2**word_bits, so negative data literals
    become their two's-complement encoding.
    """

    def __init__(self, capacity: int, word_bits: int = 32):
        self.capacity = capacity
        self.word_bits = word_bits
        self.mask = (1 << word_bits) - 1
        self._words: list[int] = []

    def __len__(self) -> int:
        return len(self._words)

    def __getitem__(self, address: int) -> int:
        return self._words[address]

    def __setitem__(self, address: int, value: int) -> None:
        self._words[address] = value & self.mask

    @property
    def cursor(self) -> int:
        """Address the next word will be written to."""
        return len(self._words)

    def emit(self, value: int, location: Optional[SourceLocation] = None) -> int:
        """
        Append one word.

        Returns:
            The address the word was written to
        """
        self._check_room(1, location)
        self._words.append(value & self.mask)
        return len(self._words) - 1

    def reserve(self, count: int, location: Optional[SourceLocation] = None) -> int:
        """
        Reserve count uninitialized words (stored as zero).

        Returns:
            The address of the first reserved word
        """
        self._check_room(count, location)
        start = len(self._words)
        self._words.extend([0] * count)
        return start

    def words(self) -> list[int]:
        return list(self._words)

    def _check_room(self, count: int, location: Optional[SourceLocation]) -> None:
        if len(self._words) + count > self.capacity:
            raise MemoryOverflowError(
                f"image of {len(self._words) + count} words exceeds the address "
                f"space of {self.capacity} ({self.capacity:#x}) words",
                location=location,
                hint="raise mem_words or shrink .array reservations",
            )


# =============================================================================
# Assembler Context
# =============================================================================

@dataclass
class AssemblerContext:
    """
    State owned by a single assembly run.

    Attributes:
        config: Active configuration
        filename: Source name used in diagnostics
        memory: The word image
        symbols: Labels, exports and pending references
        relocations: Addresses holding locally-relative values
                     (relative encoding)
        absolutes: (address, field) pairs holding absolute values
                   (packed encoding)
        text_offset: Address where the .text section starts
        label_counter: Source of unique internal label names
    """
    config: AssemblerConfig
    filename: str = "<input>"
    memory: Optional[Memory] = None
    symbols: Optional[SymbolTable] = None
    relocations: set[int] = field(default_factory=set)
    absolutes: set = field(default_factory=set)
    text_offset: int = 0
    label_counter: int = 0

    def __post_init__(self) -> None:
        if self.memory is None:
            self.memory = Memory(self.config.mem_words, self.config.word_bits)
        if self.symbols is None:
            self.symbols = SymbolTable(self.config.allow_redefinition)

    @property
    def encoding(self) -> EncodingKind:
        return self.config.encoding

    @property
    def mem_size(self) -> int:
        return len(self.memory)

    def new_label(self) -> str:
        """Return a fresh assembler-internal label name."""
        name = f"$L{self.label_counter}"
        self.label_counter += 1
        return name
