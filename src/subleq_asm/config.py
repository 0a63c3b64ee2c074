"""
Assembler Configuration
=======================

Address space size and word encoding, collected into one value passed
to the assembler.
Configuration can come from:
- Default values (defined here)
- Environment variables
- Command-line flags (which override both)

The address space size bounds both the code/data image and, in the
packed encoding, the bit width of each instruction field:

    mem_words = 0x2000  ->  address_width = 13 bits per field
"""

from dataclasses import dataclass
from enum import Enum
import os

from subleq_asm.errors import ConfigurationError


DEFAULT_MEM_WORDS = 0x2000


class EncodingKind(str, Enum):
    """
    Object word encodings.

    RELATIVE: one field per 32-bit word, relocations are plain addresses
    PACKED:   three fields per 64-bit word, absolute fields are recorded
              as (address, field) pairs
    """
    RELATIVE = "relative"
    PACKED = "packed"


def _parse_bool(text: str) -> bool:
    return text.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class AssemblerConfig:
    """
    Configuration for one assembler run.

    Attributes:
        mem_words: Address space size in words (default: 0x2000)
        encoding: Object word encoding (default: relative)
        allow_redefinition: Let a later label definition replace an earlier
                            one instead of raising DuplicateSymbolError
    """

    mem_words: int = DEFAULT_MEM_WORDS
    encoding: EncodingKind = EncodingKind.RELATIVE
    allow_redefinition: bool = False

    def __post_init__(self) -> None:
        try:
            self.encoding = EncodingKind(self.encoding)
        except ValueError:
            valid = ", ".join(kind.value for kind in EncodingKind)
            raise ConfigurationError(
                f"unknown encoding '{self.encoding}' (valid: {valid})"
            ) from None

        if self.mem_words <= 0:
            raise ConfigurationError(f"mem_words must be positive, got {self.mem_words}")

        if self.encoding is EncodingKind.PACKED:
            if self.mem_words & (self.mem_words - 1):
                raise ConfigurationError(
                    f"packed encoding needs a power-of-two mem_words, got {self.mem_words:#x}"
                )
            if 3 * self.address_width > 64:
                raise ConfigurationError(
                    f"mem_words {self.mem_words:#x} leaves no room for three fields in 64 bits"
                )

    # ═══════════════════════════════════════════════════════════════════════
    # DERIVED VALUES
    # ═══════════════════════════════════════════════════════════════════════

    @property
    def address_width(self) -> int:
        """Bits per instruction field in the packed encoding."""
        return (self.mem_words - 1).bit_length()

    @property
    def word_bits(self) -> int:
        """Width of one memory word."""
        return 64 if self.encoding is EncodingKind.PACKED else 32

    # ═══════════════════════════════════════════════════════════════════════
    # FACTORY METHODS
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    def from_env(cls) -> "AssemblerConfig":
        """
        Create AssemblerConfig from environment variables.

        Environment variables (all optional):
            SUBLEQ_MEM_WORDS: Address space size (decimal or 0x hex)
            SUBLEQ_ENCODING: "relative" or "packed"
            SUBLEQ_ALLOW_REDEFINITION: "1"/"true" for last-wins labels

        Returns:
            AssemblerConfig with values from environment variables
        """
        kwargs = {}

        if mem_words := os.environ.get("SUBLEQ_MEM_WORDS"):
            try:
                kwargs["mem_words"] = int(mem_words, 0)
            except ValueError:
                raise ConfigurationError(
                    f"SUBLEQ_MEM_WORDS is not a number: {mem_words!r}"
                ) from None

        if encoding := os.environ.get("SUBLEQ_ENCODING"):
            kwargs["encoding"] = encoding.strip().lower()

        if allow := os.environ.get("SUBLEQ_ALLOW_REDEFINITION"):
            kwargs["allow_redefinition"] = _parse_bool(allow)

        return cls(**kwargs)

    def with_overrides(self, **overrides) -> "AssemblerConfig":
        """Return a copy with the non-None overrides applied."""
        values = {
            "mem_words": self.mem_words,
            "encoding": self.encoding,
            "allow_redefinition": self.allow_redefinition,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return AssemblerConfig(**values)
