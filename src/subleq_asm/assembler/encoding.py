"""
Word Encodings
==============

An encoding decides how instruction fields are laid out in memory words
and how a pending reference is patched once its symbol is known.

Relative Encoding (default)
---------------------------
Each field occupies one 32-bit word, so an instruction is three
consecutive words (A, B, C). Every word whose value came from a symbol
is recorded as a relocation marker; the linker adds the object's load
base to it. Resolving a pending reference *adds* the symbol address to
the stored word, preserving any `+N` offset already written there.

Packed Encoding
---------------
An instruction is one 64-bit word holding three fields of
W = log2(mem_words) bits:

```
 63        3W        2W        W         0
 +---------+---------+---------+---------+
 | unused  |    A    |    B    |    J    |
 +---------+---------+---------+---------+
```

Here the inverse set is recorded: every field written from a hex literal
is listed as an absolute (address, field) pair and all other fields are
relative. Resolving a pending reference ORs the symbol address into the
field's bit range. Offset suffixes cannot be expressed this way and are
rejected.
"""

from subleq_asm.config import EncodingKind
from subleq_asm.errors import AssemblySyntaxError, LiteralRangeError
from subleq_asm.objfile import Field, FieldRef
from subleq_asm.assembler.context import AssemblerContext
from subleq_asm.assembler.operands import Operand, OperandKind


# =============================================================================
# Relative Encoding
# =============================================================================

class RelativeEncoding:
    """One field per word; relocations are plain word addresses."""

    kind = EncodingKind.RELATIVE

    def __init__(self, ctx: AssemblerContext):
        self.ctx = ctx

    @property
    def field_bits(self) -> int:
        return self.ctx.memory.word_bits

    def emit_instruction(self, operands: list[Operand]) -> int:
        """
        Write a three-field instruction.

        Returns:
            Address of the first word
        """
        start = self.ctx.memory.cursor
        for operand in operands:
            self._emit_field(operand)
        return start

    def emit_pointer(self, operand: Operand) -> int:
        """Write a `.ptr` word."""
        return self._emit_field(operand)

    def _emit_field(self, operand: Operand) -> int:
        memory = self.ctx.memory
        address = memory.cursor
        location = operand.token.location

        if operand.kind is OperandKind.ABSOLUTE:
            return memory.emit(operand.value, location)

        if operand.kind is OperandKind.NEXT:
            self.ctx.relocations.add(address)
            return memory.emit(address + 1, location)

        self.ctx.relocations.add(address)
        target = self.ctx.symbols.lookup(operand.symbol)
        if target is None:
            self.ctx.symbols.reference(operand.symbol, address)
            return memory.emit(operand.value, location)
        return memory.emit(target + operand.value, location)

    def patch(self, site: int, address: int) -> None:
        """Add a resolved symbol address to the word at site."""
        self.ctx.memory[site] = self.ctx.memory[site] + address


# =============================================================================
# Packed Encoding
# =============================================================================

class PackedEncoding:
    """Three fields per 64-bit word; absolute fields are recorded."""

    kind = EncodingKind.PACKED

    def __init__(self, ctx: AssemblerContext):
        self.ctx = ctx
        self.width = ctx.config.address_width
        self.field_mask = (1 << self.width) - 1

    @property
    def field_bits(self) -> int:
        return self.width

    def shift(self, field: Field) -> int:
        """Bit position of a field: A highest, J lowest."""
        return (2 - int(field)) * self.width

    def emit_instruction(self, operands: list[Operand]) -> int:
        """
        Write a three-field instruction as a single word.

        Returns:
            Address of the word
        """
        address = self.ctx.memory.cursor
        word = 0
        for field, operand in zip(Field, operands):
            word |= self._field_value(operand, address, field)
        return self.ctx.memory.emit(word, operands[0].token.location)

    def emit_pointer(self, operand: Operand) -> int:
        """Write a `.ptr` word, its target held in the J field."""
        address = self.ctx.memory.cursor
        word = self._field_value(operand, address, Field.J)
        return self.ctx.memory.emit(word, operand.token.location)

    def _field_value(self, operand: Operand, address: int, field: Field) -> int:
        if operand.kind is OperandKind.ABSOLUTE:
            self.ctx.absolutes.add(FieldRef(address, field))
            return self._shifted(operand.value, field, operand)

        if operand.kind is OperandKind.NEXT:
            return self._shifted(address + 1, field, operand)

        if operand.value:
            raise AssemblySyntaxError(
                f"offset suffix in '{operand.token.text}' is not supported by the packed encoding",
                operand.token.location,
                hint="use the relative encoding, or define a label at the offset address",
            )

        target = self.ctx.symbols.lookup(operand.symbol)
        if target is None:
            self.ctx.symbols.reference(operand.symbol, FieldRef(address, field))
            return 0
        return self._shifted(target, field, operand)

    def _shifted(self, value: int, field: Field, operand: Operand) -> int:
        if value > self.field_mask:
            raise LiteralRangeError(
                f"value {value:#x} does not fit a {self.width}-bit field",
                operand.token.location,
            )
        return value << self.shift(field)

    def patch(self, site: FieldRef, address: int) -> None:
        """OR a resolved symbol address into the referenced field."""
        if address > self.field_mask:
            raise LiteralRangeError(
                f"address {address:#x} does not fit a {self.width}-bit field",
            )
        memory = self.ctx.memory
        memory[site.address] = memory[site.address] | (address << self.shift(site.field))


def get_encoding(ctx: AssemblerContext) -> RelativeEncoding | PackedEncoding:
    """Return the encoding selected by the context's configuration."""
    if ctx.encoding is EncodingKind.PACKED:
        return PackedEncoding(ctx)
    return RelativeEncoding(ctx)
