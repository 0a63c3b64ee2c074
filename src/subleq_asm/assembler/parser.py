"""
SUBLEQ Section Parser
=====================

This module consumes the token stream according to the three-section
program grammar and writes labels and words into the assembler context.

Program Layout
--------------
```
.export
    start               ; names made visible to the linker
.data
    zero:  0            ; one word
    buf:   .array 16    ; 16 reserved words
    tbl:   .iarray 1 2 3
    p:     .ptr buf+2   ; address of buf, plus 2 (relocatable)
.text
start:
    zero zero loop      ; A B C: mem[A] -= mem[B]; if <= 0 goto C
loop:
    zero zero           ; C omitted: continue with the next instruction
    mov zero tbl        ; pseudo-instruction
```

(`;` above is for illustration only: comments in source start with `/`.)

The three section markers are mandatory and must appear in this order.
Reaching end of input while a marker is still expected raises
SectionError instead of reading past the section.

Variable Arity
--------------
`.iarray` values and the third instruction field both end at the first
token on a new source line. An omitted third field is the address of the
next word and is marked relocatable; no token is consumed for it.
"""

from typing import Optional
import logging

from subleq_asm.errors import AssemblySyntaxError, SectionError
from subleq_asm.assembler.context import AssemblerContext
from subleq_asm.assembler.encoding import get_encoding
from subleq_asm.assembler.operands import (
    Operand,
    OperandKind,
    parse_count,
    parse_number,
    parse_operand,
    validate_symbol_name,
    is_hex_literal,
)
from subleq_asm.assembler.pseudo import Expander, TEMPORARIES, is_pseudo
from subleq_asm.assembler.tokenizer import Token, TokenStream

logger = logging.getLogger(__name__)


EXPORT_MARKER = ".export"
DATA_MARKER = ".data"
TEXT_MARKER = ".text"
SECTION_MARKERS = frozenset({EXPORT_MARKER, DATA_MARKER, TEXT_MARKER})

ARRAY_DIRECTIVE = ".array"
IARRAY_DIRECTIVE = ".iarray"
PTR_DIRECTIVE = ".ptr"

START_SYMBOL = "start"


class SectionParser:
    """
    Parses a whole program into an AssemblerContext.

    Usage:
        parser = SectionParser(stream, ctx)
        parser.parse()
    """

    def __init__(self, stream: TokenStream, ctx: AssemblerContext,
                 expander: Optional[Expander] = None):
        self.stream = stream
        self.ctx = ctx
        self.encoding = get_encoding(ctx)
        self.expander = expander or Expander(ctx)

    def parse(self) -> None:
        """
        Parse `.export`, `.data` and `.text`, then allocate temporaries.

        Raises:
            SectionError: If a section marker is missing or misplaced
            AssemblySyntaxError: For malformed declarations or instructions
        """
        self._expect_marker(self.stream.next(), EXPORT_MARKER)
        self.parse_export()
        self.parse_data()
        self.ctx.text_offset = self.ctx.mem_size
        self.parse_text()
        self.allocate_temporaries()

    # =========================================================================
    # Sections
    # =========================================================================

    def parse_export(self) -> None:
        """Read exported names up to `.data`."""
        count = 0
        while True:
            token = self.stream.next()
            if token.text == DATA_MARKER:
                break
            self._check_not_marker(token, DATA_MARKER)
            validate_symbol_name(token.text, token)
            self.ctx.symbols.export(token.text, token.location)
            count += 1

        logger.debug(f"{self.stream.filename}: {count} exported name(s)")

    def parse_data(self) -> None:
        """Read `<label>: <declaration>` entries up to `.text`."""
        while True:
            token = self.stream.next()
            if token.text == TEXT_MARKER:
                break
            self._check_not_marker(token, TEXT_MARKER)
            if not token.is_label:
                raise AssemblySyntaxError(
                    f"expected a label in .data, found '{token.text}'",
                    token.location,
                    hint="data entries are written 'name: value'",
                )
            self._define_label(token)
            self._parse_declaration()

        logger.debug(f"{self.stream.filename}: data section is {self.ctx.mem_size} word(s)")

    def parse_text(self) -> None:
        """Read labels, instructions and pseudo-instructions to end of input."""
        while True:
            token = self.stream.next()
            if token.is_eof:
                break
            if token.text in SECTION_MARKERS:
                raise AssemblySyntaxError(
                    f"unexpected section marker '{token.text}' in .text",
                    token.location,
                )

            if token.is_label:
                self._define_label(token)
                if token.text == START_SYMBOL + ":":
                    self.ctx.symbols.export(START_SYMBOL, token.location)
            elif is_pseudo(token.text):
                self.expander.expand(token, self.stream)
            else:
                self._parse_instruction(token)

        logger.debug(
            f"{self.stream.filename}: text section is "
            f"{self.ctx.mem_size - self.ctx.text_offset} word(s)"
        )

    def allocate_temporaries(self) -> None:
        """
        Give referenced but undefined temporaries a zero word each.

        The words land after `.text`, so a packed linker sees them inside the
        instruction region. Every expansion clears a temporary before reading
        it, so whatever the linker writes there is never observed.
        """
        for name in TEMPORARIES:
            if self.ctx.symbols.is_pending(name) and name not in self.ctx.symbols:
                address = self.ctx.memory.emit(0)
                self.ctx.symbols.define(name, address)
                logger.debug(f"allocated temporary {name} at {address}")

    # =========================================================================
    # Data Declarations
    # =========================================================================

    def _parse_declaration(self) -> None:
        token = self.stream.next()
        if token.is_eof:
            raise SectionError(TEXT_MARKER, token.location)

        bits = self.ctx.memory.word_bits
        if token.text == ARRAY_DIRECTIVE:
            count_token = self._next_argument(token)
            self.ctx.memory.reserve(parse_count(count_token, bits), count_token.location)

        elif token.text == IARRAY_DIRECTIVE:
            while True:
                value = self.stream.peek()
                if value.is_eof or value.line != token.line:
                    break
                self.stream.next()
                self.ctx.memory.emit(parse_number(value, bits), value.location)

        elif token.text == PTR_DIRECTIVE:
            target = self._next_argument(token)
            self.encoding.emit_pointer(self._operand(target))

        elif token.is_label or token.text in SECTION_MARKERS:
            raise AssemblySyntaxError(
                f"missing value for data label before '{token.text}'",
                token.location,
            )

        else:
            if not (is_hex_literal(token.text) or token.text.lstrip("-").isdigit()):
                raise AssemblySyntaxError(
                    f"invalid data value '{token.text}'",
                    token.location,
                    hint="data words are numeric literals; use '.ptr name' for an address",
                )
            self.ctx.memory.emit(parse_number(token, bits), token.location)

    def _next_argument(self, directive: Token) -> Token:
        argument = self.stream.next()
        if argument.is_eof or argument.is_label or argument.text in SECTION_MARKERS:
            raise AssemblySyntaxError(
                f"'{directive.text}' needs an argument",
                directive.location,
            )
        return argument

    # =========================================================================
    # Instructions
    # =========================================================================

    def _parse_instruction(self, first: Token) -> None:
        """Parse A B [C] starting at an already-consumed token."""
        field_a = self._operand(first)
        second = self.stream.next()
        if second.is_eof or second.is_label or second.text in SECTION_MARKERS:
            raise AssemblySyntaxError(
                f"incomplete instruction starting at '{first.text}'",
                first.location,
                hint="an instruction needs at least two fields: A B [C]",
            )
        field_b = self._operand(second)

        candidate = self.stream.peek()
        if (candidate.is_eof
                or candidate.line != second.line
                or candidate.is_label):
            field_c = Operand(OperandKind.NEXT, second)
        else:
            field_c = self._operand(self.stream.next())

        self.encoding.emit_instruction([field_a, field_b, field_c])

    def _operand(self, token: Token) -> Operand:
        if token.is_label:
            raise AssemblySyntaxError(
                f"label '{token.text}' used as an instruction field",
                token.location,
            )
        return parse_operand(token, self.encoding.field_bits)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _define_label(self, token: Token) -> None:
        name = token.text[:-1]
        validate_symbol_name(name, token)
        if name.startswith("$") and not token.synthetic:
            raise AssemblySyntaxError(
                f"label '{name}' uses the reserved '$' prefix",
                token.location,
                hint="names starting with '$' belong to the assembler ($tmp, $tmp2, $L<n>)",
            )
        if is_pseudo(name):
            raise AssemblySyntaxError(
                f"label '{name}' is a pseudo-instruction mnemonic",
                token.location,
                hint="rename the label; mnemonics are read as instructions in .text",
            )
        self.ctx.symbols.define(name, self.ctx.mem_size, token.location)

    def _expect_marker(self, token: Token, marker: str) -> None:
        if token.text != marker:
            raise SectionError(marker, token.location, token.text or None)

    def _check_not_marker(self, token: Token, expected: str) -> None:
        """Fail fast on end of input or an out-of-order marker."""
        if token.is_eof:
            raise SectionError(expected, token.location)
        if token.text in SECTION_MARKERS:
            raise SectionError(expected, token.location, token.text)
