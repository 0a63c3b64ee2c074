# =============================================================================
# test_parser.py - Section Parser Tests
# =============================================================================
# Tests for the three-section program grammar.
#
# Test coverage includes:
#   - Section marker order and end-of-input inside a section
#   - .data declarations: literals, .array, .iarray, .ptr
#   - .text instructions with two or three fields
#   - Label rules (trailing colon, reserved `$` prefix, start export)
#   - Error reporting with line numbers
# =============================================================================

import pytest
from subleq_asm.assembler.context import AssemblerContext
from subleq_asm.assembler.parser import SectionParser
from subleq_asm.assembler.tokenizer import Tokenizer, TokenStream
from subleq_asm.config import AssemblerConfig
from subleq_asm.errors import (
    AssemblySyntaxError,
    DuplicateSymbolError,
    MemoryOverflowError,
    SectionError,
)


# =============================================================================
# Helper Function
# =============================================================================

def parse(source: str, **config) -> AssemblerContext:
    """Parse source into a fresh context (without local resolution)."""
    ctx = AssemblerContext(AssemblerConfig(**config), "<test>")
    SectionParser(TokenStream(Tokenizer(source, "<test>")), ctx).parse()
    return ctx


def program(data: str = "", text: str = "", export: str = "") -> str:
    return f".export\n{export}\n.data\n{data}\n.text\n{text}\n"


# =============================================================================
# Sections
# =============================================================================

class TestSections:
    """Test section markers."""

    def test_minimal_program(self):
        ctx = parse(".export .data .text")
        assert ctx.mem_size == 0
        assert ctx.text_offset == 0

    def test_missing_export(self):
        with pytest.raises(SectionError) as exc_info:
            parse(".data\n.text\n")
        assert exc_info.value.expected == ".export"
        assert exc_info.value.found == ".data"

    def test_empty_source(self):
        with pytest.raises(SectionError):
            parse("")

    def test_eof_in_export(self):
        with pytest.raises(SectionError) as exc_info:
            parse(".export\nstart\n")
        assert exc_info.value.expected == ".data"

    def test_eof_in_data(self):
        with pytest.raises(SectionError) as exc_info:
            parse(".export\n.data\nx: 1\n")
        assert exc_info.value.expected == ".text"

    def test_eof_after_data_label(self):
        with pytest.raises(SectionError):
            parse(".export\n.data\nx:")

    def test_text_before_data(self):
        with pytest.raises(SectionError):
            parse(".export\n.text\n.data\n")

    def test_marker_inside_text(self):
        with pytest.raises(AssemblySyntaxError):
            parse(program(text="x x\n.data"))

    def test_text_offset(self):
        ctx = parse(program(data="a: 1\nb: .array 3"))
        assert ctx.text_offset == 4


# =============================================================================
# Exports
# =============================================================================

class TestExport:
    """Test the export section."""

    def test_names_exported(self):
        ctx = parse(program(export="one two", data="one: 1\ntwo: 2"))
        assert ctx.symbols.exported == frozenset({"one", "two"})

    def test_start_label_is_exported(self):
        ctx = parse(program(text="start:\n0x0 0x0"))
        assert "start" in ctx.symbols.exported

    def test_other_labels_not_exported(self):
        ctx = parse(program(text="main:\n0x0 0x0"))
        assert ctx.symbols.exported == frozenset()

    def test_invalid_export_name(self):
        with pytest.raises(AssemblySyntaxError):
            parse(program(export="9lives"))


# =============================================================================
# Data Declarations
# =============================================================================

class TestData:
    """Test .data declarations."""

    def test_literals(self):
        ctx = parse(program(data="a: 5\nb: 0x10\nc: -1"))
        assert ctx.memory.words() == [5, 16, 0xFFFFFFFF]
        assert ctx.symbols.addresses() == {"a": 0, "b": 1, "c": 2}

    def test_data_is_never_relocated(self):
        ctx = parse(program(data="a: 5\nb: 0x10"))
        assert ctx.relocations == set()

    def test_array(self):
        ctx = parse(program(data="buf: .array 3\nend: 7"))
        assert ctx.memory.words() == [0, 0, 0, 7]
        assert ctx.symbols.lookup("end") == 3

    def test_empty_array(self):
        ctx = parse(program(data="buf: .array 0\nx: 1"))
        assert ctx.symbols.lookup("x") == 0

    def test_iarray_stops_at_line_end(self):
        ctx = parse(program(data="t: .iarray 1 2 0x3\nu: 4"))
        assert ctx.memory.words() == [1, 2, 3, 4]
        assert ctx.symbols.lookup("u") == 3

    def test_iarray_stops_at_text(self):
        ctx = parse(".export\n.data\nt: .iarray 1 2\n.text\n")
        assert ctx.memory.words() == [1, 2]

    def test_ptr_backward(self):
        ctx = parse(program(data="buf: .array 4\np: .ptr buf+2"))
        assert ctx.memory[4] == 2
        assert ctx.relocations == {4}

    def test_ptr_forward_is_pending(self):
        ctx = parse(program(data="p: .ptr buf+2\nbuf: .array 4"))
        assert ctx.memory[0] == 2
        assert ctx.symbols.pending() == {"buf": [0]}

    def test_ptr_absolute(self):
        ctx = parse(program(data="p: .ptr 0x40"))
        assert ctx.memory[0] == 0x40
        assert ctx.relocations == set()

    def test_bare_symbol_rejected(self):
        with pytest.raises(AssemblySyntaxError) as exc_info:
            parse(program(data="a: 1\np: a"))
        assert ".ptr" in str(exc_info.value)

    def test_label_without_colon(self):
        with pytest.raises(AssemblySyntaxError):
            parse(program(data="a 1"))

    def test_missing_value(self):
        with pytest.raises(AssemblySyntaxError):
            parse(program(data="a:\nb: 1"))

    def test_array_needs_count(self):
        with pytest.raises(AssemblySyntaxError):
            parse(".export\n.data\nbuf: .array\n.text\n")

    def test_duplicate_label(self):
        with pytest.raises(DuplicateSymbolError):
            parse(program(data="a: 1\na: 2"))

    def test_duplicate_label_allowed(self):
        ctx = parse(program(data="a: 1\na: 2"), allow_redefinition=True)
        assert ctx.symbols.lookup("a") == 1

    def test_overflow(self):
        with pytest.raises(MemoryOverflowError):
            parse(program(data="buf: .array 9"), mem_words=8)

    def test_error_line_number(self):
        with pytest.raises(AssemblySyntaxError) as exc_info:
            parse(".export\n.data\na: 1\nb: oops\n.text\n")
        assert exc_info.value.location.line == 4


# =============================================================================
# Instructions
# =============================================================================

class TestInstructions:
    """Test primitive instructions in .text."""

    def test_three_fields(self):
        ctx = parse(program(data="z: 0", text="z z 0x7"))
        assert ctx.memory.words()[1:] == [0, 0, 7]
        assert ctx.relocations == {1, 2}

    def test_omitted_field_is_next_word(self):
        ctx = parse(program(data="z: 0", text="z z\nz z"))
        assert ctx.memory.words()[1:] == [0, 0, 4, 0, 0, 7]
        assert {3, 6} <= ctx.relocations

    def test_omitted_field_at_end_of_input(self):
        ctx = parse(".export .data z: 0 .text\nz z")
        assert ctx.memory.words() == [0, 0, 0, 4]

    def test_label_on_same_line_ends_instruction(self):
        ctx = parse(program(data="z: 0", text="z z here:\nz z here"))
        assert ctx.symbols.lookup("here") == 4
        assert ctx.memory[3] == 4

    def test_hex_fields_are_absolute(self):
        ctx = parse(program(text="0x1 0x2 0x3"))
        assert ctx.memory.words() == [1, 2, 3]
        assert ctx.relocations == set()

    def test_forward_label(self):
        ctx = parse(program(data="z: 0", text="z z end\nend:"))
        assert ctx.symbols.pending() == {"end": [3]}

    def test_external_reference(self):
        ctx = parse(program(text="ext ext"))
        assert ctx.symbols.pending() == {"ext": [0, 1]}

    def test_single_field(self):
        with pytest.raises(AssemblySyntaxError):
            parse(program(data="z: 0", text="z"))

    def test_label_as_second_field(self):
        with pytest.raises(AssemblySyntaxError):
            parse(program(data="z: 0", text="z\nhere:"))

    def test_decimal_field_rejected(self):
        with pytest.raises(AssemblySyntaxError):
            parse(program(text="1 2 3"))

    def test_duplicate_text_label(self):
        with pytest.raises(DuplicateSymbolError):
            parse(program(data="x: 0", text="x:\n0x0 0x0"))
