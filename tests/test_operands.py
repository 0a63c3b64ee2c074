# =============================================================================
# test_operands.py - Literal and Field Operand Tests
# =============================================================================
# Tests for numeric literal parsing and instruction field resolution.
#
# Test coverage includes:
#   - Decimal and 0x hexadecimal literals, range limits
#   - Hex fields (absolute) vs symbol fields (relocatable)
#   - `+N` offset suffixes and malformed suffixes
#   - Symbol name validation
# =============================================================================

import pytest
from subleq_asm.assembler.operands import (
    OperandKind,
    parse_count,
    parse_number,
    parse_operand,
    validate_symbol_name,
)
from subleq_asm.assembler.tokenizer import Token
from subleq_asm.errors import AssemblySyntaxError, LiteralRangeError


def tok(text: str) -> Token:
    return Token(text, 1, 1, "<test>")


# =============================================================================
# Numeric Literals
# =============================================================================

class TestNumbers:
    """Test data literal parsing."""

    @pytest.mark.parametrize("text,value", [
        ("0", 0),
        ("42", 42),
        ("-1", -1),
        ("0x1F", 31),
        ("0XfF", 255),
        ("0x0", 0),
    ])
    def test_valid(self, text, value):
        assert parse_number(tok(text)) == value

    @pytest.mark.parametrize("text", ["", "x", "0x", "1.5", "--1", "0xG", "$10"])
    def test_invalid(self, text):
        with pytest.raises(AssemblySyntaxError):
            parse_number(tok(text))

    def test_upper_bound(self):
        assert parse_number(tok("0xFFFFFFFF")) == 0xFFFFFFFF
        with pytest.raises(LiteralRangeError):
            parse_number(tok("0x100000000"))

    def test_lower_bound(self):
        assert parse_number(tok("-2147483648")) == -2147483648
        with pytest.raises(LiteralRangeError):
            parse_number(tok("-2147483649"))

    def test_wide_words(self):
        assert parse_number(tok("0xFFFFFFFFFF"), word_bits=64) == 0xFFFFFFFFFF

    def test_count_rejects_negative(self):
        with pytest.raises(LiteralRangeError):
            parse_count(tok("-3"))

    def test_error_carries_location(self):
        with pytest.raises(AssemblySyntaxError) as exc_info:
            parse_number(Token("abc", 4, 7, "prog.sasm"))
        assert "prog.sasm:4:7" in str(exc_info.value)


# =============================================================================
# Field Operands
# =============================================================================

class TestOperands:
    """Test instruction field parsing."""

    def test_hex_is_absolute(self):
        operand = parse_operand(tok("0x20"))
        assert operand.kind is OperandKind.ABSOLUTE
        assert operand.value == 0x20
        assert operand.symbol is None

    def test_name_is_symbol(self):
        operand = parse_operand(tok("loop"))
        assert operand.kind is OperandKind.SYMBOL
        assert operand.symbol == "loop"
        assert operand.value == 0

    def test_offset_suffix(self):
        operand = parse_operand(tok("buf+2"))
        assert operand.symbol == "buf"
        assert operand.value == 2

    def test_hex_offset_suffix(self):
        assert parse_operand(tok("buf+0x10")).value == 16

    def test_temporaries_are_symbols(self):
        assert parse_operand(tok("$tmp")).symbol == "$tmp"

    def test_decimal_field_rejected(self):
        """Absolute addresses must be written in hex."""
        with pytest.raises(AssemblySyntaxError) as exc_info:
            parse_operand(tok("12"))
        assert "0x" in str(exc_info.value)

    @pytest.mark.parametrize("text", ["buf+", "buf+x", "buf+1+2"])
    def test_malformed_offset(self, text):
        with pytest.raises(AssemblySyntaxError):
            parse_operand(tok(text))

    def test_negative_offset(self):
        with pytest.raises(LiteralRangeError):
            parse_operand(tok("buf+-1"))

    def test_missing_name(self):
        with pytest.raises(AssemblySyntaxError):
            parse_operand(tok("+2"))

    def test_hex_field_range(self):
        with pytest.raises(LiteralRangeError):
            parse_operand(tok("0x2000"), word_bits=13)


class TestSymbolNames:
    """Test symbol name validation."""

    @pytest.mark.parametrize("name", ["a", "loop_1", ".local", "$L0", "x.y"])
    def test_valid(self, name):
        validate_symbol_name(name, tok(name))

    @pytest.mark.parametrize("name", ["", "1abc", "-x", "a+b", "a:b"])
    def test_invalid(self, name):
        with pytest.raises(AssemblySyntaxError):
            validate_symbol_name(name, tok(name or ":"))
