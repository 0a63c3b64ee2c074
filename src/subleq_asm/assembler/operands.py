"""
Literals and Field Operands
===========================

This module turns tokens into values. There is no expression language:
a token is either a numeric literal or a symbol reference with an
optional word offset.

Numeric Literals
----------------
| Format      | Prefix | Example | Value      |
|-------------|--------|---------|------------|
| Decimal     | (none) | 42, -1  | 42, -1     |
| Hexadecimal | 0x     | 0x1F    | 31         |

Decimal data literals may be negative; they are stored two's-complement
in the memory word.

Field Operands
--------------
A field (instruction field or `.ptr` target) is resolved as follows:

| Syntax     | Kind     | Relocatable | Value written           |
|------------|----------|-------------|-------------------------|
| 0x20       | ABSOLUTE | no          | 0x20                    |
| buf        | SYMBOL   | yes         | address of buf          |
| buf+2      | SYMBOL   | yes         | address of buf, plus 2  |

Decimal literals are not accepted as fields: a field is an address, and
absolute addresses are written in hexadecimal.
"""

from dataclasses import dataclass
from enum import Enum, auto
import re

from subleq_asm.errors import AssemblySyntaxError, LiteralRangeError
from subleq_asm.assembler.tokenizer import Token


_DECIMAL = re.compile(r"-?[0-9]+")
_HEX = re.compile(r"0[xX][0-9a-fA-F]+")


# =============================================================================
# Operand Types
# =============================================================================

class OperandKind(Enum):
    """How a field's value is obtained."""
    ABSOLUTE = auto()   # 0x literal, never relocated
    SYMBOL = auto()     # symbol address (+ offset), relocatable
    NEXT = auto()       # omitted field: address of the following word


@dataclass(frozen=True)
class Operand:
    """
    A parsed instruction field or pointer target.

    Attributes:
        kind: The OperandKind
        token: Source token (for diagnostics)
        value: Literal value for ABSOLUTE, word offset for SYMBOL
        symbol: Symbol name for SYMBOL operands
    """
    kind: OperandKind
    token: Token
    value: int = 0
    symbol: str | None = None


# =============================================================================
# Literal Parsing
# =============================================================================

def is_hex_literal(text: str) -> bool:
    return _HEX.fullmatch(text) is not None


def parse_number(token: Token, word_bits: int = 32, signed: bool = True) -> int:
    """
    Parse a decimal or 0x-prefixed hexadecimal literal.

    Args:
        token: Token holding the literal
        word_bits: Width of the destination word
        signed: Accept negative decimal values

    Returns:
        The literal value (negative values are returned as-is; the memory
        image stores them two's-complement)

    Raises:
        AssemblySyntaxError: If the text is not a number
        LiteralRangeError: If the value does not fit word_bits
    """
    text = token.text
    if _HEX.fullmatch(text):
        value = int(text[2:], 16)
    elif _DECIMAL.fullmatch(text):
        value = int(text)
    else:
        raise AssemblySyntaxError(
            f"invalid numeric literal '{text}'",
            token.location,
            hint="use decimal (42, -1) or hexadecimal with 0x prefix (0x2A)",
        )

    low = -(1 << (word_bits - 1)) if signed else 0
    high = (1 << word_bits) - 1
    if not low <= value <= high:
        raise LiteralRangeError(
            f"literal '{text}' does not fit in {word_bits} bits",
            token.location,
        )
    return value


def parse_count(token: Token, word_bits: int = 32) -> int:
    """Parse a non-negative literal (array sizes, offsets)."""
    return parse_number(token, word_bits, signed=False)


# =============================================================================
# Field Parsing
# =============================================================================

def validate_symbol_name(name: str, token: Token) -> None:
    """
    Check that a name can be used as a symbol.

    Raises:
        AssemblySyntaxError: For empty names, names starting with a digit
                             or names containing '+' or ':'
    """
    if not name:
        raise AssemblySyntaxError(f"missing symbol name in '{token.text}'", token.location)
    if name[0].isdigit() or name[0] == "-":
        raise AssemblySyntaxError(
            f"invalid symbol name '{name}'",
            token.location,
            hint="absolute addresses are written in hexadecimal with a 0x prefix",
        )
    if "+" in name or ":" in name:
        raise AssemblySyntaxError(f"invalid symbol name '{name}'", token.location)


def parse_operand(token: Token, word_bits: int = 32) -> Operand:
    """
    Parse a field token into an Operand.

    Args:
        token: The field token
        word_bits: Width of the destination (word or packed field)

    Returns:
        An ABSOLUTE or SYMBOL Operand

    Raises:
        AssemblySyntaxError: For malformed names or offset suffixes
        LiteralRangeError: For hex literals that do not fit
    """
    text = token.text

    if is_hex_literal(text):
        return Operand(OperandKind.ABSOLUTE, token, parse_number(token, word_bits, signed=False))

    name, plus, offset_text = text.partition("+")
    validate_symbol_name(name, token)

    offset = 0
    if plus:
        offset_token = Token(offset_text, token.line, token.column + len(name) + 1,
                             token.filename, token.synthetic)
        if not offset_text:
            raise AssemblySyntaxError(
                f"missing offset after '+' in '{text}'",
                token.location,
            )
        try:
            offset = parse_count(offset_token, word_bits)
        except AssemblySyntaxError:
            raise AssemblySyntaxError(
                f"malformed offset suffix in '{text}'",
                token.location,
                hint="write offsets as name+N with N a non-negative number",
            ) from None

    return Operand(OperandKind.SYMBOL, token, offset, name)
