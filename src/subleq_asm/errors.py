"""
SUBLEQ Toolchain Error Hierarchy
================================

This module defines the exception hierarchy for the whole package.
All exceptions inherit from SubleqError, allowing callers to catch every
toolchain error with a single except clause if desired.

Exception Hierarchy
-------------------
SubleqError (base)
├── ConfigurationError - invalid AssemblerConfig values
├── AssemblerError (assembler-related)
│   ├── AssemblySyntaxError - malformed token, label, literal or offset
│   ├── SectionError - missing or misordered section marker
│   ├── UndefinedSymbolError - exported symbol never defined
│   ├── DuplicateSymbolError - label defined more than once
│   ├── LiteralRangeError - numeric value does not fit its word/field
│   └── MemoryOverflowError - image exceeds the address space
└── ObjectFileError (object file handling)
    └── ObjectFormatError - truncated or malformed object file

Error messages follow this format:
    filename:line:column: error: description
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class SubleqError(Exception):
    """
    Base exception for all toolchain errors.

        try:
            assembler.assemble_file("program.sasm")
        except SubleqError as e:
            print(f"Error: {e}")
    """
    pass


class ConfigurationError(SubleqError):
    """Invalid assembler configuration (address space size, encoding)."""
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Assembler Exceptions
# =============================================================================

class AssemblerError(SubleqError):
    """
    Base exception for all assembler-related errors.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location and hint.

        Example output:
            prog.sasm:7:3: error: expected section marker '.text'
            hint: every program needs .export, .data and .text in that order
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


class AssemblySyntaxError(AssemblerError):
    """
    Syntax error in assembly source code.

    Examples:
        - Label missing its trailing colon in .data
        - Offset suffix that is not a number ("buf+x")
        - Instruction cut short by end of input
        - Pseudo-instruction with too few operands
    """
    pass


class SectionError(AssemblerError):
    """
    Missing or misordered section marker.

    A program is made of `.export`, `.data` and `.text`, in that order.
    Reaching end of input while a marker is still expected is reported
    here instead of reading past the intended section bounds.
    """

    def __init__(
        self,
        expected: str,
        location: Optional[SourceLocation] = None,
        found: Optional[str] = None,
    ):
        self.expected = expected
        self.found = found

        if found:
            message = f"expected section marker '{expected}', found '{found}'"
        else:
            message = f"expected section marker '{expected}' before end of input"

        super().__init__(
            message,
            location=location,
            hint="every program needs .export, .data and .text in that order",
        )


class UndefinedSymbolError(AssemblerError):
    """
    Exported symbol that is never defined.

    Plain references to unknown symbols are not errors: they are left
    pending for the linker. Only a name listed under `.export` must
    exist in the file that exports it.
    """

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
    ):
        self.symbol = symbol
        super().__init__(
            f"exported symbol '{symbol}' is never defined",
            location=location,
            hint=hint,
        )


class DuplicateSymbolError(AssemblerError):
    """
    Label defined more than once.

    Includes the location of the first definition when available.
    """

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        original_location: Optional[SourceLocation] = None,
    ):
        self.symbol = symbol
        self.original_location = original_location

        hint = None
        if original_location:
            hint = f"'{symbol}' was first defined at {original_location}"

        super().__init__(
            f"duplicate symbol '{symbol}'",
            location=location,
            hint=hint,
        )


class LiteralRangeError(AssemblerError):
    """
    Numeric value does not fit its destination.

    Data words must fit the configured word width (negative decimals are
    stored two's-complement); packed instruction fields must fit
    log2(mem_words) bits.
    """
    pass


class MemoryOverflowError(AssemblerError):
    """
    Assembled image exceeds the configured address space.

    Raised as soon as a word would be written (or reserved) past
    `mem_words`, rather than corrupting memory.
    """
    pass


# =============================================================================
# Object File Exceptions
# =============================================================================

class ObjectFileError(SubleqError):
    """Base exception for object file handling errors."""
    pass


class ObjectFormatError(ObjectFileError):
    """
    Invalid object file format.

    Raised when reading an object file that:
    - Ends in the middle of a table
    - Has an unterminated symbol name
    - Carries bytes after the code image
    """
    pass
