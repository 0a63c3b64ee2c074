"""
SUBLEQ Assembler - Toolchain for a One-Instruction Computer
===========================================================

This package assembles programs for a SUBLEQ machine, a one-instruction
set computer whose only operation is

    A B C     mem[A] -= mem[B]; if mem[A] <= 0 goto C

Assembly source is translated into relocatable object files, which an
external linker combines and an external virtual machine executes.

Main Components
---------------
- **assembler**: Tokenizer, section parser, pseudo-instruction expander
  and symbol resolver (subasm)
- **objfile**: Object file writer and reader (subobjdump)
- **config**: AssemblerConfig (address space size, word encoding)

Quick Start
-----------
Assemble a program:
    >>> from subleq_asm import Assembler
    >>> asm = Assembler()
    >>> asm.assemble_file("prog.sasm")
    >>> asm.write_object("prog.o")

Inspect an object file:
    >>> from subleq_asm import ObjectFile
    >>> print(ObjectFile.read("prog.o").format())

Or use the command-line tools:
    $ subasm prog.sasm prog.o
    $ subobjdump prog.o
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from subleq_asm.assembler import Assembler, assemble, assemble_file
from subleq_asm.config import AssemblerConfig, EncodingKind
from subleq_asm.objfile import ObjectFile
from subleq_asm.errors import (
    SubleqError,
    ConfigurationError,
    AssemblerError,
    AssemblySyntaxError,
    SectionError,
    UndefinedSymbolError,
    DuplicateSymbolError,
    LiteralRangeError,
    MemoryOverflowError,
    ObjectFileError,
    ObjectFormatError,
    SourceLocation,
)

__all__ = [
    "__version__",
    "Assembler",
    "assemble",
    "assemble_file",
    "AssemblerConfig",
    "EncodingKind",
    "ObjectFile",
    "SubleqError",
    "ConfigurationError",
    "AssemblerError",
    "AssemblySyntaxError",
    "SectionError",
    "UndefinedSymbolError",
    "DuplicateSymbolError",
    "LiteralRangeError",
    "MemoryOverflowError",
    "ObjectFileError",
    "ObjectFormatError",
    "SourceLocation",
]
