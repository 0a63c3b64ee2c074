"""
SUBLEQ Assembler - Main Interface
=================================

This module provides the Assembler class, the primary interface for
turning SUBLEQ assembly source into relocatable object files. It
coordinates the tokenizer, section parser, pseudo-instruction expander,
resolver and object emitter.

Example Usage
-------------
>>> from subleq_asm.assembler import Assembler
>>>
>>> asm = Assembler()
>>> asm.assemble_string('''
... .export
... .data
...     zero: 0
... .text
... start:
...     zero zero start
... ''')
>>>
>>> asm.get_symbols()
{'zero': 0, 'start': 1}
>>> asm.write_object("prog.o")

Command-Line Usage
------------------
    $ subasm prog.sasm prog.o
    $ subasm --format packed --mem-words 0x1000 prog.sasm prog.o

Assembly Pipeline
-----------------
1. Parse: tokens are read section by section; labels are bound and words
   written as they are met, pending references recorded for symbols not
   yet defined.
2. Resolve: one pass patches every pending reference whose symbol is now
   known. The rest stay pending for the linker.
3. Emit: the context is snapshotted into an ObjectFile and serialized.
"""

from pathlib import Path
from typing import Optional
import logging

from subleq_asm.config import AssemblerConfig
from subleq_asm.errors import AssemblySyntaxError, SourceLocation
from subleq_asm.objfile import ObjectFile
from subleq_asm.assembler.context import AssemblerContext
from subleq_asm.assembler.parser import SectionParser
from subleq_asm.assembler.tokenizer import Tokenizer, TokenStream

logger = logging.getLogger(__name__)


class Assembler:
    """
    Main SUBLEQ assembler class.

    Each assemble_* call runs in a fresh AssemblerContext; the result of
    the most recent call is kept for the get_* and write_* methods.

    Attributes:
        config: Active AssemblerConfig
        verbose: If True, log progress at INFO level
    """

    def __init__(self, config: Optional[AssemblerConfig] = None, verbose: bool = False):
        """
        Initialize the assembler.

        Args:
            config: Assembler configuration (default: AssemblerConfig())
            verbose: Log progress messages
        """
        self.config = config or AssemblerConfig()
        self.verbose = verbose
        self._context: Optional[AssemblerContext] = None
        self._object: Optional[ObjectFile] = None

    # =========================================================================
    # Assembly Methods
    # =========================================================================

    def assemble_string(self, source: str, filename: str = "<input>") -> bytes:
        """
        Assemble source code from a string.

        Args:
            source: Assembly source code
            filename: Virtual filename for error messages

        Returns:
            The serialized object file

        Raises:
            AssemblerError: If assembly fails
        """
        ctx = AssemblerContext(self.config, filename)
        stream = TokenStream(Tokenizer(source, filename))

        parser = SectionParser(stream, ctx)
        parser.parse()
        patched = ctx.symbols.resolve_local(parser.encoding.patch)

        obj = ObjectFile.from_context(ctx)
        self._context = ctx
        self._object = obj

        self._log(
            f"{filename}: {ctx.mem_size} word(s), {len(obj.exports)} export(s), "
            f"{patched} local fixup(s), {len(obj.references)} external symbol(s)"
        )
        return obj.to_bytes()

    def assemble_file(self, filepath: str | Path) -> bytes:
        """
        Assemble source code from a file.

        Args:
            filepath: Path to the assembly source

        Returns:
            The serialized object file

        Raises:
            FileNotFoundError: If the source file does not exist
            AssemblySyntaxError: If the source is not valid UTF-8
            AssemblerError: If assembly fails
        """
        filepath = Path(filepath)
        self._log(f"assembling {filepath}")
        source = _decode_source(filepath.read_bytes(), str(filepath))
        return self.assemble_string(source, str(filepath))

    # =========================================================================
    # Output Methods
    # =========================================================================

    def get_object(self) -> ObjectFile:
        """Return the ObjectFile of the last assembly."""
        if self._object is None:
            raise RuntimeError("nothing has been assembled yet")
        return self._object

    def get_code(self) -> list[int]:
        """Return the memory image words of the last assembly."""
        return list(self.get_object().words)

    def get_symbols(self) -> dict[str, int]:
        """Return every label of the last assembly, including internal ones."""
        self.get_object()
        return self._context.symbols.addresses()

    def write_object(self, filepath: str | Path) -> None:
        """
        Write the object file of the last assembly.

        Args:
            filepath: Output file path
        """
        self.get_object().write(filepath)
        self._log(f"wrote {filepath}")

    def _log(self, message: str) -> None:
        if self.verbose:
            logger.info(message)
        else:
            logger.debug(message)


# =============================================================================
# Convenience Functions
# =============================================================================

def assemble(source: str, filename: str = "<input>",
             config: Optional[AssemblerConfig] = None) -> bytes:
    """
    Convenience function to assemble source code.

    Args:
        source: Assembly source code
        filename: Virtual filename for errors
        config: Assembler configuration (default: AssemblerConfig())

    Returns:
        The serialized object file

    Raises:
        AssemblerError: If assembly fails
    """
    asm = Assembler(config)
    return asm.assemble_string(source, filename)


def assemble_file(filepath: str | Path, config: Optional[AssemblerConfig] = None) -> bytes:
    """
    Convenience function to assemble a file.

    Args:
        filepath: Path to source file
        config: Assembler configuration (default: AssemblerConfig())

    Returns:
        The serialized object file

    Raises:
        AssemblerError: If assembly fails
    """
    asm = Assembler(config)
    return asm.assemble_file(filepath)


def _decode_source(raw: bytes, filename: str) -> str:
    """Decode UTF-8 source, reporting the first bad byte by line and column."""
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        before = raw[:e.start]
        line = before.count(b"\n") + 1
        column = e.start - (before.rfind(b"\n") + 1) + 1
        raise AssemblySyntaxError(
            f"source is not valid UTF-8 (byte 0x{raw[e.start]:02x})",
            SourceLocation(filename, line, column),
            hint="save the file as UTF-8",
        ) from None
