"""
subasm - SUBLEQ Assembler Command-Line Interface
================================================

This module implements the command-line interface for the SUBLEQ
assembler.

Usage Examples
--------------
Basic assembly:
    $ subasm prog.sasm prog.o

Packed 64-bit encoding with a 4K-word address space:
    $ subasm -f packed -w 0x1000 prog.sasm prog.o

Verbose mode:
    $ subasm -v prog.sasm prog.o

Exactly two positional arguments are expected. Any other count prints
the usage line and exits successfully.
"""

from pathlib import Path
from typing import Optional
import logging
import sys

import click

from subleq_asm import __version__
from subleq_asm.assembler import Assembler
from subleq_asm.config import AssemblerConfig, EncodingKind
from subleq_asm.cli.errors import ExitCode, handle_cli_exception


USAGE = "Usage mode: subasm <assembly_file> <object_file>"


def _parse_mem_words(ctx, param, value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value, 0)
    except ValueError:
        raise click.BadParameter(f"not a number: {value!r}") from None


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose else "%(message)s",
    )


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "files",
    nargs=-1,
    type=click.Path(dir_okay=False, path_type=Path),
)
@click.option(
    "-f", "--format", "encoding",
    type=click.Choice([kind.value for kind in EncodingKind], case_sensitive=False),
    default=None,
    help="Object word encoding. Default: relative (or $SUBLEQ_ENCODING).",
)
@click.option(
    "-w", "--mem-words",
    callback=_parse_mem_words,
    default=None,
    help="Address space size in words, decimal or 0x hex. Default: 0x2000.",
)
@click.option(
    "--allow-redefinition",
    is_flag=True,
    help="Let a later label definition replace an earlier one.",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="subasm")
def main(
    files: tuple[Path, ...],
    encoding: Optional[str],
    mem_words: Optional[int],
    allow_redefinition: bool,
    verbose: bool,
) -> None:
    """
    Assemble SUBLEQ source into a relocatable object file.

    \b
    Examples:
        subasm prog.sasm prog.o
        subasm --format packed prog.sasm prog.o
    """
    if len(files) != 2:
        click.echo(USAGE, err=True)
        sys.exit(ExitCode.SUCCESS)

    input_file, output_file = files
    setup_logging(verbose)

    try:
        config = AssemblerConfig.from_env().with_overrides(
            encoding=encoding.lower() if encoding else None,
            mem_words=mem_words,
            allow_redefinition=allow_redefinition or None,
        )

        asm = Assembler(config, verbose=verbose)
        asm.assemble_file(input_file)
        asm.write_object(output_file)

        if verbose:
            obj = asm.get_object()
            click.echo(
                f"Assembly complete: {len(obj.words)} words "
                f"({config.encoding.value}), {len(obj.exports)} export(s), "
                f"{len(obj.references)} external symbol(s)"
            )

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Assembly")


if __name__ == "__main__":
    main()
