"""
subobjdump - SUBLEQ Object File Dump
====================================

Prints the tables and word image of an object file produced by subasm.

Usage Examples
--------------
    $ subobjdump prog.o
    $ subobjdump -f packed prog.o

The object format carries no magic number, so the encoding the file was
assembled with must be given for packed objects.
"""

from pathlib import Path

import click

from subleq_asm import __version__
from subleq_asm.config import EncodingKind
from subleq_asm.objfile import ObjectFile
from subleq_asm.cli.errors import handle_cli_exception


@click.command()
@click.argument(
    "object_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-f", "--format", "encoding",
    type=click.Choice([kind.value for kind in EncodingKind], case_sensitive=False),
    default=EncodingKind.RELATIVE.value,
    show_default=True,
    help="Encoding the object file was assembled with.",
)
@click.version_option(version=__version__, prog_name="subobjdump")
def main(object_file: Path, encoding: str) -> None:
    """
    Display the contents of a SUBLEQ object file.

    OBJECT_FILE is an object file written by subasm.
    """
    try:
        obj = ObjectFile.read(object_file, EncodingKind(encoding.lower()))
        click.echo(f"{object_file}:")
        click.echo(obj.format())
    except Exception as e:
        handle_cli_exception(e, error_type="Object file")


if __name__ == "__main__":
    main()
