"""
SUBLEQ Object File Format
=========================

This module writes and reads the relocatable object files produced by the
assembler and consumed by the linker.

All integers are little-endian. Names are NUL-terminated UTF-8 strings.

Relative Encoding Layout
------------------------
```
uint32 export_count      { cstring name; uint32 address }*
uint32 pending_count     { cstring name; uint32 n; uint32 address * n }*
uint32 relocation_count  uint32 address*
uint32 word_count        uint32 word*
```

Packed Encoding Layout
----------------------
```
uint32 text_offset
uint32 export_count      { cstring name; uint32 address }*
uint32 pending_count     { cstring name; uint32 n; { uint32 address; uint32 field } * n }*
uint32 absolute_count    { uint32 address; uint32 field }*
uint32 word_count        uint64 word*
```

Words from text_offset on are instructions, except for the `$tmp`/`$tmp2`
scratch words the assembler may append at the very end. Code always clears
those before use, so a linker may treat them as instructions.

Tables are written in sorted order (exports and pending names by name,
addresses ascending) so the same source always yields the same bytes.

Example
-------
>>> obj = ObjectFile.read("prog.o")
>>> obj.exports
[('start', 1)]
>>> print(obj.format())
"""

from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING
import logging
import struct

from subleq_asm.config import EncodingKind
from subleq_asm.errors import ObjectFormatError

if TYPE_CHECKING:
    from subleq_asm.assembler.context import AssemblerContext

logger = logging.getLogger(__name__)


# =============================================================================
# Packed Field References
# =============================================================================

class Field(IntEnum):
    """Instruction field index inside a packed word."""
    A = 0
    B = 1
    J = 2


@dataclass(frozen=True, order=True)
class FieldRef:
    """A field inside a packed instruction word."""
    address: int
    field: Field


# =============================================================================
# Object File
# =============================================================================

@dataclass
class ObjectFile:
    """
    Contents of one object file.

    Attributes:
        encoding: Word encoding of the image
        exports: Sorted (name, address) pairs
        references: Pending references, name -> sorted sites. Sites are
                    addresses (relative) or FieldRefs (packed)
        relocations: Sorted addresses of locally-relative words (relative)
        absolutes: Sorted FieldRefs of absolute fields (packed)
        words: The memory image
        text_offset: Address of the first .text word (packed only, else 0)
    """
    encoding: EncodingKind = EncodingKind.RELATIVE
    exports: list[tuple[str, int]] = field(default_factory=list)
    references: dict[str, list] = field(default_factory=dict)
    relocations: list[int] = field(default_factory=list)
    absolutes: list[FieldRef] = field(default_factory=list)
    words: list[int] = field(default_factory=list)
    text_offset: int = 0

    @classmethod
    def from_context(cls, ctx: "AssemblerContext") -> "ObjectFile":
        """
        Snapshot a resolved assembler context.

        Raises:
            UndefinedSymbolError: If an exported name was never defined
        """
        return cls(
            encoding=ctx.encoding,
            exports=ctx.symbols.exported_symbols(),
            references=ctx.symbols.pending(),
            relocations=sorted(ctx.relocations),
            absolutes=sorted(ctx.absolutes),
            words=ctx.memory.words(),
            text_offset=ctx.text_offset if ctx.encoding is EncodingKind.PACKED else 0,
        )

    @property
    def is_packed(self) -> bool:
        return self.encoding is EncodingKind.PACKED

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_bytes(self) -> bytes:
        """Serialize to the on-disk layout of this object's encoding."""
        result = bytearray()

        if self.is_packed:
            result.extend(struct.pack("<I", self.text_offset))

        result.extend(struct.pack("<I", len(self.exports)))
        for name, address in self.exports:
            result.extend(_cstring(name))
            result.extend(struct.pack("<I", address))

        result.extend(struct.pack("<I", len(self.references)))
        for name, sites in self.references.items():
            result.extend(_cstring(name))
            result.extend(struct.pack("<I", len(sites)))
            for site in sites:
                if self.is_packed:
                    result.extend(struct.pack("<II", site.address, site.field))
                else:
                    result.extend(struct.pack("<I", site))

        if self.is_packed:
            result.extend(struct.pack("<I", len(self.absolutes)))
            for ref in self.absolutes:
                result.extend(struct.pack("<II", ref.address, ref.field))
            word_format = "<Q"
        else:
            result.extend(struct.pack("<I", len(self.relocations)))
            for address in self.relocations:
                result.extend(struct.pack("<I", address))
            word_format = "<I"

        result.extend(struct.pack("<I", len(self.words)))
        for word in self.words:
            result.extend(struct.pack(word_format, word))

        return bytes(result)

    def write(self, filepath: str | Path) -> int:
        """
        Write the object file.

        The bytes are built before the file is opened, so a failure while
        serializing never leaves a partial file behind.

        Returns:
            Number of bytes written
        """
        data = self.to_bytes()
        with open(filepath, "wb") as f:
            f.write(data)
        logger.info(f"wrote {filepath}: {len(self.words)} word(s), {len(data)} bytes")
        return len(data)

    # =========================================================================
    # Parsing
    # =========================================================================

    @classmethod
    def from_bytes(cls, data: bytes,
                   encoding: EncodingKind = EncodingKind.RELATIVE) -> "ObjectFile":
        """
        Parse an object file.

        The format carries no magic number, so the encoding must be given.

        Raises:
            ObjectFormatError: On truncated data, an unterminated name or
                               bytes left after the code image
        """
        encoding = EncodingKind(encoding)
        reader = _Reader(data)
        obj = cls(encoding=encoding)
        packed = obj.is_packed

        if packed:
            obj.text_offset = reader.u32()

        for _ in range(reader.u32()):
            name = reader.cstring()
            obj.exports.append((name, reader.u32()))

        for _ in range(reader.u32()):
            name = reader.cstring()
            count = reader.u32()
            if packed:
                obj.references[name] = [reader.field_ref() for _ in range(count)]
            else:
                obj.references[name] = [reader.u32() for _ in range(count)]

        if packed:
            obj.absolutes = [reader.field_ref() for _ in range(reader.u32())]
            obj.words = [reader.u64() for _ in range(reader.u32())]
        else:
            obj.relocations = [reader.u32() for _ in range(reader.u32())]
            obj.words = [reader.u32() for _ in range(reader.u32())]

        if reader.remaining:
            raise ObjectFormatError(
                f"{reader.remaining} unexpected byte(s) after the code image"
            )
        return obj

    @classmethod
    def read(cls, filepath: str | Path,
             encoding: EncodingKind = EncodingKind.RELATIVE) -> "ObjectFile":
        """Read and parse an object file from disk."""
        with open(filepath, "rb") as f:
            data = f.read()
        return cls.from_bytes(data, encoding)

    # =========================================================================
    # Display
    # =========================================================================

    def format(self) -> str:
        """Human-readable dump of every table and the word image."""
        lines = [f"encoding: {self.encoding.value}"]
        if self.is_packed:
            lines.append(f"text offset: {self.text_offset:#06x}")

        lines.append(f"exports ({len(self.exports)}):")
        for name, address in self.exports:
            lines.append(f"  {address:#06x}  {name}")

        lines.append(f"pending references ({len(self.references)}):")
        for name, sites in self.references.items():
            lines.append(f"  {name}: {', '.join(_format_site(site) for site in sites)}")

        if self.is_packed:
            lines.append(f"absolute fields ({len(self.absolutes)}):")
            if self.absolutes:
                lines.append("  " + ", ".join(_format_site(ref) for ref in self.absolutes))
            digits = 16
        else:
            lines.append(f"relocations ({len(self.relocations)}):")
            if self.relocations:
                lines.append("  " + ", ".join(f"{a:#06x}" for a in self.relocations))
            digits = 8

        lines.append(f"words ({len(self.words)}):")
        for address, word in enumerate(self.words):
            lines.append(f"  {address:04x}: {word:0{digits}x}")

        return "\n".join(lines)


# =============================================================================
# Helpers
# =============================================================================

def _cstring(text: str) -> bytes:
    return text.encode("utf-8") + b"\x00"


def _format_site(site) -> str:
    if isinstance(site, FieldRef):
        return f"{site.address:#06x}.{site.field.name}"
    return f"{site:#06x}"


class _Reader:
    """Sequential little-endian reader over object file bytes."""

    def __init__(self, data: bytes):
        self.data = data
        self.pos = 0

    @property
    def remaining(self) -> int:
        return len(self.data) - self.pos

    def _take(self, size: int) -> bytes:
        if self.remaining < size:
            raise ObjectFormatError(
                f"object file truncated at offset {self.pos}: "
                f"need {size} byte(s), {self.remaining} left"
            )
        chunk = self.data[self.pos:self.pos + size]
        self.pos += size
        return chunk

    def u32(self) -> int:
        return struct.unpack("<I", self._take(4))[0]

    def u64(self) -> int:
        return struct.unpack("<Q", self._take(8))[0]

    def field_ref(self) -> FieldRef:
        address = self.u32()
        index = self.u32()
        try:
            return FieldRef(address, Field(index))
        except ValueError:
            raise ObjectFormatError(
                f"invalid field index {index} at offset {self.pos - 4}"
            ) from None

    def cstring(self) -> str:
        end = self.data.find(b"\x00", self.pos)
        if end < 0:
            raise ObjectFormatError(f"unterminated name at offset {self.pos}")
        raw = self.data[self.pos:end]
        self.pos = end + 1
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ObjectFormatError(f"invalid name encoding: {e}") from None
