"""
Symbol Table and Reference Resolver
===================================

Tracks label addresses, the exported set and pending references for one
assembly run.

Pending References
------------------
When a field names a symbol that is not yet defined, the word is written
holding only its partial value (the `+N` offset, or zero) and the site is
recorded under the symbol name. After the whole file has been read,
`resolve_local()` makes a single pass: every pending name that is now
defined has all of its sites patched and is dropped; names still unknown
stay pending and are written to the object file for the linker.

One pass is enough because every label of the file is known once the
file has been read completely.

A *site* is whatever the active encoding needs to patch a word: a plain
address for the relative encoding, an (address, field) pair for the
packed encoding.
"""

from dataclasses import dataclass
from typing import Callable, Hashable, Optional
import logging

from subleq_asm.errors import (
    DuplicateSymbolError,
    SourceLocation,
    UndefinedSymbolError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Symbol Table Entry
# =============================================================================

@dataclass
class Symbol:
    """
    Symbol table entry.

    Attributes:
        name: Symbol name (label text without the trailing colon)
        address: Word address the label is bound to
        location: Where the symbol was defined
    """
    name: str
    address: int
    location: Optional[SourceLocation] = None


# =============================================================================
# Symbol Table
# =============================================================================

class SymbolTable:
    """
    Symbols, exports and pending references of one assembled file.

    Usage:
        table = SymbolTable()
        table.define("loop", 4)
        table.reference("done", 7)
        table.resolve_local(patch)
    """

    def __init__(self, allow_redefinition: bool = False):
        """
        Args:
            allow_redefinition: If True, a second definition replaces the
                                first (last wins) instead of raising
        """
        self._allow_redefinition = allow_redefinition
        self._symbols: dict[str, Symbol] = {}
        self._exported: dict[str, Optional[SourceLocation]] = {}
        self._pending: dict[str, set[Hashable]] = {}

    # =========================================================================
    # Definitions
    # =========================================================================

    def define(self, name: str, address: int,
               location: Optional[SourceLocation] = None) -> None:
        """
        Bind a label to an address.

        Raises:
            DuplicateSymbolError: If the name is already bound and
                                  redefinition is not allowed
        """
        existing = self._symbols.get(name)
        if existing is not None:
            if not self._allow_redefinition:
                raise DuplicateSymbolError(name, location, existing.location)
            logger.warning(
                f"symbol '{name}' redefined: {existing.address} -> {address}"
            )

        self._symbols[name] = Symbol(name, address, location)

    def lookup(self, name: str) -> Optional[int]:
        """Return the address bound to name, or None if undefined."""
        symbol = self._symbols.get(name)
        return symbol.address if symbol is not None else None

    def __contains__(self, name: str) -> bool:
        return name in self._symbols

    def addresses(self) -> dict[str, int]:
        """Return a name -> address mapping of every defined symbol."""
        return {name: sym.address for name, sym in self._symbols.items()}

    # =========================================================================
    # Exports
    # =========================================================================

    def export(self, name: str, location: Optional[SourceLocation] = None) -> None:
        """Add a name to the exported set."""
        self._exported.setdefault(name, location)

    @property
    def exported(self) -> frozenset[str]:
        return frozenset(self._exported)

    def exported_symbols(self) -> list[tuple[str, int]]:
        """
        Return the exported symbols as sorted (name, address) pairs.

        Raises:
            UndefinedSymbolError: If an exported name was never defined
        """
        result = []
        for name in sorted(self._exported):
            symbol = self._symbols.get(name)
            if symbol is None:
                raise UndefinedSymbolError(
                    name,
                    self._exported[name],
                    hint="define it as a label in .data or .text, or drop it from .export",
                )
            result.append((name, symbol.address))
        return result

    # =========================================================================
    # Pending References
    # =========================================================================

    def reference(self, name: str, site: Hashable) -> None:
        """Record that the word at site awaits the value of name."""
        self._pending.setdefault(name, set()).add(site)

    def is_pending(self, name: str) -> bool:
        return name in self._pending

    def pending(self) -> dict[str, list]:
        """Return pending references with names and sites in sorted order."""
        return {
            name: sorted(self._pending[name])
            for name in sorted(self._pending)
        }

    def resolve_local(self, patch: Callable[[Hashable, int], None]) -> int:
        """
        Resolve every pending reference whose symbol is now defined.

        Args:
            patch: Called as patch(site, address) for each resolved site

        Returns:
            Number of sites patched
        """
        patched = 0
        for name in list(self._pending):
            symbol = self._symbols.get(name)
            if symbol is None:
                continue  # external, left for the linker

            for site in self._pending.pop(name):
                patch(site, symbol.address)
                patched += 1

        logger.debug(
            f"resolved {patched} reference(s), {len(self._pending)} symbol(s) left external"
        )
        return patched
