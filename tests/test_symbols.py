# =============================================================================
# test_symbols.py - Symbol Table and Resolver Tests
# =============================================================================
# Tests for label definition, exports and local reference resolution.
#
# Test coverage includes:
#   - Definition, lookup and duplicate detection
#   - Last-wins redefinition when enabled
#   - Exported symbol listing and undefined exports
#   - Pending references and the single resolution pass
# =============================================================================

import logging

import pytest
from subleq_asm.assembler.symbols import SymbolTable
from subleq_asm.errors import (
    DuplicateSymbolError,
    SourceLocation,
    UndefinedSymbolError,
)


def loc(line: int) -> SourceLocation:
    return SourceLocation("<test>", line, 1)


# =============================================================================
# Definitions
# =============================================================================

class TestDefinitions:
    """Test binding labels to addresses."""

    def test_define_and_lookup(self):
        table = SymbolTable()
        table.define("loop", 4)
        assert table.lookup("loop") == 4
        assert "loop" in table

    def test_lookup_undefined(self):
        assert SymbolTable().lookup("nope") is None

    def test_duplicate_raises(self):
        table = SymbolTable()
        table.define("x", 0, loc(1))
        with pytest.raises(DuplicateSymbolError) as exc_info:
            table.define("x", 3, loc(5))
        assert exc_info.value.symbol == "x"
        assert "<test>:1:1" in str(exc_info.value)

    def test_redefinition_last_wins(self, caplog):
        table = SymbolTable(allow_redefinition=True)
        table.define("x", 0)
        with caplog.at_level(logging.WARNING, logger="subleq_asm.assembler.symbols"):
            table.define("x", 3)
        assert table.lookup("x") == 3
        assert "redefined" in caplog.text

    def test_addresses(self):
        table = SymbolTable()
        table.define("a", 0)
        table.define("b", 2)
        assert table.addresses() == {"a": 0, "b": 2}


# =============================================================================
# Exports
# =============================================================================

class TestExports:
    """Test the exported set."""

    def test_exported_symbols_sorted(self):
        table = SymbolTable()
        table.export("main")
        table.export("data")
        table.define("main", 7)
        table.define("data", 1)
        assert table.exported_symbols() == [("data", 1), ("main", 7)]

    def test_export_twice_is_one_entry(self):
        table = SymbolTable()
        table.export("start")
        table.export("start")
        table.define("start", 0)
        assert table.exported_symbols() == [("start", 0)]

    def test_undefined_export_raises(self):
        table = SymbolTable()
        table.export("ghost", loc(2))
        with pytest.raises(UndefinedSymbolError) as exc_info:
            table.exported_symbols()
        assert exc_info.value.symbol == "ghost"

    def test_exported_set(self):
        table = SymbolTable()
        table.export("a")
        assert table.exported == frozenset({"a"})


# =============================================================================
# Pending References
# =============================================================================

class TestResolution:
    """Test the local resolution pass."""

    def test_pending_sorted(self):
        table = SymbolTable()
        table.reference("zeta", 9)
        table.reference("alpha", 5)
        table.reference("alpha", 2)
        assert table.pending() == {"alpha": [2, 5], "zeta": [9]}

    def test_resolve_patches_defined_symbols(self):
        table = SymbolTable()
        table.reference("later", 1)
        table.reference("later", 4)
        table.define("later", 10)

        patches = []
        count = table.resolve_local(lambda site, address: patches.append((site, address)))

        assert count == 2
        assert sorted(patches) == [(1, 10), (4, 10)]
        assert table.pending() == {}

    def test_resolve_keeps_externals(self):
        table = SymbolTable()
        table.reference("external", 3)
        table.reference("local", 6)
        table.define("local", 0)

        table.resolve_local(lambda site, address: None)

        assert table.pending() == {"external": [3]}
        assert table.is_pending("external")
        assert not table.is_pending("local")

    def test_resolve_with_nothing_pending(self):
        assert SymbolTable().resolve_local(lambda site, address: None) == 0
