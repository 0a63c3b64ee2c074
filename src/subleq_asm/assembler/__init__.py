"""
SUBLEQ Assembler
================

This module converts SUBLEQ assembly source into relocatable object files.

Main Components
---------------
- **Assembler**: Main class that runs the whole pipeline
- **Tokenizer / TokenStream**: Whitespace tokens with line numbers, plus
  push-back for expanded pseudo-instructions
- **SectionParser**: Reads `.export`, `.data` and `.text`
- **Expander**: Lowers pseudo-instructions (mov, beq, ...) to primitives
- **SymbolTable**: Labels, exports and pending references

Assembly Process
----------------
1. **Parsing**: tokens are consumed section by section; labels are bound
   and words written immediately. Pseudo-instructions are expanded back
   into the token stream.
2. **Resolution**: one pass patches references to symbols defined later
   in the file. Unknown symbols are left pending for the linker.
3. **Emission**: exports, pending references, relocations and the word
   image are serialized.

Example Usage
-------------
>>> from subleq_asm.assembler import Assembler
>>> asm = Assembler()
>>> asm.assemble_string('''
... .export
... .data
...     one: 1
...     x:   5
... .text
... start:
...     x one
...     jmp start
... ''')
>>> asm.get_symbols()["start"]
2
"""

from subleq_asm.assembler.assembler import Assembler, assemble, assemble_file
from subleq_asm.assembler.context import AssemblerContext, Memory
from subleq_asm.assembler.parser import SectionParser
from subleq_asm.assembler.pseudo import PSEUDO_OPS, Expander, PseudoOp
from subleq_asm.assembler.symbols import Symbol, SymbolTable
from subleq_asm.assembler.tokenizer import Token, Tokenizer, TokenStream

__all__ = [
    "Assembler",
    "assemble",
    "assemble_file",
    "AssemblerContext",
    "Memory",
    "SectionParser",
    "PSEUDO_OPS",
    "Expander",
    "PseudoOp",
    "Symbol",
    "SymbolTable",
    "Token",
    "Tokenizer",
    "TokenStream",
]
