"""
SUBLEQ Assembler Command-Line Interface
=======================================

This package provides command-line tools for the SUBLEQ toolchain:

- **subasm**: Assembler
- **subobjdump**: Object file dump

Each tool is implemented as a Click-based CLI application.
"""

__all__ = ["subasm", "subobjdump"]
