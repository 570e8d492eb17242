"""
Kaleido Command-Line Interface
==============================

- **kc**: compile Kaleido source to LLVM IR

The tool is a Click-based CLI application.
"""

__all__ = ["kc"]
