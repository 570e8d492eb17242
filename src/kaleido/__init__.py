"""
Kaleido - A Small Expression-Language Compiler to LLVM IR
=========================================================

Kaleido is a tiny functional language in which every value is a double.
Programs are sequences of function definitions, extern declarations and
top-level expressions, compiled one construct at a time into an LLVM
module.

Main Components
---------------
- **frontend**: lexer, parser, AST, code generator and compiler driver
- **cli**: the kc command-line compiler

Quick Start
-----------
Compile a string:
    >>> from kaleido import compile_kaleido
    >>> print(compile_kaleido('def add(a b) a+b'))

Keep going past errors and inspect each construct:
    >>> from kaleido import KaleidoCompiler
    >>> result = KaleidoCompiler().compile_source('def f(x) y  f(1)')
    >>> [item.success for item in result.items]
    [False, False]

Or use the command-line tool:
    $ kc fib.ks -o fib.ll
    $ kc            # interactive, reads from the terminal
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from kaleido.errors import (
    SourceLocation,
    KaleidoError,
    KaleidoCompilationError,
    DiagnosticCollector,
)
from kaleido.frontend import (
    KaleidoCompiler,
    CompilerOptions,
    CompilerResult,
    compile_kaleido,
    compile_file,
    KaleidoSyntaxError,
    KaleidoCodegenError,
)

__all__ = [
    "__version__",
    # Errors
    "SourceLocation",
    "KaleidoError",
    "KaleidoSyntaxError",
    "KaleidoCodegenError",
    "KaleidoCompilationError",
    "DiagnosticCollector",
    # Compiler
    "KaleidoCompiler",
    "CompilerOptions",
    "CompilerResult",
    "compile_kaleido",
    "compile_file",
]
