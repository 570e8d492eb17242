"""
Kaleido Compiler Front End
==========================

This package implements the front end of a compiler for Kaleido, a tiny
expression language in which every value is a double-precision number.
It provides:

- A lexer (scanner) pulling characters one at a time from a string or stream
- A recursive descent parser with operator-precedence climbing
- An AST of expressions, prototypes and function declarations
- A code generator emitting LLVM IR through llvmlite
- A driver that compiles one top-level construct at a time

Pipeline
--------
    Source → Lexer → Parser → AST → Code Generator → LLVM IR

Usage
-----
>>> from kaleido.frontend import compile_kaleido
>>> source = '''
... extern sin(x)
... def f(x y) sin(x) * y + 1
... f(1, 2)
... '''
>>> print(compile_kaleido(source))

Language
--------
- Definitions: def name(a b c) expression
- Declarations: extern name(a b c)
- Top-level expressions, compiled as anonymous functions
- Operators: < + - * (precedence 10, 20, 20, 40)
- Comments: # to end of line

Not supported:
- Any type other than double
- Control flow (if, loops)
- Local variables and assignment
"""

# =============================================================================
# Version Information
# =============================================================================

__version__ = "1.0.0"

# =============================================================================
# Public API Imports
# =============================================================================

from kaleido.frontend.compiler import (
    KaleidoCompiler,
    CompilerOptions,
    CompilerResult,
    TopLevelResult,
    compile_kaleido,
    compile_file,
)
from kaleido.frontend.errors import (
    KaleidoSyntaxError,
    UnexpectedTokenError,
    MissingTokenError,
    KaleidoCodegenError,
    UnknownVariableError,
    UnknownFunctionError,
    ArgumentCountError,
    InvalidOperatorError,
    FunctionRedefinitionError,
    PrototypeMismatchError,
    DuplicateParameterError,
    VerificationError,
)
from kaleido.frontend.lexer import Lexer, TokenType, Token, tokenize
from kaleido.frontend.parser import Parser, parse_source, parse_expression
from kaleido.frontend.precedence import OperatorTable, default_operator_table
from kaleido.frontend.codegen import CodeGenerator
from kaleido.frontend.ast import (
    Expression,
    NumberLiteral,
    VariableRef,
    BinaryOp,
    Call,
    Prototype,
    FunctionDecl,
    ASTPrinter,
    format_expression,
    format_function,
)

__all__ = [
    # Version
    "__version__",
    # Main API
    "KaleidoCompiler",
    "CompilerOptions",
    "CompilerResult",
    "TopLevelResult",
    "compile_kaleido",
    "compile_file",
    # Errors
    "KaleidoSyntaxError",
    "UnexpectedTokenError",
    "MissingTokenError",
    "KaleidoCodegenError",
    "UnknownVariableError",
    "UnknownFunctionError",
    "ArgumentCountError",
    "InvalidOperatorError",
    "FunctionRedefinitionError",
    "PrototypeMismatchError",
    "DuplicateParameterError",
    "VerificationError",
    # Lexer
    "Lexer",
    "TokenType",
    "Token",
    "tokenize",
    # Parser
    "Parser",
    "parse_source",
    "parse_expression",
    "OperatorTable",
    "default_operator_table",
    # Code Generator
    "CodeGenerator",
    # AST Nodes
    "Expression",
    "NumberLiteral",
    "VariableRef",
    "BinaryOp",
    "Call",
    "Prototype",
    "FunctionDecl",
    "ASTPrinter",
    "format_expression",
    "format_function",
]
