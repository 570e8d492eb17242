"""
Kaleido Front-End Error Hierarchy
=================================

Syntax and code generation errors raised by the lexer, parser and code
generator. All of them inherit from KaleidoError.

Exception Hierarchy
-------------------
KaleidoSyntaxError - parser errors; the driver skips one token and retries
├── UnexpectedTokenError - token cannot start the expected construct
└── MissingTokenError - required token (')' etc.) not found
KaleidoCodegenError - IR generation errors; the construct is discarded
├── UnknownVariableError - name not bound in the current function
├── UnknownFunctionError - call to a function the module doesn't have
├── ArgumentCountError - call arity differs from the declaration
├── InvalidOperatorError - binary operator without an IR lowering
├── FunctionRedefinitionError - second body for a defined function
├── PrototypeMismatchError - redeclaration with a different arity
├── DuplicateParameterError - same parameter name twice in a prototype
└── VerificationError - generated function is structurally invalid

Example:
    fib.ks:2:12: error: unknown function referenced 'fibb'
    hint: did you mean 'fib'?
"""

from typing import Optional

from kaleido.errors import KaleidoError, SourceLocation


# =============================================================================
# Syntax Errors (Parser)
# =============================================================================

class KaleidoSyntaxError(KaleidoError):
    """
    Syntax error in Kaleido source.

    Raised by the parser when the current token does not fit the grammar
    rule being applied. The parser does not resynchronize; the driver
    skips the offending token and tries again.
    """
    pass


class UnexpectedTokenError(KaleidoSyntaxError):
    """
    Unexpected token during parsing.

    Raised when a token cannot start the construct the parser expects,
    e.g. a ')' where a primary expression should be.
    """

    def __init__(
        self,
        found: str,
        message: str = "unknown token when expecting an expression",
        location: Optional[SourceLocation] = None,
    ):
        self.found = found
        super().__init__(
            f"{message} (found '{found}')",
            location=location,
        )


class MissingTokenError(KaleidoSyntaxError):
    """
    Required token is missing.

    Raised when a required token (like ')' or '(') is not found where
    the grammar demands it.
    """

    def __init__(
        self,
        expected: str,
        message: Optional[str] = None,
        location: Optional[SourceLocation] = None,
    ):
        self.expected = expected
        super().__init__(
            message or f"expected '{expected}'",
            location=location,
        )


# =============================================================================
# Code Generation Errors
# =============================================================================

class KaleidoCodegenError(KaleidoError):
    """
    Error during IR generation.

    The offending top-level construct produces no IR. Functions that
    were generated earlier stay valid.
    """
    pass


class UnknownVariableError(KaleidoCodegenError):
    """Reference to a name that is not a parameter of the current function."""

    def __init__(
        self,
        name: str,
        location: Optional[SourceLocation] = None,
        in_scope: Optional[list[str]] = None,
    ):
        self.name = name
        self.in_scope = in_scope or []

        hint = None
        if self.in_scope:
            names = ", ".join(f"'{n}'" for n in self.in_scope)
            hint = f"parameters in scope: {names}"

        super().__init__(
            f"unknown variable name '{name}'",
            location=location,
            hint=hint,
        )


class UnknownFunctionError(KaleidoCodegenError):
    """
    Call to a function that is neither defined nor declared extern.

    Similar names from the module are offered as a hint to catch typos.
    """

    def __init__(
        self,
        name: str,
        location: Optional[SourceLocation] = None,
        similar_names: Optional[list[str]] = None,
    ):
        self.name = name
        self.similar_names = similar_names or []

        hint = None
        if self.similar_names:
            suggestions = ", ".join(f"'{s}'" for s in self.similar_names[:3])
            hint = f"did you mean {suggestions}?"

        super().__init__(
            f"unknown function referenced '{name}'",
            location=location,
            hint=hint,
        )


class ArgumentCountError(KaleidoCodegenError):
    """Function called with a different number of arguments than declared."""

    def __init__(
        self,
        function_name: str,
        expected: int,
        actual: int,
        location: Optional[SourceLocation] = None,
    ):
        self.function_name = function_name
        self.expected = expected
        self.actual = actual

        word = "argument" if expected == 1 else "arguments"
        super().__init__(
            f"incorrect argument count: '{function_name}' expects {expected} {word}, got {actual}",
            location=location,
        )


class InvalidOperatorError(KaleidoCodegenError):
    """
    Binary operator with no IR lowering.

    The parser accepts any operator registered in the precedence table,
    so a newly registered operator reaches the code generator before it
    knows how to emit it.
    """

    def __init__(
        self,
        operator: str,
        location: Optional[SourceLocation] = None,
    ):
        self.operator = operator
        super().__init__(
            f"invalid binary operator '{operator}'",
            location=location,
        )


class FunctionRedefinitionError(KaleidoCodegenError):
    """
    Function already has a body.

    Redeclaration is allowed only from extern to definition, never from
    one definition to another.
    """

    def __init__(
        self,
        name: str,
        location: Optional[SourceLocation] = None,
    ):
        self.name = name
        super().__init__(
            f"function cannot be redefined: '{name}'",
            location=location,
            hint="only an extern declaration may be followed by a definition",
        )


class PrototypeMismatchError(KaleidoCodegenError):
    """Function redeclared with a different number of parameters."""

    def __init__(
        self,
        name: str,
        declared: int,
        redeclared: int,
        location: Optional[SourceLocation] = None,
    ):
        self.name = name
        self.declared = declared
        self.redeclared = redeclared
        super().__init__(
            f"redeclaration of '{name}' with {redeclared} parameters "
            f"(previously declared with {declared})",
            location=location,
        )


class DuplicateParameterError(KaleidoCodegenError):
    """Same name used for two parameters of one prototype."""

    def __init__(
        self,
        function_name: str,
        parameter: str,
        location: Optional[SourceLocation] = None,
    ):
        self.function_name = function_name
        self.parameter = parameter
        super().__init__(
            f"duplicate parameter name '{parameter}' in prototype of '{function_name}'",
            location=location,
        )


class VerificationError(KaleidoCodegenError):
    """Generated function failed the LLVM structural verifier."""
    pass
