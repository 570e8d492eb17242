"""
Kaleido Abstract Syntax Tree (AST) Definitions
==============================================

This module defines the AST node types produced by the parser and
consumed by the code generator.

Node Hierarchy
--------------
Expression (closed union)
├── NumberLiteral - numeric constant
├── VariableRef - reference to a parameter
├── BinaryOp - binary operator application
└── Call - function call
Prototype - function name and parameter names
FunctionDecl - prototype plus optional body (None for extern)

Design Notes
------------
- All nodes are dataclasses; each expression owns its children
- Each node stores its source location for error reporting, but the
  location does not take part in equality, so two parses of the same
  text compare equal
- format_expression()/format_function() print nodes back as source
  text that reparses to an equal tree
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Union

from kaleido.errors import SourceLocation


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class NumberLiteral:
    """
    Numeric literal.

    Attributes:
        value: The literal value (all numbers are doubles)
    """
    value: float
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)


@dataclass
class VariableRef:
    """
    Reference to a variable (a function parameter).

    Attributes:
        name: Variable name
    """
    name: str
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)


@dataclass
class BinaryOp:
    """
    Binary operation (left op right).

    Attributes:
        operator: The operator character, e.g. '+'
        left: Left operand expression
        right: Right operand expression
    """
    operator: str
    left: "Expression"
    right: "Expression"
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)


@dataclass
class Call:
    """
    Function call.

    Attributes:
        callee: Name of the called function
        arguments: Argument expressions, in source order
    """
    callee: str
    arguments: list["Expression"] = field(default_factory=list)
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)


Expression = Union[NumberLiteral, VariableRef, BinaryOp, Call]

EXPRESSION_TYPES = (NumberLiteral, VariableRef, BinaryOp, Call)


# =============================================================================
# Declaration Nodes
# =============================================================================

@dataclass
class Prototype:
    """
    Function signature: name and parameter names.

    The empty name is reserved for the anonymous function wrapping a
    top-level expression.

    Attributes:
        name: Function name
        params: Parameter names, in order
    """
    name: str
    params: list[str] = field(default_factory=list)
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    @property
    def is_anonymous(self) -> bool:
        """True for the prototype of a top-level expression."""
        return self.name == ""


@dataclass
class FunctionDecl:
    """
    Function definition or extern declaration.

    Attributes:
        prototype: The function signature
        body: Body expression, None for extern declarations
    """
    prototype: Prototype
    body: Optional[Expression] = None

    @property
    def name(self) -> str:
        return self.prototype.name

    @property
    def is_extern(self) -> bool:
        """True if this declaration has no body."""
        return self.body is None

    @property
    def location(self) -> Optional[SourceLocation]:
        return self.prototype.location


# =============================================================================
# Source Printer
# =============================================================================

def _format_number(value: float) -> str:
    """Print a number in a form the lexer reads back unchanged (no exponent)."""
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_expression(expr: Expression) -> str:
    """
    Convert an expression back to source text.

    Binary operations are fully parenthesized so the text reparses to
    the same tree whatever the precedence table says.
    """
    if isinstance(expr, NumberLiteral):
        return _format_number(expr.value)
    if isinstance(expr, VariableRef):
        return expr.name
    if isinstance(expr, BinaryOp):
        return f"({format_expression(expr.left)} {expr.operator} {format_expression(expr.right)})"
    if isinstance(expr, Call):
        args = ", ".join(format_expression(a) for a in expr.arguments)
        return f"{expr.callee}({args})"
    raise TypeError(f"not an expression node: {type(expr).__name__}")


def format_prototype(proto: Prototype) -> str:
    """Convert a prototype to source text ('name(a b c)')."""
    return f"{proto.name}({' '.join(proto.params)})"


def format_function(decl: FunctionDecl) -> str:
    """
    Convert a function declaration to source text.

    Extern declarations print as 'extern name(...)', definitions as
    'def name(...) body' and anonymous top-level functions as their
    bare body expression.
    """
    if decl.is_extern:
        return f"extern {format_prototype(decl.prototype)}"
    if decl.prototype.is_anonymous:
        return format_expression(decl.body)
    return f"def {format_prototype(decl.prototype)} {format_expression(decl.body)}"


# =============================================================================
# AST Pretty Printer
# =============================================================================

class ASTPrinter:
    """
    Pretty printer for AST debugging.

    Produces an indented tree view of a declaration.

    Usage:
        printer = ASTPrinter()
        output = printer.print(decl)
        print(output)
    """

    def __init__(self):
        self.output: list[str] = []
        self.indent_level = 0

    def print(self, node: Union[FunctionDecl, Expression]) -> str:
        """Print the node and return the tree as a string."""
        self.output = []
        self.indent_level = 0
        if isinstance(node, FunctionDecl):
            self._print_function(node)
        else:
            self._print_expression(node)
        return "\n".join(self.output)

    def _emit(self, text: str) -> None:
        """Emit a line with current indentation."""
        indent = "  " * self.indent_level
        self.output.append(f"{indent}{text}")

    def _print_function(self, decl: FunctionDecl) -> None:
        if decl.is_extern:
            self._emit(f"Extern: {format_prototype(decl.prototype)}")
            return
        if decl.prototype.is_anonymous:
            self._emit("TopLevelExpr")
        else:
            self._emit(f"Function: {format_prototype(decl.prototype)}")
        self.indent_level += 1
        self._print_expression(decl.body)
        self.indent_level -= 1

    def _print_expression(self, expr: Expression) -> None:
        if isinstance(expr, NumberLiteral):
            self._emit(f"Number: {_format_number(expr.value)}")
        elif isinstance(expr, VariableRef):
            self._emit(f"Variable: {expr.name}")
        elif isinstance(expr, BinaryOp):
            self._emit(f"BinaryOp: {expr.operator}")
            self.indent_level += 1
            self._print_expression(expr.left)
            self._print_expression(expr.right)
            self.indent_level -= 1
        elif isinstance(expr, Call):
            self._emit(f"Call: {expr.callee}")
            self.indent_level += 1
            for arg in expr.arguments:
                self._print_expression(arg)
            self.indent_level -= 1
        else:
            raise TypeError(f"not an expression node: {type(expr).__name__}")
