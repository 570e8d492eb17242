"""
LLVM IR Code Generator for Kaleido
==================================

This module lowers the Kaleido AST into LLVM IR using llvmlite. Every
value is a double, so every function has the type
double (double, double, ...) and external linkage.

Code Generation Strategy
------------------------
The generator walks each expression depth-first and emits one IR
instruction per AST node:

| Node            | IR                                         |
|-----------------|--------------------------------------------|
| NumberLiteral   | double constant                            |
| VariableRef     | the function argument bound to the name    |
| BinaryOp '+'    | fadd                                       |
| BinaryOp '-'    | fsub                                       |
| BinaryOp '*'    | fmul                                       |
| BinaryOp '<'    | fcmp ult, then uitofp i1 -> double         |
| Call            | call (after arity check)                   |

Symbol Table
------------
There is no nested scoping. `named_values` maps the parameter names of
the function being generated to its IR arguments; it is reset at the
start of every function body.

Function Lifecycle
------------------
    Declared --(extern)--> done
    Declared --> Generating --> Finalized (body emitted and verified)
                           \--> Failed (function removed from module)

An extern declaration may later receive a body. A function that
already has a body can never be redefined. When the body of a freshly
declared function fails to generate, the function is removed from the
module; when the body of a previously extern-declared function fails,
the function goes back to being a plain declaration, so earlier callers
still refer to a declared function.

Usage
-----
>>> from kaleido.frontend.parser import parse_source
>>> from kaleido.frontend.codegen import CodeGenerator
>>> gen = CodeGenerator()
>>> for decl in parse_source('def add(a b) a+b'):
...     gen.generate_function(decl)
>>> print(gen.module)
"""

import logging
from typing import Optional

from llvmlite import ir
import llvmlite.binding as llvm

from kaleido.frontend.ast import (
    Expression,
    NumberLiteral,
    VariableRef,
    BinaryOp,
    Call,
    Prototype,
    FunctionDecl,
)
from kaleido.frontend.errors import (
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

logger = logging.getLogger(__name__)

# The one and only value type
DOUBLE = ir.DoubleType()

# IR name base for the functions wrapping top-level expressions
ANONYMOUS_FUNCTION_NAME = "__anon_expr"


class CodeGenerator:
    """
    Generates LLVM IR from Kaleido AST nodes.

    One generator owns one llvmlite module, which doubles as the
    function table: every extern and definition generated so far can be
    looked up by name and called from later functions.

    Attributes:
        module: The llvmlite IR module receiving generated functions
        builder: IR builder positioned in the function being generated
        named_values: Parameter name -> IR argument for that function
    """

    def __init__(
        self,
        module: Optional[ir.Module] = None,
        module_name: str = "kaleido",
        verify: bool = True,
    ):
        """
        Initialize the code generator.

        Args:
            module: Existing module to add functions to (a new one if None)
            module_name: Name of the new module
            verify: Run the LLVM verifier after each function definition
        """
        self.module = module if module is not None else ir.Module(name=module_name)
        self.builder: Optional[ir.IRBuilder] = None
        self.named_values: dict[str, ir.Argument] = {}
        self.verify_functions = verify

    # =========================================================================
    # Function Table
    # =========================================================================

    def get_function(self, name: str) -> Optional[ir.Function]:
        """Look up a declared or defined function by name."""
        value = self.module.globals.get(name)
        if isinstance(value, ir.Function):
            return value
        return None

    def function_names(self) -> list[str]:
        """Names of all functions in the module, in declaration order."""
        return [
            name for name, value in self.module.globals.items()
            if isinstance(value, ir.Function)
        ]

    def remove_function(self, function: ir.Function) -> None:
        """
        Remove a function from the module and release its name.

        llvmlite has no public API for dropping a global.
        """
        del self.module.globals[function.name]
        self.module.scope._useset.discard(function.name)
        logger.debug(f"Removed function '{function.name}' from module")

    def verify(self) -> None:
        """
        Run the LLVM verifier over the whole module.

        Raises:
            VerificationError: If the module is not well formed
        """
        try:
            llvm.parse_assembly(str(self.module)).verify()
        except RuntimeError as e:
            raise VerificationError(f"generated IR failed verification: {e}") from e

    # =========================================================================
    # Expression Code Generation
    # =========================================================================

    def generate_expression(self, expr: Expression) -> ir.Value:
        """
        Generate IR for an expression.

        Returns:
            The IR value holding the expression's result

        Raises:
            KaleidoCodegenError: If the expression cannot be lowered
        """
        if isinstance(expr, NumberLiteral):
            return ir.Constant(DOUBLE, expr.value)
        if isinstance(expr, VariableRef):
            return self._generate_variable(expr)
        if isinstance(expr, BinaryOp):
            return self._generate_binary(expr)
        if isinstance(expr, Call):
            return self._generate_call(expr)
        raise TypeError(f"not an expression node: {type(expr).__name__}")

    def _generate_variable(self, expr: VariableRef) -> ir.Value:
        """Look the name up among the current function's parameters."""
        value = self.named_values.get(expr.name)
        if value is None:
            raise UnknownVariableError(
                expr.name,
                location=expr.location,
                in_scope=list(self.named_values),
            )
        return value

    def _generate_binary(self, expr: BinaryOp) -> ir.Value:
        """Generate both operands, then the operator's instruction."""
        lhs = self.generate_expression(expr.left)
        rhs = self.generate_expression(expr.right)

        op = expr.operator
        if op == "+":
            return self.builder.fadd(lhs, rhs, name="addtmp")
        if op == "-":
            return self.builder.fsub(lhs, rhs, name="subtmp")
        if op == "*":
            return self.builder.fmul(lhs, rhs, name="multmp")
        if op == "<":
            # i1 result, converted back to 0.0 or 1.0
            cmp = self.builder.fcmp_unordered("<", lhs, rhs, name="cmptmp")
            return self.builder.uitofp(cmp, DOUBLE, name="booltmp")

        raise InvalidOperatorError(op, location=expr.location)

    def _generate_call(self, expr: Call) -> ir.Value:
        """
        Generate a call to a function already in the module.

        Arguments are generated left to right; the first failing argument
        aborts the call.
        """
        callee = self.get_function(expr.callee)
        if callee is None:
            raise UnknownFunctionError(
                expr.callee,
                location=expr.location,
                similar_names=self._find_similar_functions(expr.callee),
            )

        if len(callee.args) != len(expr.arguments):
            raise ArgumentCountError(
                expr.callee,
                expected=len(callee.args),
                actual=len(expr.arguments),
                location=expr.location,
            )

        args = [self.generate_expression(arg) for arg in expr.arguments]
        return self.builder.call(callee, args, name="calltmp")

    def _find_similar_functions(self, name: str) -> list[str]:
        """
        Find function names close to a misspelt one, for error hints.

        Uses a simple edit distance heuristic.
        """
        name_lower = name.lower()
        similar = []

        for candidate in self.function_names():
            if candidate.startswith(ANONYMOUS_FUNCTION_NAME):
                continue
            candidate_lower = candidate.lower()
            if (
                candidate_lower == name_lower or
                abs(len(candidate) - len(name)) <= 1 and
                _edit_distance(name_lower, candidate_lower) <= 2
            ):
                similar.append(candidate)

        return similar[:3]

    # =========================================================================
    # Prototypes and Functions
    # =========================================================================

    def generate_prototype(self, proto: Prototype) -> ir.Function:
        """
        Declare the function described by a prototype.

        A function already declared under the same name is reused if its
        parameter count matches.

        Returns:
            The declared ir.Function

        Raises:
            DuplicateParameterError: If a parameter name is repeated
            PrototypeMismatchError: If an existing declaration has a
                                    different parameter count
        """
        seen = set()
        for param in proto.params:
            if param in seen:
                raise DuplicateParameterError(
                    proto.name or ANONYMOUS_FUNCTION_NAME,
                    param,
                    location=proto.location,
                )
            seen.add(param)

        if proto.is_anonymous:
            name = self.module.get_unique_name(ANONYMOUS_FUNCTION_NAME)
        else:
            name = proto.name
            existing = self.get_function(name)
            if existing is not None:
                if len(existing.args) != len(proto.params):
                    raise PrototypeMismatchError(
                        name,
                        declared=len(existing.args),
                        redeclared=len(proto.params),
                        location=proto.location,
                    )
                return existing

        func_type = ir.FunctionType(DOUBLE, [DOUBLE] * len(proto.params))
        function = ir.Function(self.module, func_type, name=name)
        for arg, param in zip(function.args, proto.params):
            arg.name = param

        logger.debug(f"Declared function '{name}' ({len(proto.params)} parameters)")
        return function

    def generate_function(self, decl: FunctionDecl) -> ir.Function:
        """
        Generate IR for an extern declaration or a function definition.

        Returns:
            The declared or defined ir.Function

        Raises:
            KaleidoCodegenError: If generation fails; the module is left
                                 as it was before the call
        """
        proto = decl.prototype

        if decl.is_extern:
            return self.generate_prototype(proto)

        existing = None if proto.is_anonymous else self.get_function(proto.name)
        if existing is not None and not existing.is_declaration:
            raise FunctionRedefinitionError(proto.name, location=proto.location)

        function = self.generate_prototype(proto)

        entry = function.append_basic_block(name="entry")
        self.builder = ir.IRBuilder(entry)

        # Bind the definition's own parameter names, even when the
        # function was declared by an extern with other names
        self.named_values = dict(zip(proto.params, function.args))

        try:
            return_value = self.generate_expression(decl.body)
            self.builder.ret(return_value)
            if self.verify_functions:
                self.verify()
        except KaleidoCodegenError:
            if existing is not None:
                function.blocks.clear()
                logger.debug(f"Reverted '{function.name}' to a declaration")
            else:
                self.remove_function(function)
            raise

        logger.debug(f"Generated function '{function.name}'")
        return function


def _edit_distance(s1: str, s2: str) -> int:
    """Calculate Levenshtein edit distance between two strings."""
    if len(s1) < len(s2):
        s1, s2 = s2, s1

    distances = range(len(s2) + 1)
    for i, c1 in enumerate(s1):
        new_distances = [i + 1]
        for j, c2 in enumerate(s2):
            if c1 == c2:
                new_distances.append(distances[j])
            else:
                new_distances.append(1 + min((
                    distances[j],
                    distances[j + 1],
                    new_distances[-1],
                )))
        distances = new_distances

    return distances[-1]
