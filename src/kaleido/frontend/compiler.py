"""
Kaleido Compiler Main Module
============================

This module provides the driver for the Kaleido front end. It pulls
top-level constructs from the parser one at a time and hands each one
to the code generator as soon as it is complete:

    Source → Lex → Parse (one construct) → Generate → IR function

Usage
-----
Command line:
    $ kc fib.ks -o fib.ll

Programmatic:
    >>> from kaleido.frontend import compile_kaleido
    >>> ir_text = compile_kaleido('def add(a b) a+b')

Top-Level Loop
--------------
| Current token | Action                                   |
|---------------|------------------------------------------|
| EOF           | stop                                     |
| ';'           | skip                                     |
| def           | parse a definition, generate it          |
| extern        | parse an extern, declare it              |
| anything else | parse an expression into an anonymous fn |

Error Handling
--------------
A construct that fails does not stop compilation. After a syntax error
exactly one token is skipped and parsing resumes; after a generation
error the construct is discarded and the module keeps every function
generated before it. Errors are collected and returned in the
CompilerResult, not raised.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, TextIO, Union

from llvmlite import ir

from kaleido.errors import KaleidoError, DiagnosticCollector
from kaleido.frontend.lexer import Lexer, TokenType
from kaleido.frontend.parser import Parser
from kaleido.frontend.precedence import OperatorTable, default_operator_table
from kaleido.frontend.codegen import CodeGenerator
from kaleido.frontend.ast import FunctionDecl
from kaleido.frontend.errors import KaleidoSyntaxError, KaleidoCodegenError

logger = logging.getLogger(__name__)


# Kinds of top-level construct
DEFINITION = "definition"
EXTERN = "extern"
EXPRESSION = "expression"


@dataclass
class CompilerOptions:
    """
    Compiler configuration options.

    Attributes:
        module_name: Name given to the generated LLVM module
        verify: Run the LLVM verifier after each function definition
        max_errors: Stop compiling once this many errors were recorded
        operators: Extra or overriding binary operator precedences,
                   applied on top of the default table
    """
    module_name: str = "kaleido"
    verify: bool = True
    max_errors: int = 100
    operators: Optional[dict[str, int]] = None

    def operator_table(self) -> OperatorTable:
        """Build the precedence table for one parser."""
        table = default_operator_table()
        for operator, precedence in (self.operators or {}).items():
            table.register(operator, precedence)
        return table


@dataclass
class TopLevelResult:
    """
    Outcome of one top-level construct.

    Attributes:
        kind: DEFINITION, EXTERN or EXPRESSION
        node: The parsed declaration (None if parsing failed)
        ir: Text of the generated IR function (None on failure)
        error: The error that discarded the construct (None on success)
    """
    kind: str
    node: Optional[FunctionDecl] = None
    ir: Optional[str] = None
    error: Optional[KaleidoError] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class CompilerResult:
    """
    Result of a compilation.

    Attributes:
        filename: Source filename
        items: One TopLevelResult per construct, in source order
        module: The LLVM module holding every generated function
        errors: Every error recorded, in source order
    """
    filename: str = ""
    items: list[TopLevelResult] = field(default_factory=list)
    module: Optional[ir.Module] = None
    errors: list[KaleidoError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True if no construct failed."""
        return not self.errors

    @property
    def ir(self) -> str:
        """Text of the whole LLVM module."""
        return str(self.module) if self.module is not None else ""

    @property
    def function_count(self) -> int:
        """Number of functions (declared or defined) in the module."""
        if self.module is None:
            return 0
        return len(self.module.functions)

    @property
    def declarations(self) -> list[FunctionDecl]:
        """Every successfully parsed construct, in source order."""
        return [item.node for item in self.items if item.node is not None]


class KaleidoCompiler:
    """
    Kaleido compiler driver.

    Each call to compile_source() starts a fresh module, so one compiler
    instance can compile several independent inputs.

    Example:
        compiler = KaleidoCompiler()
        result = compiler.compile_file("fib.ks")
        print(result.ir)

    Attributes:
        options: Compiler configuration options
    """

    def __init__(self, options: Optional[CompilerOptions] = None):
        """
        Initialize the compiler.

        Args:
            options: Compiler configuration (uses defaults if None)
        """
        self.options = options or CompilerOptions()
        self._errors = DiagnosticCollector(max_errors=self.options.max_errors)

    @property
    def diagnostics(self) -> DiagnosticCollector:
        """Errors recorded by the last compilation."""
        return self._errors

    def compile_source(
        self,
        source: Union[str, TextIO],
        filename: str = "<input>",
        prompt: Optional[Callable[[], None]] = None,
        on_item: Optional[Callable[[TopLevelResult], None]] = None,
    ) -> CompilerResult:
        """
        Compile Kaleido source to an LLVM module.

        Args:
            source: Source text, or a text stream read on demand
            filename: Source filename for error messages
            prompt: Called before each top-level construct is read
            on_item: Called with each TopLevelResult as soon as it exists

        Returns:
            CompilerResult with the module, per-construct results and
            the recorded errors
        """
        self._errors.clear()
        generator = CodeGenerator(
            module_name=self.options.module_name,
            verify=self.options.verify,
        )
        result = CompilerResult(filename=filename, module=generator.module)

        if prompt:
            prompt()
        parser = Parser(Lexer(source, filename), self.options.operator_table())

        while True:
            if prompt:
                prompt()

            token = parser.current
            if token.type == TokenType.EOF:
                break

            # Ignore top-level semicolons
            if token.is_char(";"):
                parser.next_token()
                continue

            item = self._handle_top_level(parser, generator)
            result.items.append(item)
            if on_item:
                on_item(item)

            if item.error is not None:
                self._errors.add(item.error)
                if self._errors.should_stop():
                    logger.warning(
                        f"{filename}: stopping after {self._errors.error_count()} errors"
                    )
                    break

        result.errors = list(self._errors.errors)
        logger.info(
            f"Compiled {filename}: {len(result.items)} constructs, "
            f"{result.function_count} functions, {len(result.errors)} errors"
        )
        return result

    def compile_file(self, filepath: str) -> CompilerResult:
        """
        Compile a Kaleido source file.

        Raises:
            FileNotFoundError: If source file not found
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Source file not found: {filepath}")

        source = path.read_text(encoding='utf-8')
        return self.compile_source(source, str(filepath))

    def _handle_top_level(self, parser: Parser, generator: CodeGenerator) -> TopLevelResult:
        """Parse and generate the construct starting at the current token."""
        token = parser.current
        if token.type == TokenType.DEF:
            kind, parse = DEFINITION, parser.parse_definition
        elif token.type == TokenType.EXTERN:
            kind, parse = EXTERN, parser.parse_extern
        else:
            kind, parse = EXPRESSION, parser.parse_top_level_expr

        try:
            decl = parse()
        except KaleidoSyntaxError as e:
            logger.info(f"Syntax error, skipping token {parser.current!r}: {e.message}")
            # Skip token for error recovery
            parser.next_token()
            return TopLevelResult(kind, error=e)

        logger.debug(f"Parsed {kind} '{decl.name or '<anonymous>'}'")

        try:
            function = generator.generate_function(decl)
        except KaleidoCodegenError as e:
            logger.info(f"Discarded {kind}: {e.message}")
            return TopLevelResult(kind, node=decl, error=e)

        return TopLevelResult(kind, node=decl, ir=str(function))


# =============================================================================
# Convenience Functions
# =============================================================================

def compile_kaleido(
    source: str,
    filename: str = "<input>",
    operators: Optional[dict[str, int]] = None,
) -> str:
    """
    Compile Kaleido source code to LLVM IR text.

    Args:
        source: Kaleido source code
        filename: Source filename for error messages
        operators: Extra binary operator precedences

    Returns:
        The module's LLVM IR

    Raises:
        KaleidoCompilationError: If any construct failed

    Example:
        >>> ir_text = compile_kaleido('''
        ... extern sin(x)
        ... def f(x) sin(x) * 2
        ... ''')
    """
    compiler = KaleidoCompiler(CompilerOptions(operators=operators))
    result = compiler.compile_source(source, filename)
    compiler.diagnostics.raise_if_errors()
    return result.ir


def compile_file(
    filepath: str,
    output_path: Optional[str] = None,
) -> str:
    """
    Compile a Kaleido source file to LLVM IR text.

    Args:
        filepath: Path to Kaleido source file
        output_path: Optional path to write the IR to

    Returns:
        The module's LLVM IR

    Raises:
        KaleidoCompilationError: If any construct failed
        FileNotFoundError: If source file not found
    """
    compiler = KaleidoCompiler()
    result = compiler.compile_file(filepath)
    compiler.diagnostics.raise_if_errors()

    if output_path:
        Path(output_path).write_text(result.ir, encoding='utf-8')

    return result.ir
