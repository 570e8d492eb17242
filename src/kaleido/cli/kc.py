"""
kc - Kaleido Compiler Command-Line Interface
============================================

This module implements the command-line interface for the Kaleido
compiler. It compiles a source file, or standard input, to LLVM IR.

Usage Examples
--------------
Print the IR of a file:
    $ kc fib.ks

With output file:
    $ kc fib.ks -o fib.ll

Dump the AST instead of generating IR:
    $ kc --ast fib.ks

Interactive session (stdin is a terminal):
    $ kc
    ready> def add(a b) a+b
    define double @"add"(double %"a", double %"b")
    ...

Verbose mode:
    $ kc -v fib.ks
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from kaleido import __version__
from kaleido.frontend import KaleidoCompiler, CompilerOptions, TopLevelResult
from kaleido.frontend.ast import ASTPrinter
from kaleido.cli.errors import ExitCode, handle_cli_exception

logger = logging.getLogger(__name__)

PROMPT = "ready> "


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose else "%(message)s",
    )


def _echo_item(item: TopLevelResult, show_ir: bool = True) -> None:
    """Show the outcome of one construct during an interactive session."""
    if item.error is not None:
        click.echo(str(item.error), err=True)
    elif show_ir:
        click.echo(item.ir, err=True)


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    required=False,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the module IR to this file (default: stdout)",
)
@click.option(
    "--ast",
    is_flag=True,
    help="Print the AST of each construct instead of IR",
)
@click.option(
    "--no-verify",
    is_flag=True,
    help="Skip LLVM verification of generated functions",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output (debug logging)",
)
@click.version_option(version=__version__, prog_name="kc")
def main(
    input_file: Optional[Path],
    output: Optional[Path],
    ast: bool,
    no_verify: bool,
    verbose: bool,
) -> None:
    """
    Compile Kaleido source code to LLVM IR.

    INPUT_FILE is the Kaleido source file (.ks) to compile. Without it,
    source is read from standard input; on a terminal each construct is
    compiled and echoed as soon as it is entered.

    \b
    Examples:
        kc fib.ks                # Print IR to stdout
        kc fib.ks -o fib.ll      # Write IR to a file
        kc --ast fib.ks          # Print the AST
        kc                       # Interactive session

    \b
    Language:
        def name(a b) expr       # Function definition
        extern name(a b)         # External declaration
        expr                     # Top-level expression
        # comment                # Comment to end of line
    """
    setup_logging(verbose)

    options = CompilerOptions(verify=not no_verify)

    try:
        compiler = KaleidoCompiler(options)

        if input_file is None:
            stdin = click.get_text_stream("stdin")
            interactive = stdin.isatty()
            logger.debug(f"Reading from stdin (interactive={interactive})")

            if interactive:
                result = compiler.compile_source(
                    stdin,
                    "<stdin>",
                    prompt=lambda: click.echo(PROMPT, err=True, nl=False),
                    on_item=lambda item: _echo_item(item, show_ir=not ast),
                )
            else:
                result = compiler.compile_source(stdin.read(), "<stdin>")
        else:
            interactive = False
            logger.debug(f"Compiling {input_file}")
            result = compiler.compile_file(str(input_file))

        # Interactive sessions have shown each error already
        if result.errors and not interactive:
            click.echo(compiler.diagnostics.report(), err=True)
            sys.exit(ExitCode.BUILD_ERROR)

        # AST dump mode
        if ast:
            printer = ASTPrinter()
            for decl in result.declarations:
                click.echo(printer.print(decl))
            return

        if output is not None:
            output.write_text(result.ir, encoding="utf-8")
            if verbose:
                click.echo(f"Wrote {result.function_count} functions to {output}")
        else:
            click.echo(result.ir)

    except Exception as e:
        handle_cli_exception(e, verbose=verbose)


if __name__ == "__main__":
    main()
