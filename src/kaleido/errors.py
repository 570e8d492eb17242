"""
Kaleido Error Hierarchy
=======================

This module defines the root of the exception hierarchy for the Kaleido
compiler. All exceptions inherit from KaleidoError, allowing callers to
catch every compiler-related error with a single except clause.

Exception Hierarchy
-------------------
KaleidoError (base)
├── KaleidoSyntaxError - lexer and parser errors (see frontend.errors)
├── KaleidoCodegenError - IR generation errors (see frontend.errors)
└── KaleidoCompilationError - aggregate report of several errors

Design Philosophy
-----------------
Each exception captures source location information (filename, line,
column) when applicable, so messages point the user at the exact place
in the input that caused the problem.

Error messages follow this format:
    filename:line:column: error: description
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for error reporting.

    Tokens, AST nodes and errors all carry one of these. The frozen
    design ensures locations cannot be accidentally modified.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Base Exception Class
# =============================================================================

class KaleidoError(Exception):
    """
    Base exception for all Kaleido errors.

    Provides the common message formatting: location prefix, the
    message itself and an optional hint line.

        try:
            compiler.compile_file("program.ks")
        except KaleidoError as e:
            print(f"Error: {e}")

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location and hint.

        Example output:
            fib.ks:3:9: error: unknown variable name 'y'
            hint: parameters in scope: 'x'
        """
        parts = []

        # Location prefix
        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


class KaleidoCompilationError(KaleidoError):
    """
    Aggregate compilation error containing multiple errors.

    The message is an already formatted report from DiagnosticCollector
    and is passed through untouched.
    """

    def _format_message(self) -> str:
        """Return message as-is - it's already a formatted aggregate report."""
        return self.message


# =============================================================================
# Error Collection for Multiple Error Reporting
# =============================================================================

class DiagnosticCollector:
    """
    Collects multiple errors for batch reporting.

    The driver uses this to keep going after a bad top-level construct,
    collecting every error before reporting them together.

    Example:
        collector = DiagnosticCollector(max_errors=100)

        for construct in constructs:
            try:
                handle(construct)
            except KaleidoError as e:
                collector.add(e)
                if collector.should_stop():
                    break

        if collector.has_errors():
            print(collector.report())
    """

    def __init__(self, max_errors: int = 100):
        """
        Initialize the collector.

        Args:
            max_errors: Number of errors after which should_stop() is True
        """
        self.errors: list[KaleidoError] = []
        self.max_errors = max_errors

    def add(self, error: KaleidoError) -> None:
        """Add an error to the collection."""
        self.errors.append(error)

    def has_errors(self) -> bool:
        """Return True if any errors have been collected."""
        return len(self.errors) > 0

    def should_stop(self) -> bool:
        """Return True if max_errors has been reached."""
        return len(self.errors) >= self.max_errors

    def error_count(self) -> int:
        """Return the number of collected errors."""
        return len(self.errors)

    def report(self) -> str:
        """
        Format all errors for display.

        Returns:
            Formatted string with every error and a summary line
        """
        lines = []

        for error in self.errors:
            lines.append(str(error))
            lines.append("")  # Blank line between errors

        error_word = "error" if len(self.errors) == 1 else "errors"
        lines.append(f"{len(self.errors)} {error_word}")

        return "\n".join(lines)

    def clear(self) -> None:
        """Clear all collected errors."""
        self.errors.clear()

    def raise_if_errors(self) -> None:
        """Raise a KaleidoCompilationError if any errors were collected."""
        if self.has_errors():
            raise KaleidoCompilationError(self.report())
