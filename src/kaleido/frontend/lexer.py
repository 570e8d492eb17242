"""
Kaleido Lexer (Tokenizer)
=========================

This module implements the scanner for the Kaleido language. It pulls
characters one at a time from a string or a text stream and produces
tokens on demand, so it works equally well on a file and on an
interactive terminal.

Token Categories
----------------
- Keywords: def, extern
- Identifiers: variable and function names (letter, then letters/digits)
- Numbers: decimal floating point (123, 1.5, 3.)
- Characters: any other single character (operators and punctuation)
- EOF: end of input, returned repeatedly once reached

Comments
--------
- Line comments: # comment

Number Format
-------------
Digits, optionally followed by one '.' and more digits. A second '.'
is not part of the number: "1.2.3" scans as NUMBER 1.2, CHAR '.',
NUMBER 3.

Example Usage
-------------
>>> from kaleido.frontend.lexer import Lexer
>>> lexer = Lexer('def add(a b) a+b', "test.ks")
>>> for token in lexer.tokenize():
...     print(token)
Token(DEF, 'def', 1:1)
Token(IDENTIFIER, 'add', 1:5)
Token(CHAR, '(', 1:8)
Token(IDENTIFIER, 'a', 1:9)
Token(IDENTIFIER, 'b', 1:11)
Token(CHAR, ')', 1:12)
Token(IDENTIFIER, 'a', 1:14)
Token(CHAR, '+', 1:15)
Token(IDENTIFIER, 'b', 1:16)
Token(EOF, 1:17)
"""

import io
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional, TextIO, Union

from kaleido.errors import SourceLocation


# =============================================================================
# Token Type Enumeration
# =============================================================================

class TokenType(Enum):
    """
    Token types for the Kaleido language.

    Operators and punctuation have no type of their own: they are CHAR
    tokens whose value is the character. This keeps the precedence table
    open to new operators without touching the lexer.
    """

    EOF = auto()            # End of input

    # === Commands ===
    DEF = auto()            # def
    EXTERN = auto()         # extern

    # === Primary ===
    IDENTIFIER = auto()     # Variable/function names
    NUMBER = auto()         # Floating point literals

    CHAR = auto()           # Any other single character


# Map keyword strings to their token types
KEYWORDS: dict[str, TokenType] = {
    "def": TokenType.DEF,
    "extern": TokenType.EXTERN,
}


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    Represents a single token from Kaleido source.

    Attributes:
        type: The TokenType classification
        value: Identifier/keyword text, float for numbers, the character
               for CHAR tokens, None for EOF
        line: Line number in source (1-indexed)
        column: Column number in source (1-indexed)
        filename: Name of the source file
    """
    type: TokenType
    value: Union[str, float, None]
    line: int
    column: int
    filename: str = "<input>"

    def __repr__(self) -> str:
        """Format token for debugging output."""
        if self.value is not None:
            if isinstance(self.value, float):
                return f"Token({self.type.name}, {self.value}, {self.line}:{self.column})"
            return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"
        return f"Token({self.type.name}, {self.line}:{self.column})"

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(self.filename, self.line, self.column)

    def is_char(self, char: str) -> bool:
        """Return True if this is the CHAR token for the given character."""
        return self.type == TokenType.CHAR and self.value == char

    def describe(self) -> str:
        """Short human-readable form used in error messages."""
        if self.type == TokenType.EOF:
            return "end of input"
        if self.type == TokenType.NUMBER:
            return f"{self.value:g}"
        return str(self.value)


# =============================================================================
# Lexer Implementation
# =============================================================================

def _is_alpha(char: str) -> bool:
    return char.isascii() and char.isalpha()


def _is_alnum(char: str) -> bool:
    return char.isascii() and char.isalnum()


def _is_digit(char: str) -> bool:
    return len(char) == 1 and char in "0123456789"


class Lexer:
    """
    Tokenizes Kaleido source, one character at a time.

    The lexer keeps exactly one character of state between calls: the
    character it has already read but not yet classified. It starts as
    a space and is never reset, so a lexer instance represents a single
    scanning session over its input.

    Usage:
        lexer = Lexer(source_text_or_stream, filename)
        token = lexer.next_token()

    Attributes:
        filename: Name of the source (for error reporting)
    """

    def __init__(
        self,
        source: Union[str, TextIO],
        filename: str = "<input>",
    ):
        """
        Initialize the lexer.

        Args:
            source: Source text, or any object with a read(1) method
            filename: Name of the source (for token locations)
        """
        if isinstance(source, str):
            source = io.StringIO(source)
        self._stream = source
        self.filename = filename

        # The character read but not yet classified ('' means end of input)
        self._last_char = " "

        # Position of the next character to be read
        self._line = 1
        self._column = 1

        # Position of _last_char
        self._char_line = 1
        self._char_column = 0

    def tokenize(self) -> Iterator[Token]:
        """
        Generate tokens until end of input.

        Yields:
            Token objects, ending with a single EOF token
        """
        while True:
            token = self.next_token()
            yield token
            if token.type == TokenType.EOF:
                return

    # =========================================================================
    # Character Access
    # =========================================================================

    def _read_char(self) -> str:
        """
        Read the next character from the input into _last_char.

        Returns:
            The character, or '' at end of input
        """
        char = self._stream.read(1)
        self._char_line = self._line
        self._char_column = self._column

        if char == "\n":
            self._line += 1
            self._column = 1
        elif char:
            self._column += 1

        self._last_char = char
        return char

    def _make_token(
        self,
        token_type: TokenType,
        value: Union[str, float, None],
        start_line: int,
        start_column: int,
    ) -> Token:
        return Token(
            type=token_type,
            value=value,
            line=start_line,
            column=start_column,
            filename=self.filename,
        )

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def next_token(self) -> Token:
        """
        Scan and return the next token.

        Returns:
            The next Token; EOF once the input is exhausted (repeatedly)
        """
        # Skip any whitespace
        while self._last_char and self._last_char.isspace():
            self._read_char()

        start_line = self._char_line
        start_column = self._char_column

        # Identifier: [a-zA-Z][a-zA-Z0-9]*
        if _is_alpha(self._last_char):
            return self._scan_identifier(start_line, start_column)

        # Number: [0-9]+ ('.' [0-9]*)?
        if _is_digit(self._last_char):
            return self._scan_number(start_line, start_column)

        # Comment until end of line
        if self._last_char == "#":
            self._skip_comment()
            return self.next_token()

        # Don't consume past the end
        if not self._last_char:
            return self._make_token(TokenType.EOF, None, self._line, self._column)

        # Otherwise, return the character itself
        char = self._last_char
        self._read_char()
        return self._make_token(TokenType.CHAR, char, start_line, start_column)

    def _scan_identifier(self, start_line: int, start_column: int) -> Token:
        """
        Scan an identifier or keyword.

        The literal characters are accumulated; keywords are picked out
        of the result through the KEYWORDS table.
        """
        chars = [self._last_char]
        while _is_alnum(self._read_char()):
            chars.append(self._last_char)

        name = "".join(chars)

        if name in KEYWORDS:
            return self._make_token(KEYWORDS[name], name, start_line, start_column)

        return self._make_token(TokenType.IDENTIFIER, name, start_line, start_column)

    def _scan_number(self, start_line: int, start_column: int) -> Token:
        """Scan a decimal number with an optional fractional part."""
        chars = [self._last_char]
        while _is_digit(self._read_char()):
            chars.append(self._last_char)

        if self._last_char == ".":
            chars.append(".")
            while _is_digit(self._read_char()):
                chars.append(self._last_char)

        value = float("".join(chars))
        return self._make_token(TokenType.NUMBER, value, start_line, start_column)

    def _skip_comment(self) -> None:
        """Discard a '#' comment up to (not including) the line end."""
        while True:
            char = self._read_char()
            if char in ("", "\n", "\r"):
                return

    # =========================================================================
    # Utility Methods
    # =========================================================================

    @property
    def location(self) -> SourceLocation:
        """Location of the character currently held for classification."""
        return SourceLocation(self.filename, self._char_line, self._char_column)

    @property
    def at_end(self) -> bool:
        """True once the input has been exhausted."""
        return self._last_char == ""


def tokenize(source: str, filename: str = "<input>") -> list[Token]:
    """
    Tokenize a complete source string.

    Args:
        source: Kaleido source text
        filename: Name used in token locations

    Returns:
        All tokens, including the final EOF
    """
    return list(Lexer(source, filename).tokenize())
