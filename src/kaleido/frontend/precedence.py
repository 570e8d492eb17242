"""
Binary Operator Precedence Table
================================

The parser decides which characters are binary operators, and how
tightly they bind, by consulting an OperatorTable. Higher numbers bind
tighter. Any character not in the table has precedence -1, which the
parser reads as "not a binary operator here".

Default Operators
-----------------
| Operator | Precedence |
|----------|------------|
| <        | 10         |
| + -      | 20         |
| *        | 40         |

New operators can be registered before parsing starts; the parser
needs no change, although the code generator rejects operators it has
no IR lowering for.
"""

from typing import Mapping, Optional

from kaleido.frontend.lexer import Token, TokenType


DEFAULT_PRECEDENCE: dict[str, int] = {
    "<": 10,
    "+": 20,
    "-": 20,
    "*": 40,  # highest
}

# Precedence of anything that is not a binary operator
NOT_AN_OPERATOR = -1


class OperatorTable:
    """
    Mapping from single-character operator to precedence.

    Usage:
        table = OperatorTable()
        table.register("/", 40)
        table.precedence_of(token)
    """

    def __init__(self, precedences: Optional[Mapping[str, int]] = None):
        """
        Initialize the table.

        Args:
            precedences: Initial operator -> precedence entries
                         (defaults to DEFAULT_PRECEDENCE)
        """
        self._precedence: dict[str, int] = {}
        if precedences is None:
            precedences = DEFAULT_PRECEDENCE
        for operator, precedence in precedences.items():
            self.register(operator, precedence)

    def register(self, operator: str, precedence: int) -> None:
        """
        Register (or re-register) a binary operator.

        Raises:
            ValueError: If operator is not a single ASCII character or
                        precedence is not strictly positive
        """
        if len(operator) != 1 or not operator.isascii():
            raise ValueError(f"operator must be a single ASCII character: {operator!r}")
        if precedence <= 0:
            raise ValueError(f"operator precedence must be positive: {precedence}")
        self._precedence[operator] = precedence

    def precedence_of(self, token: Token) -> int:
        """
        Return the precedence of a pending binary operator token.

        Returns:
            The registered precedence, or NOT_AN_OPERATOR (-1) for
            non-character tokens and unregistered characters
        """
        if token.type != TokenType.CHAR or not token.value.isascii():
            return NOT_AN_OPERATOR
        return self._precedence.get(token.value, NOT_AN_OPERATOR)

    @property
    def operators(self) -> dict[str, int]:
        """Copy of the operator -> precedence entries."""
        return dict(self._precedence)

    def __contains__(self, operator: str) -> bool:
        return operator in self._precedence

    def __repr__(self) -> str:
        return f"OperatorTable({self._precedence!r})"


def default_operator_table() -> OperatorTable:
    """Return a fresh table holding the default operators."""
    return OperatorTable(DEFAULT_PRECEDENCE)
