"""
Kaleido Recursive Descent Parser
================================

This module implements a recursive descent parser for Kaleido. It pulls
tokens from the lexer one at a time, holding a single token of
lookahead in `current`, and builds AST nodes. Binary expressions are
parsed by operator-precedence climbing against an OperatorTable.

Grammar (EBNF)
--------------
top             ::= definition | external | expression | ';'
definition      ::= 'def' prototype expression
external        ::= 'extern' prototype
prototype       ::= IDENTIFIER '(' IDENTIFIER* ')'
expression      ::= primary binoprhs
binoprhs        ::= (BINOP primary)*
primary         ::= identifierexpr | numberexpr | parenexpr
identifierexpr  ::= IDENTIFIER
                  | IDENTIFIER '(' (expression (',' expression)*)? ')'
numberexpr      ::= NUMBER
parenexpr       ::= '(' expression ')'

Operator Precedence
-------------------
Each BINOP's precedence comes from the OperatorTable. After parsing an
operator and its right operand, the parser looks at the following
operator: if it binds strictly tighter, it is absorbed into the right
operand first. Operators of equal precedence are therefore
left-associative: "1-2-3" is ((1-2)-3).

Error Handling
--------------
Every rule raises a KaleidoSyntaxError subclass when the current token
does not fit. No tokens beyond the offending one are consumed and the
parser does not resynchronize; the driver skips a token and retries.

Example Usage
-------------
>>> from kaleido.frontend.lexer import Lexer
>>> from kaleido.frontend.parser import Parser
>>> parser = Parser(Lexer('def add(a b) a+b'))
>>> decl = parser.parse_definition()
>>> decl.prototype
Prototype(name='add', params=['a', 'b'])
>>> decl.body
BinaryOp(operator='+', left=VariableRef(name='a'), right=VariableRef(name='b'))
"""

from typing import Optional

from kaleido.frontend.lexer import Lexer, Token, TokenType
from kaleido.frontend.precedence import OperatorTable, default_operator_table
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
    UnexpectedTokenError,
    MissingTokenError,
)


class Parser:
    """
    Recursive descent parser for Kaleido.

    The parser primes its lookahead slot from the lexer on construction.
    After any grammar method returns successfully, `current` is the
    first token that method did not consume.

    Attributes:
        lexer: Token source
        operators: Binary operator precedence table
        current: The current (lookahead) token
    """

    def __init__(
        self,
        lexer: Lexer,
        operators: Optional[OperatorTable] = None,
    ):
        """
        Initialize the parser and read the first token.

        Args:
            lexer: The lexer to pull tokens from
            operators: Precedence table (a fresh default table if None)
        """
        self.lexer = lexer
        self.operators = operators if operators is not None else default_operator_table()
        self.current: Token = lexer.next_token()

    # =========================================================================
    # Token Access Methods
    # =========================================================================

    def next_token(self) -> Token:
        """Advance to the next token and return it."""
        self.current = self.lexer.next_token()
        return self.current

    def _check_char(self, char: str) -> bool:
        """Check if the current token is the given character."""
        return self.current.is_char(char)

    def _token_precedence(self) -> int:
        """Precedence of the current token as a binary operator, or -1."""
        return self.operators.precedence_of(self.current)

    # =========================================================================
    # Primary Expressions
    # =========================================================================

    def parse_number_expr(self) -> NumberLiteral:
        """numberexpr ::= NUMBER"""
        token = self.current
        self.next_token()  # consume the number
        return NumberLiteral(token.value, location=token.location)

    def parse_paren_expr(self) -> Expression:
        """parenexpr ::= '(' expression ')'"""
        self.next_token()  # consume '('
        expr = self.parse_expression()

        if not self._check_char(")"):
            raise MissingTokenError(")", location=self.current.location)
        self.next_token()  # consume ')'
        return expr

    def parse_identifier_expr(self) -> Expression:
        """
        identifierexpr
            ::= IDENTIFIER
            ::= IDENTIFIER '(' (expression (',' expression)*)? ')'
        """
        token = self.current
        name = token.value
        self.next_token()  # consume identifier

        # Simple variable reference
        if not self._check_char("("):
            return VariableRef(name, location=token.location)

        # Call
        self.next_token()  # consume '('
        arguments = []
        if not self._check_char(")"):
            while True:
                arguments.append(self.parse_expression())

                if self._check_char(")"):
                    break

                if not self._check_char(","):
                    raise MissingTokenError(
                        ")",
                        message="expected ')' or ',' in argument list",
                        location=self.current.location,
                    )
                self.next_token()  # consume ','

        self.next_token()  # consume ')'
        return Call(name, arguments, location=token.location)

    def parse_primary(self) -> Expression:
        """
        primary
            ::= identifierexpr
            ::= numberexpr
            ::= parenexpr
        """
        token = self.current

        if token.type == TokenType.IDENTIFIER:
            return self.parse_identifier_expr()

        if token.type == TokenType.NUMBER:
            return self.parse_number_expr()

        if token.is_char("("):
            return self.parse_paren_expr()

        raise UnexpectedTokenError(token.describe(), location=token.location)

    # =========================================================================
    # Binary Expressions (Precedence Climbing)
    # =========================================================================

    def parse_expression(self) -> Expression:
        """expression ::= primary binoprhs"""
        lhs = self.parse_primary()
        return self.parse_binop_rhs(0, lhs)

    def parse_binop_rhs(self, min_precedence: int, lhs: Expression) -> Expression:
        """
        binoprhs ::= (BINOP primary)*

        Absorb operators binding at least as tightly as min_precedence
        into lhs.

        Args:
            min_precedence: Minimal operator precedence to consume
            lhs: Expression parsed so far

        Returns:
            The combined expression
        """
        while True:
            precedence = self._token_precedence()

            # Not an operator, or one that binds less tightly: done
            if precedence < min_precedence:
                return lhs

            op_token = self.current
            self.next_token()  # consume operator

            rhs = self.parse_primary()

            # If the next operator binds tighter, it takes rhs as its lhs
            next_precedence = self._token_precedence()
            if precedence < next_precedence:
                rhs = self.parse_binop_rhs(precedence + 1, rhs)

            lhs = BinaryOp(op_token.value, lhs, rhs, location=op_token.location)

    # =========================================================================
    # Declarations
    # =========================================================================

    def parse_prototype(self) -> Prototype:
        """prototype ::= IDENTIFIER '(' IDENTIFIER* ')'"""
        token = self.current
        if token.type != TokenType.IDENTIFIER:
            raise UnexpectedTokenError(
                token.describe(),
                message="expected function name in prototype",
                location=token.location,
            )

        name = token.value
        self.next_token()  # consume name

        if not self._check_char("("):
            raise MissingTokenError(
                "(",
                message="expected '(' in prototype",
                location=self.current.location,
            )

        # Parameter names, no separator
        params = []
        while self.next_token().type == TokenType.IDENTIFIER:
            params.append(self.current.value)

        if not self._check_char(")"):
            raise MissingTokenError(
                ")",
                message="expected ')' in prototype",
                location=self.current.location,
            )

        self.next_token()  # consume ')'
        return Prototype(name, params, location=token.location)

    def parse_definition(self) -> FunctionDecl:
        """definition ::= 'def' prototype expression"""
        self.next_token()  # consume 'def'
        proto = self.parse_prototype()
        body = self.parse_expression()
        return FunctionDecl(proto, body)

    def parse_extern(self) -> FunctionDecl:
        """external ::= 'extern' prototype"""
        self.next_token()  # consume 'extern'
        return FunctionDecl(self.parse_prototype())

    def parse_top_level_expr(self) -> FunctionDecl:
        """toplevelexpr ::= expression (wrapped in an anonymous prototype)"""
        location = self.current.location
        body = self.parse_expression()
        return FunctionDecl(Prototype("", [], location=location), body)

    def parse_top_level(self) -> Optional[FunctionDecl]:
        """
        Parse one top-level construct.

        Returns:
            The parsed declaration, or None if the current token is a ';'
            separator (consumed) or the end of input (not consumed)
        """
        token = self.current

        if token.type == TokenType.EOF:
            return None
        if token.is_char(";"):
            self.next_token()
            return None
        if token.type == TokenType.DEF:
            return self.parse_definition()
        if token.type == TokenType.EXTERN:
            return self.parse_extern()
        return self.parse_top_level_expr()


# =============================================================================
# Convenience Functions
# =============================================================================

def parse_source(
    source: str,
    filename: str = "<input>",
    operators: Optional[OperatorTable] = None,
) -> list[FunctionDecl]:
    """
    Parse every top-level construct in a source string.

    Unlike the driver, this stops at the first syntax error.

    Args:
        source: Kaleido source text
        filename: Source filename for error messages
        operators: Precedence table (default table if None)

    Returns:
        The parsed declarations in source order

    Raises:
        KaleidoSyntaxError: If parsing fails
    """
    parser = Parser(Lexer(source, filename), operators)
    declarations = []

    while parser.current.type != TokenType.EOF:
        decl = parser.parse_top_level()
        if decl is not None:
            declarations.append(decl)

    return declarations


def parse_expression(source: str, operators: Optional[OperatorTable] = None) -> Expression:
    """
    Parse a single expression from a string.

    Raises:
        KaleidoSyntaxError: If the text is not an expression
    """
    parser = Parser(Lexer(source), operators)
    return parser.parse_expression()
