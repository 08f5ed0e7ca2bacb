from __future__ import annotations

import logging
from typing import Sequence

from errors import MismatchedParenthesesError, UnexpectedCharacterError
from lexer import Token, tokenize

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def _pops_before(incoming: Token, top: Token) -> bool:
    """Whether *top* must be emitted before *incoming* is pushed."""
    if top.kind == "function" and not top.is_prefix:
        # call functions bind to their argument list, which is complete here
        return True
    if incoming.right_assoc:
        return incoming.precedence < top.precedence
    return incoming.precedence <= top.precedence


def to_postfix(tokens: Sequence[Token], strict: bool = False) -> list[Token]:
    """Convert an infix token list into postfix (RPN) order.

    Shunting-yard with an explicit output list and operator stack, so deeply
    nested input never recurses.  The function is pure: parsing the same
    tokens twice yields equal lists.

    The unary ``neg`` function is treated as a prefix operator with a
    precedence between ``* /`` and ``^``.  It is released by an incoming
    operator only through the precedence rule and is never attached by a
    closing parenthesis, so ``-3^2`` is ``-(3^2)`` and ``-(2)^2`` is
    ``-(2^2)``.

    Parameters
    ----------
    tokens : Sequence[Token]
        Output of :func:`lexer.tokenize`.
    strict : bool, default False
        When ``True`` an ``invalid`` token raises
        :class:`UnexpectedCharacterError`.  Otherwise it is dropped and the
        remaining tokens are parsed as if it were absent.

    Returns
    -------
    list[Token]
        Tokens in postfix order.  ``end``, parentheses and commas never
        appear in the result.

    Raises
    ------
    MismatchedParenthesesError
        If a ``)`` has no matching ``(`` or a ``(`` is never closed.

    Examples
    --------
    >>> from lexer import tokenize
    >>> from parser import to_postfix
    >>> " ".join(t.text for t in to_postfix(tokenize("2+3*4")))
    '2 3 4 * +'
    >>> " ".join(t.text for t in to_postfix(tokenize("-3^2")))
    '3 2 ^ neg'
    """
    output: list[Token] = []
    stack: list[Token] = []

    for tok in tokens:
        kind = tok.kind
        if kind in ("number", "variable"):
            output.append(tok)
        elif kind == "function":
            stack.append(tok)
        elif kind == "operator":
            while stack and stack[-1].kind in ("operator", "function") and _pops_before(tok, stack[-1]):
                output.append(stack.pop())
            stack.append(tok)
        elif kind == "comma":
            while stack and stack[-1].kind != "lparen":
                output.append(stack.pop())
        elif kind == "lparen":
            stack.append(tok)
        elif kind == "rparen":
            while stack and stack[-1].kind != "lparen":
                output.append(stack.pop())
            if not stack:
                raise MismatchedParenthesesError("Mismatched parentheses: unexpected ')'")
            stack.pop()
            if stack and stack[-1].kind == "function" and not stack[-1].is_prefix:
                output.append(stack.pop())
        elif kind == "invalid":
            if strict:
                raise UnexpectedCharacterError(f"Unexpected character '{tok.text}'")
            logger.warning("Ignoring unexpected character %r", tok.text)
        # "end" carries no meaning for this phase

    while stack:
        top = stack.pop()
        if top.kind in ("lparen", "rparen"):
            raise MismatchedParenthesesError("Mismatched parentheses: unclosed '('")
        output.append(top)

    return output


def compile_expression(text: str, strict: bool = False) -> list[Token]:
    """Tokenize and parse *text* into an RPN sequence in one call."""
    return to_postfix(tokenize(text), strict=strict)
