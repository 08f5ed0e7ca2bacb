from __future__ import annotations

from typing import Optional, Sequence

from errors import MismatchedParenthesesError
from lexer import Token, tokenize
from parser import to_postfix
from runtime import BINARY_OPERATORS, MATH_FUNCTIONS


class RPNChecker:
    """Static checker for a tokenized expression.

    Walks the tokens and their postfix form without evaluating anything and
    collects every problem that would make the expression fail or silently
    misbehave.  Messages are accumulated in ``self.errors`` and returned by
    :meth:`run`.

    The checks are:

    * ``invalid`` tokens (characters the lexer did not recognise, which the
      parser would otherwise drop);
    * unbalanced parentheses;
    * operators and functions without enough operands, and values left over
      at the end (the conditions under which :func:`runtime.evaluate`
      raises ``InvalidExpressionError``);
    * function names the evaluator does not implement (these evaluate to
      ``nan`` everywhere; only reachable with hand-built tokens).

    Parameters
    ----------
    tokens : Sequence[Token]
        Output of :func:`lexer.tokenize`.

    Examples
    --------
    >>> from lexer import tokenize
    >>> from rpn_checker import RPNChecker
    >>> RPNChecker(tokenize("sin(x) + 2x")).run()
    []
    >>> RPNChecker(tokenize("1 + $")).run()
    ["Unexpected character '$'", "Operator '+' is missing an operand"]
    """

    def __init__(self, tokens: Sequence[Token]) -> None:
        self.tokens = list(tokens)
        self.errors: list[str] = []
        self.rpn: Optional[list[Token]] = None

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def check_tokens(self) -> None:
        for tok in self.tokens:
            if tok.kind == "invalid":
                self.add_error(f"Unexpected character '{tok.text}'")

    def check_rpn(self, rpn: Sequence[Token]) -> None:
        """Simulate the evaluator's stack depth over *rpn*.

        The unknown operator and function checks only fire for token lists
        built by hand; :func:`lexer.tokenize` emits nothing outside the
        evaluator's tables.

        Examples
        --------
        >>> from lexer import Token
        >>> from rpn_checker import RPNChecker
        >>> checker = RPNChecker([])
        >>> checker.check_rpn([Token("number", "1", 1.0), Token("number", "2", 2.0)])
        >>> checker.errors
        ['Expression leaves 2 values instead of one']
        """
        depth = 0
        for tok in rpn:
            if tok.kind in ("number", "variable"):
                depth += 1
            elif tok.kind == "operator":
                if tok.text not in BINARY_OPERATORS:
                    self.add_error(f"Unknown operator '{tok.text}'")
                if depth < 2:
                    self.add_error(f"Operator '{tok.text}' is missing an operand")
                    depth = 1
                else:
                    depth -= 1
            elif tok.kind == "function":
                arity = tok.arity or 1
                if tok.text not in MATH_FUNCTIONS:
                    self.add_error(f"Unknown function '{tok.text}' evaluates to nan")
                if depth < arity:
                    self.add_error(f"Function '{tok.text}' expects {arity} argument(s), got {depth}")
                    depth = 1
                else:
                    depth -= arity - 1

        if depth == 0 and not self.errors:
            self.add_error("Expression is empty")
        elif depth > 1:
            self.add_error(f"Expression leaves {depth} values instead of one")

    # Main entry point
    def run(self) -> list[str]:
        """Run every check.

        Returns
        -------
        list[str]
            Human-readable problems; empty when the expression is evaluable.
        """
        self.check_tokens()
        try:
            self.rpn = to_postfix(self.tokens)
        except MismatchedParenthesesError as exc:
            self.add_error(str(exc))
            return self.errors
        self.check_rpn(self.rpn)
        return self.errors


def check_expression(text: str) -> list[str]:
    """Tokenize *text* and run :class:`RPNChecker` on it.

    Examples
    --------
    >>> from rpn_checker import check_expression
    >>> check_expression("x^2 + y^2 - 1")
    []
    >>> check_expression("(1 + 2")
    ["Mismatched parentheses: unclosed '('"]
    """
    return RPNChecker(tokenize(text)).run()
