"""Exceptions raised while compiling or evaluating an expression.

Every failure here is scoped to a single expression: callers catch
:class:`ExpressionError` around one recompute and keep whatever they rendered
before.  Unrecognised characters are *not* exceptions; the lexer turns them
into ``invalid`` tokens.
"""


class ExpressionError(ValueError):
    """Base class for expression compile/evaluate failures."""


class MismatchedParenthesesError(ExpressionError):
    """Parenthesis nesting is unbalanced."""


class InvalidExpressionError(ExpressionError):
    """An RPN sequence cannot be reduced to exactly one value."""


class UnexpectedCharacterError(ExpressionError):
    """An ``invalid`` token reached the parser in strict mode."""


class InvalidSamplingError(ExpressionError):
    """Sampling settings (such as a non-positive step) cannot produce samples."""
