from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional, Sequence, Union

import numpy as np

from errors import InvalidExpressionError
from lexer import Token

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

# Type aliases used in annotations throughout this module.
Number = Union[float, np.ndarray]
Environment = Mapping[str, Any]   # name -> float, or name -> ndarray when sampling


BINARY_OPERATORS: dict[str, Callable[[Number, Number], Number]] = {
    "+": np.add,
    "-": np.subtract,
    "*": np.multiply,
    "/": np.divide,
    "^": np.power,
}

MATH_FUNCTIONS: dict[str, Callable[..., Number]] = {
    "sin": np.sin,
    "cos": np.cos,
    "tan": np.tan,
    "asin": np.arcsin,
    "arcsin": np.arcsin,
    "acos": np.arccos,
    "arccos": np.arccos,
    "atan": np.arctan,
    "arctan": np.arctan,
    "sqrt": np.sqrt,
    "log": np.log,
    "ln": np.log,
    "exp": np.exp,
    "neg": np.negative,
    "abs": np.abs,
    "pow": np.power,
}


def _run(rpn: Sequence[Token], env: Environment) -> Number:
    stack: list[Number] = []

    with np.errstate(all="ignore"):
        for tok in rpn:
            kind = tok.kind
            if kind == "number":
                stack.append(np.float64(tok.value))
            elif kind == "variable":
                stack.append(np.asarray(env.get(tok.text, 0.0), dtype=np.float64))
            elif kind == "operator":
                if len(stack) < 2:
                    raise InvalidExpressionError(f"Operator '{tok.text}' is missing operands")
                b = stack.pop()
                a = stack.pop()
                op = BINARY_OPERATORS.get(tok.text)
                stack.append(op(a, b) if op is not None else np.float64(np.nan))
            elif kind == "function":
                arity = tok.arity or 1
                if len(stack) < arity:
                    raise InvalidExpressionError(f"Function '{tok.text}' expects {arity} argument(s)")
                args = stack[-arity:]
                del stack[-arity:]
                func = MATH_FUNCTIONS.get(tok.text)
                if func is None:
                    # Unknown names evaluate to NaN and are filtered downstream
                    stack.append(np.full(np.shape(args[0]), np.nan))
                else:
                    stack.append(func(*args))

    if len(stack) != 1:
        raise InvalidExpressionError(
            f"Invalid expression: evaluation left {len(stack)} value(s) on the stack"
        )
    return stack[0]


def evaluate(rpn: Sequence[Token], env: Optional[Environment] = None) -> float:
    """Evaluate an RPN token sequence to a single float.

    Runs one pass over *rpn* with an explicit value stack.  Arithmetic is
    IEEE-754 double precision through numpy, so division by zero gives
    ``inf``/``nan`` and domain errors (``sqrt(-1)``, ``log(0)``) give
    ``nan``/``-inf`` instead of raising.  Variables missing from *env*
    evaluate to ``0.0``.

    Parameters
    ----------
    rpn : Sequence[Token]
        Postfix tokens produced by :func:`parser.to_postfix`.
    env : Mapping[str, float] or None
        Variable values.  Never modified.

    Returns
    -------
    float
        The value of the expression, possibly non-finite.

    Raises
    ------
    InvalidExpressionError
        If an operator or function lacks operands, or the stack does not
        end with exactly one value.

    Examples
    --------
    >>> from lexer import tokenize
    >>> from parser import to_postfix
    >>> from runtime import evaluate
    >>> evaluate(to_postfix(tokenize("2^3^2")))
    512.0
    >>> evaluate(to_postfix(tokenize("a*x+1")), {"a": 2.0, "x": 3.0})
    7.0
    >>> evaluate(to_postfix(tokenize("1/0")))
    inf
    >>> evaluate(to_postfix(tokenize("q+1")), {})
    1.0
    """
    return float(_run(rpn, env if env is not None else {}))


def evaluate_array(rpn: Sequence[Token], env: Optional[Environment] = None) -> np.ndarray:
    """Evaluate an RPN sequence with array-valued variables.

    Same machine as :func:`evaluate`, but variables may be bound to numpy
    arrays (the sampler binds ``x`` to a run of sample positions, or ``x``
    and ``y`` to a grid row).  The result is broadcast against every array
    in *env*, so a constant expression still yields one value per sample.

    Parameters
    ----------
    rpn : Sequence[Token]
        Postfix tokens.
    env : Mapping[str, float | numpy.ndarray] or None
        Variable values.

    Returns
    -------
    numpy.ndarray
        Float64 array with the broadcast shape of the bound arrays.

    Examples
    --------
    >>> import numpy as np
    >>> from parser import compile_expression
    >>> from runtime import evaluate_array
    >>> evaluate_array(compile_expression("x^2"), {"x": np.array([1.0, 2.0, 3.0])})
    array([1., 4., 9.])
    >>> evaluate_array(compile_expression("5"), {"x": np.zeros(2)})
    array([5., 5.])
    """
    env = env if env is not None else {}
    result = np.asarray(_run(rpn, env), dtype=np.float64)
    shapes = [np.shape(v) for v in env.values() if np.ndim(v) > 0]
    if shapes:
        result = np.broadcast_to(result, np.broadcast_shapes(result.shape, *shapes)).copy()
    return result


def uses_variable(rpn: Sequence[Token], name: str) -> bool:
    """Return ``True`` if *rpn* reads the variable *name*."""
    return any(tok.kind == "variable" and tok.text == name for tok in rpn)
