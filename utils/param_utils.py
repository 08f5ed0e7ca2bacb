from __future__ import annotations

import logging
from typing import Iterable, MutableMapping, Optional

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


# Unicode math symbols typed or pasted by users, mapped to what the lexer reads
UNICODE_REPLACEMENTS = (
    ("π", "pi"),
    ("Φ", "phi"),
    ("φ", "phi"),
    ("·", "*"),
    ("×", "*"),
    ("−", "-"),
)


def normalize_expression(text: str) -> str:
    """Prepare user input for the lexer.

    Replaces Unicode math symbols with their ASCII spelling and rewrites an
    equation ``lhs = rhs`` as ``(lhs)-(rhs)``, so that ``y = x^2`` and
    ``x^2 + y^2 = 1`` become implicit relations ``F(x, y) = 0``.  Only the
    first ``=`` splits the text.

    Parameters
    ----------
    text : str
        Raw expression text.

    Returns
    -------
    str
        Normalized expression text.

    Examples
    --------
    >>> from utils.param_utils import normalize_expression
    >>> normalize_expression("x^2 + y^2 = 1")
    '(x^2 + y^2)-(1)'
    >>> normalize_expression("2π·r")
    '2pi*r'
    """
    for symbol, ascii_text in UNICODE_REPLACEMENTS:
        text = text.replace(symbol, ascii_text)
    lhs, eq, rhs = text.partition("=")
    if eq:
        text = f"({lhs.strip()})-({rhs.strip()})"
    return text


def parse_param_assignment(line: str, env: MutableMapping[str, float]) -> Optional[str]:
    """Parse one ``name=value`` line into *env*.

    Malformed lines (no ``=``, empty name or value, value that is not a
    number) are ignored without raising.

    Parameters
    ----------
    line : str
        A single assignment such as ``"a = 2.5"``.
    env : MutableMapping[str, float]
        Updated in place on success.

    Returns
    -------
    str or None
        The assigned name, or ``None`` if the line was ignored.

    Examples
    --------
    >>> from utils.param_utils import parse_param_assignment
    >>> env = {}
    >>> parse_param_assignment(" a = 2.5 ", env)
    'a'
    >>> parse_param_assignment("b = two", env) is None
    True
    >>> env
    {'a': 2.5}
    """
    name, eq, value = line.partition("=")
    name = name.strip()
    value = value.strip()
    if not eq or not name or not value:
        return None
    try:
        env[name] = float(value)
    except ValueError:
        logger.debug("Ignoring parameter line %r", line)
        return None
    return name


def parse_params(lines: Iterable[str]) -> dict[str, float]:
    """Build a variable environment from ``name=value`` lines.

    Later assignments to the same name win.

    Examples
    --------
    >>> from utils.param_utils import parse_params
    >>> parse_params(["a=1", "junk", "b = -0.5", "a=3"])
    {'a': 3.0, 'b': -0.5}
    """
    env: dict[str, float] = {}
    for line in lines:
        parse_param_assignment(line, env)
    return env
