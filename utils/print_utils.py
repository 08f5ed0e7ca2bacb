from __future__ import annotations

from typing import Any, Optional, Sequence, TextIO


def print_check_results(label: str, errors: list[str], file: Optional[TextIO] = None) -> bool:
    """Print the diagnostics collected for one expression.

    Each error is prefixed with a cross mark.  Unlike a hard failure this
    never exits: a bad expression is reported and the caller moves on to
    the next one.

    Parameters
    ----------
    label : str
        The expression as typed by the user.
    errors : list[str]
        Messages from :func:`rpn_checker.check_expression`.
    file : TextIO or None
        Stream to print to; defaults to ``sys.stdout``.

    Returns
    -------
    bool
        ``True`` when *errors* is empty.

    Examples
    --------
    >>> from utils.print_utils import print_check_results
    >>> print_check_results("x^2", [])
      ✓ x^2
    True
    >>> print_check_results("(x", ["Mismatched parentheses: unclosed '('"])
      ✗ (x: Mismatched parentheses: unclosed '('
    False
    """
    if errors:
        for error in errors:
            print(f"  ✗ {label}: {error}", file=file)
        return False
    print(f"  ✓ {label}", file=file)
    return True


def format_tokens(tokens: Sequence[Any]) -> str:
    """Join token texts with spaces (handy for showing an RPN sequence).

    Examples
    --------
    >>> from parser import compile_expression
    >>> from utils.print_utils import format_tokens
    >>> format_tokens(compile_expression("2x+1"))
    '2 x * 1 +'
    """
    return " ".join(tok.text for tok in tokens if tok.text)


def _plain(value: Any) -> Any:
    """Convert numpy scalars/arrays and tuples into JSON-friendly values."""
    if hasattr(value, "tolist"):
        return value.tolist()
    if isinstance(value, tuple):
        return [_plain(v) for v in value]
    return value


def segments_to_dict(segments: Sequence[Any]) -> list[dict[str, Any]]:
    """Convert graph segments into plain dicts ready for ``json.dumps``.

    Examples
    --------
    >>> import numpy as np
    >>> from grapher import Segment
    >>> from utils.print_utils import segments_to_dict
    >>> segments_to_dict([Segment(np.array([[0.0, 1.0], [2.0, 3.0]]), "red")])
    [{'color': 'red', 'points': [[0.0, 1.0], [2.0, 3.0]]}]
    """
    return [{"color": _plain(seg.color), "points": _plain(seg.points)} for seg in segments]


def format_graph_summary(label: str, segments: Sequence[Any]) -> str:
    """One-line description of a computed graph.

    Examples
    --------
    >>> import numpy as np
    >>> from grapher import Segment
    >>> from utils.print_utils import format_graph_summary
    >>> seg = Segment(np.zeros((5, 2)), "red")
    >>> format_graph_summary("sin(x)", [seg, seg])
    'sin(x): 2 segment(s), 10 point(s)'
    """
    points = sum(len(seg.points) for seg in segments)
    return f"{label}: {len(segments)} segment(s), {points} point(s)"
