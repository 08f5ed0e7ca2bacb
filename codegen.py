from typing import List, Sequence, Tuple

from errors import InvalidExpressionError
from lexer import OPERATORS, UNARY_MINUS_PRECEDENCE, Token

# Binding strength of an already rendered operand.  Atoms (numbers,
# variables, function calls) never need parentheses.
ATOM = 10

Rendered = Tuple[str, int]


def _format_number(tok: Token) -> str:
    if tok.text:
        return tok.text
    return repr(float(tok.value))


def _wrap(operand: Rendered, needs_parens: bool) -> str:
    text, _ = operand
    return f"({text})" if needs_parens else text


def rpn_to_infix(rpn: Sequence[Token]) -> str:
    """Rebuild an infix expression string from an RPN token sequence.

    The output is parenthesized only where precedence or associativity
    demands it, and always spells multiplication out, so implicit products
    come back as ``*``.  Tokenizing and parsing the result gives an RPN
    sequence that evaluates identically to *rpn*.

    This is done in one pass with a stack of ``(text, precedence)`` pairs:

    * numbers and variables push their text as atoms;
    * binary operators pop two operands and parenthesize a side whose
      precedence is lower (or equal, on the side that associativity does
      not group);
    * ``neg`` renders as a prefix ``-``;
    * other functions render as ``name(arg, ...)``.

    Parameters
    ----------
    rpn : Sequence[Token]
        Postfix tokens as produced by :func:`parser.to_postfix`.

    Returns
    -------
    str :
        Infix source text.

    Raises
    ------
    InvalidExpressionError
        If an operator or function lacks operands, or the sequence does not
        reduce to a single expression.

    Examples
    --------
    >>> from parser import compile_expression
    >>> from codegen import rpn_to_infix
    >>> rpn_to_infix(compile_expression("2x + 1"))
    '2 * x + 1'
    >>> rpn_to_infix(compile_expression("(1 - 2) - (3 - 4)"))
    '1 - 2 - (3 - 4)'
    >>> rpn_to_infix(compile_expression("-3^2"))
    '-3 ^ 2'
    >>> rpn_to_infix(compile_expression("(-3)^2"))
    '(-3) ^ 2'
    >>> rpn_to_infix(compile_expression("pow(sin(x), 2)"))
    'pow(sin(x), 2)'
    """
    stack: List[Rendered] = []

    for tok in rpn:
        if tok.kind == "number":
            stack.append((_format_number(tok), ATOM))
        elif tok.kind == "variable":
            stack.append((tok.text, ATOM))
        elif tok.kind == "operator":
            if len(stack) < 2:
                raise InvalidExpressionError(f"Operator '{tok.text}' is missing operands")
            right = stack.pop()
            left = stack.pop()
            prec, right_assoc = OPERATORS[tok.text]
            if right_assoc:
                left_text = _wrap(left, left[1] <= prec)
                right_text = _wrap(right, right[1] < prec)
            else:
                left_text = _wrap(left, left[1] < prec)
                right_text = _wrap(right, right[1] <= prec)
            stack.append((f"{left_text} {tok.text} {right_text}", prec))
        elif tok.kind == "function":
            arity = tok.arity or 1
            if len(stack) < arity:
                raise InvalidExpressionError(f"Function '{tok.text}' expects {arity} argument(s)")
            args = stack[-arity:]
            del stack[-arity:]
            if tok.text == "neg":
                operand = args[0]
                stack.append((f"-{_wrap(operand, operand[1] <= UNARY_MINUS_PRECEDENCE)}", UNARY_MINUS_PRECEDENCE))
            else:
                joined = ", ".join(text for text, _ in args)
                stack.append((f"{tok.text}({joined})", ATOM))

    if len(stack) != 1:
        raise InvalidExpressionError(
            f"Invalid expression: {len(stack)} value(s) left after reconstruction"
        )
    return stack[0][0]
