from __future__ import annotations

import math
from typing import Literal, NamedTuple

import ply.lex as lex


# TOKEN TYPE DEFINITIONS
# The lexer produces a flat list of immutable ``Token`` records.  ``kind`` is
# one of the literals below; the remaining fields are only meaningful for
# some kinds (``value`` for numbers, ``precedence``/``right_assoc`` for
# operators and the prefix ``neg`` function, ``arity`` for functions).

TokenKind = Literal[
    "number", "variable",        # values
    "operator", "function",      # + - * / ^ and named functions
    "lparen", "rparen", "comma", # grouping / argument separator
    "end",                       # terminator, always last
    "invalid",                   # unrecognised character
]

VALUE_KINDS = ("number", "variable", "rparen")
VALUE_START_KINDS = ("variable", "function", "number", "lparen")


class Token(NamedTuple):
    kind: TokenKind
    text: str
    value: float = 0.0
    precedence: int = 0
    right_assoc: bool = False
    arity: int = 0

    @property
    def is_prefix(self) -> bool:
        """``True`` for prefix functions (``neg``) that bind by precedence."""
        return self.kind == "function" and self.precedence > 0


# (precedence, right associative)
OPERATORS = {
    "+": (2, False),
    "-": (2, False),
    "*": (3, False),
    "/": (3, False),
    "^": (5, True),
}

# neg sits between * / and ^ so that -3^2 == -(3^2) but -2*3 == (-2)*3
UNARY_MINUS_PRECEDENCE = 4

FUNCTIONS = {
    "sin": 1, "cos": 1, "tan": 1,
    "asin": 1, "acos": 1, "atan": 1,
    "arcsin": 1, "arccos": 1, "arctan": 1,
    "sqrt": 1, "log": 1, "ln": 1, "exp": 1, "abs": 1,
    "neg": 1,
    "pow": 2,
}

CONSTANTS = {
    "pi": math.pi,
    "e": math.e,
    "phi": (1.0 + math.sqrt(5.0)) / 2.0,
}


# RAW LEXER

tokens = (
    "NUMBER", "ID",
    "PLUS", "MINUS", "TIMES", "DIVIDE", "POWER",
    "LPAREN", "RPAREN", "COMMA",
)

t_PLUS   = r"\+"
t_MINUS  = r"-"
t_TIMES  = r"\*"
t_DIVIDE = r"/"
t_POWER  = r"\^"
t_LPAREN = r"\("
t_RPAREN = r"\)"
t_COMMA  = r","

t_ignore = " \t\r\n"

def t_NUMBER(t):
    r"\d+\.?\d*|\.\d+"
    return t

def t_ID(t):
    r"[A-Za-z]+"
    return t

def t_error(t):
    # Never raise: the bad character becomes an INVALID token for the parser
    t.type = "INVALID"
    t.value = t.value[0]
    t.lexer.skip(1)
    return t

_raw_lexer = lex.lex()


def operator_token(symbol: str) -> Token:
    precedence, right_assoc = OPERATORS[symbol]
    return Token("operator", symbol, precedence=precedence, right_assoc=right_assoc)


def function_token(name: str) -> Token:
    if name == "neg":
        return Token("function", name, precedence=UNARY_MINUS_PRECEDENCE, arity=1)
    return Token("function", name, arity=FUNCTIONS[name])


_SIMPLE_KINDS = {"LPAREN": "lparen", "RPAREN": "rparen", "COMMA": "comma"}
_OPERATOR_TYPES = {"PLUS": "+", "TIMES": "*", "DIVIDE": "/", "POWER": "^"}


class ExpressionLexer:
    """Wrapper lexer that turns the raw ply stream into expression tokens.

    Two decisions depend on the previously emitted token and are made here
    rather than in the regular expressions: whether ``-`` is subtraction or
    the unary ``neg`` function, and where an implicit ``*`` belongs
    (``2x``, ``(a)(b)``, ``3sin(x)``).
    """

    def __init__(self, lexer):
        self.lexer = lexer

    def tokenize(self, text: str) -> list[Token]:
        raw = self.lexer.clone()
        raw.input(text)
        result: list[Token] = []
        for tok in raw:
            self._push(result, self._convert(tok, result))
        result.append(Token("end", ""))
        return result

    def _convert(self, tok, emitted: list[Token]) -> Token:
        if tok.type == "NUMBER":
            return Token("number", tok.value, value=float(tok.value))
        if tok.type == "ID":
            name = tok.value
            if name in FUNCTIONS:
                return function_token(name)
            if name in CONSTANTS:
                return Token("number", name, value=CONSTANTS[name])
            return Token("variable", name)
        if tok.type == "MINUS":
            if not emitted or emitted[-1].kind in ("operator", "lparen", "comma") or emitted[-1].is_prefix:
                return function_token("neg")
            return operator_token("-")
        if tok.type in _OPERATOR_TYPES:
            return operator_token(_OPERATOR_TYPES[tok.type])
        if tok.type in _SIMPLE_KINDS:
            return Token(_SIMPLE_KINDS[tok.type], tok.value)
        return Token("invalid", tok.value)

    @staticmethod
    def _push(emitted: list[Token], token: Token) -> None:
        if emitted and emitted[-1].kind in VALUE_KINDS and token.kind in VALUE_START_KINDS:
            emitted.append(operator_token("*"))
        emitted.append(token)


lexer = ExpressionLexer(_raw_lexer)


def tokenize(text: str) -> list[Token]:
    """Lex an infix expression into a token list ending with an ``end`` token.

    Never raises.  Characters the lexer does not know become ``invalid``
    tokens and are left for the parser to ignore or reject.

    Examples
    --------
    >>> from lexer import tokenize
    >>> [t.text for t in tokenize("2x")]
    ['2', '*', 'x', '']
    >>> [t.kind for t in tokenize("-x")]
    ['function', 'variable', 'end']
    >>> tokenize("pi")[0].value
    3.141592653589793
    """
    return lexer.tokenize(text)
