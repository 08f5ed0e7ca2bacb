import math

import pytest

from lexer import CONSTANTS, UNARY_MINUS_PRECEDENCE, Token, tokenize


def kinds(text: str) -> list[str]:
    return [tok.kind for tok in tokenize(text)]


def texts(text: str) -> list[str]:
    return [tok.text for tok in tokenize(text)]


class TestBasicTokens:
    def test_always_ends_with_end_token(self):
        assert tokenize("") == [Token("end", "")]
        assert tokenize("x + 1")[-1].kind == "end"

    @pytest.mark.parametrize("text, value", [
        ("3", 3.0),
        ("3.25", 3.25),
        ("3.", 3.0),
        (".5", 0.5),
        ("0012", 12.0),
    ])
    def test_numbers(self, text, value):
        tok = tokenize(text)[0]
        assert tok.kind == "number"
        assert tok.value == value

    def test_whitespace_is_ignored(self):
        assert texts(" 1 \t+\n2 ") == ["1", "+", "2", ""]

    def test_operators_carry_precedence(self):
        plus, times, power = (tokenize(t)[1] for t in ("1+1", "1*1", "1^1"))
        assert plus.precedence < times.precedence < power.precedence
        assert power.right_assoc
        assert not plus.right_assoc and not times.right_assoc

    @pytest.mark.parametrize("name", ["sin", "cos", "tan", "sqrt", "log", "ln", "exp", "abs", "atan"])
    def test_known_functions(self, name):
        tok = tokenize(f"{name}(x)")[0]
        assert tok.kind == "function"
        assert tok.arity == 1
        assert not tok.is_prefix

    def test_pow_takes_two_arguments(self):
        assert tokenize("pow(x, 2)")[0].arity == 2
        assert kinds("pow(x, 2)") == [
            "function", "lparen", "variable", "comma", "number", "rparen", "end",
        ]

    @pytest.mark.parametrize("name", sorted(CONSTANTS))
    def test_constants_become_numbers(self, name):
        tok = tokenize(name)[0]
        assert tok.kind == "number"
        assert tok.value == CONSTANTS[name]

    def test_phi_is_golden_ratio(self):
        assert tokenize("phi")[0].value == pytest.approx((1 + math.sqrt(5)) / 2)

    def test_identifier_runs_are_single_variables(self):
        assert kinds("xy") == ["variable", "end"]
        assert texts("alpha") == ["alpha", ""]


class TestUnaryMinus:
    @pytest.mark.parametrize("text", ["-x", "(-x)", "2*-x", "pow(1, -x)", "2^-x"])
    def test_minus_becomes_neg(self, text):
        negs = [tok for tok in tokenize(text) if tok.text == "neg"]
        assert len(negs) == 1
        assert negs[0].kind == "function"
        assert negs[0].precedence == UNARY_MINUS_PRECEDENCE
        assert negs[0].is_prefix

    @pytest.mark.parametrize("text", ["x-1", "2-x", "(x)-1"])
    def test_minus_after_value_is_subtraction(self, text):
        minus = [tok for tok in tokenize(text) if tok.text == "-"]
        assert len(minus) == 1
        assert minus[0].kind == "operator"

    def test_double_minus(self):
        assert texts("--x") == ["neg", "neg", "x", ""]
        assert texts("x--1") == ["x", "-", "neg", "1", ""]


class TestImplicitMultiplication:
    @pytest.mark.parametrize("text, expected", [
        ("2x", ["2", "*", "x", ""]),
        ("2(x)", ["2", "*", "(", "x", ")", ""]),
        ("(a)(b)", ["(", "a", ")", "*", "(", "b", ")", ""]),
        ("3sin(x)", ["3", "*", "sin", "(", "x", ")", ""]),
        ("x2", ["x", "*", "2", ""]),
        ("2pi", ["2", "*", "pi", ""]),
        ("(x)y", ["(", "x", ")", "*", "y", ""]),
    ])
    def test_inserted(self, text, expected):
        assert texts(text) == expected

    @pytest.mark.parametrize("text", ["sin(x)", "x + y", "-x", "pow(x, y)"])
    def test_not_inserted(self, text):
        assert "*" not in texts(text)


class TestInvalidCharacters:
    def test_invalid_character_does_not_raise(self):
        toks = tokenize("1 + $")
        assert [t.kind for t in toks] == ["number", "operator", "invalid", "end"]
        assert toks[2].text == "$"

    def test_lexing_continues_after_invalid(self):
        assert kinds("x # y") == ["variable", "invalid", "variable", "end"]

    def test_multiple_invalid_characters(self):
        invalid = [t.text for t in tokenize("1 & 2 ! 3") if t.kind == "invalid"]
        assert invalid == ["&", "!"]
