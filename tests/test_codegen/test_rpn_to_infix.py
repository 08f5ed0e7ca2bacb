import numpy as np
import pytest

from codegen import rpn_to_infix
from errors import InvalidExpressionError
from lexer import Token
from parser import compile_expression
from runtime import evaluate_array


EXPRESSIONS = [
    "2x + 1",
    "1 - (2 - 3)",
    "(1 - 2) - 3",
    "8 / (4 / 2)",
    "2^3^2",
    "(2^3)^2",
    "-3^2",
    "(-3)^2",
    "-(x + 1)",
    "--x",
    "x - -x",
    "2^-x",
    "sin(x)^2 + cos(x)^2",
    "pow(x + 1, 2) / sqrt(abs(x) + 1)",
    "3sin(2x)(x - 1)",
    "exp(-x^2 / 2)",
    "pi * x - e",
]


class TestRendering:
    @pytest.mark.parametrize("text, expected", [
        ("1+2*3", "1 + 2 * 3"),
        ("(1+2)*3", "(1 + 2) * 3"),
        ("1-(2-3)", "1 - (2 - 3)"),
        ("(1-2)-3", "1 - 2 - 3"),
        ("2^3^2", "2 ^ 3 ^ 2"),
        ("(2^3)^2", "(2 ^ 3) ^ 2"),
        ("-(x+1)", "-(x + 1)"),
        ("-x*2", "-x * 2"),
        ("--x", "-(-x)"),
        ("sin(x+1)", "sin(x + 1)"),
        ("pi", "pi"),
    ])
    def test_minimal_parentheses(self, text, expected):
        assert rpn_to_infix(compile_expression(text)) == expected

    def test_number_without_text(self):
        assert rpn_to_infix([Token("number", "", 0.5)]) == "0.5"


class TestRoundTrip:
    @pytest.mark.parametrize("text", EXPRESSIONS)
    def test_reparsed_expression_evaluates_identically(self, text):
        rpn = compile_expression(text)
        again = compile_expression(rpn_to_infix(rpn))
        xs = np.linspace(-2.0, 2.0, 17)
        np.testing.assert_array_equal(
            evaluate_array(again, {"x": xs}),
            evaluate_array(rpn, {"x": xs}),
        )

    @pytest.mark.parametrize("text", EXPRESSIONS)
    def test_rendering_is_a_fixed_point(self, text):
        once = rpn_to_infix(compile_expression(text))
        assert rpn_to_infix(compile_expression(once)) == once


class TestMalformed:
    def test_missing_operand(self):
        with pytest.raises(InvalidExpressionError):
            rpn_to_infix([Token("number", "1", 1.0), Token("operator", "+", precedence=2)])

    def test_leftover_values(self):
        with pytest.raises(InvalidExpressionError):
            rpn_to_infix([Token("number", "1", 1.0), Token("number", "2", 2.0)])

    def test_empty(self):
        with pytest.raises(InvalidExpressionError):
            rpn_to_infix([])
