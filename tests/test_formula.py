import pytest

from src.phrase_engine.formula import FormulaError, calculate_formula, parse_formula


def test_bmi_formula():
    result = calculate_formula("bmi = weight / (height * height)", {"weight": 10, "height": 2})
    assert result == 2.5


def test_unsafe_formula_returns_none():
    assert calculate_formula("weight + alert(1)", {"weight": 10}) is None
    assert calculate_formula("x = __import__('os')", {}) is None
    assert calculate_formula("x = weight ** 2", {"weight": 3}) is None


def test_precedence_and_parentheses():
    assert calculate_formula("a + b * c", {"a": 1, "b": 2, "c": 3}) == 7
    assert calculate_formula("(a + b) * c", {"a": 1, "b": 2, "c": 3}) == 9
    assert calculate_formula("a - b - c", {"a": 10, "b": 3, "c": 2}) == 5
    assert calculate_formula("a / b / c", {"a": 24, "b": 3, "c": 2}) == 4


def test_unary_minus():
    assert calculate_formula("delta = -a + 5", {"a": 2}) == 3


def test_result_rounded_to_two_decimals():
    assert calculate_formula("r = a / b", {"a": 1, "b": 3}) == 0.33


def test_division_by_zero_returns_none():
    assert calculate_formula("r = a / b", {"a": 1, "b": 0}) is None


def test_missing_or_non_numeric_input_returns_none():
    assert calculate_formula("r = a + b", {"a": 1}) is None
    assert calculate_formula("r = a + b", {"a": 1, "b": "high"}) is None
    assert calculate_formula("r = a + b", {"a": 1, "b": True}) is None


def test_numeric_strings_are_accepted():
    assert calculate_formula("r = a * 2", {"a": "1.5"}) == 3


def test_malformed_formulas_return_none():
    assert calculate_formula("a = b = 1", {"b": 1}) is None
    assert calculate_formula("1x = 2", {}) is None
    assert calculate_formula("r = (1 + 2", {}) is None
    assert calculate_formula("r = 1 +", {}) is None
    assert calculate_formula("r = ", {}) is None
    assert calculate_formula("r = 1 2", {}) is None


def test_parse_formula_reports_target_and_inputs():
    target, names = parse_formula("bmi = weight / (height * height)")
    assert target == "bmi"
    assert names == ["weight", "height"]


def test_parse_formula_rejects_bad_grammar():
    with pytest.raises(FormulaError):
        parse_formula("x = max(a, b)")
