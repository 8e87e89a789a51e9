import pytest

from rowgrid.query.literals import (
    LiteralKind,
    array_literal,
    coerce_field_value,
    coerce_filter_value,
    parse_number,
)
from rowgrid.query.types import Operator


@pytest.mark.parametrize(
    "text, expected",
    [("5", 5), (" 2.50 ", 2.5), ("-3", -3), ("1e3", 1000.0), ("007", 7)],
)
def test_parse_number(text, expected):
    assert parse_number(text) == expected


@pytest.mark.parametrize("text", ["", "  ", "abc", "NaN", "Infinity", "-inf", "1_000", "5px"])
def test_parse_number_rejects(text):
    assert parse_number(text) is None


def test_is_keywords_are_bare():
    lit = coerce_filter_value(Operator.IS, "null")
    assert lit.kind is LiteralKind.KEYWORD
    assert lit.render() == "null"
    assert coerce_filter_value(Operator.IS, "NOT  NULL").render() == "not null"
    assert coerce_filter_value(Operator.IS, "True").render() == "true"


def test_is_with_other_value_goes_through_literal_path():
    assert coerce_filter_value(Operator.IS, "maybe").render() == "'maybe'"


def test_equality_number():
    lit = coerce_filter_value(Operator.EQ, "5")
    assert lit.kind is LiteralKind.NUMBER
    assert lit.render() == "5"


def test_equality_text():
    assert coerce_filter_value(Operator.EQ, "bob").render() == "'bob'"


def test_in_list():
    assert coerce_filter_value(Operator.IN, "a,b,c").render() == "('a','b','c')"
    assert coerce_filter_value(Operator.IN, " 1, x ,3").render() == "(1,'x',3)"


def test_field_values():
    assert coerce_field_value(None).render() == "null"
    assert coerce_field_value(True).render() == "true"
    assert coerce_field_value(3).render() == "3"
    assert coerce_field_value("12").render() == "12"
    assert coerce_field_value("twelve").render() == "'twelve'"
    assert coerce_field_value({"a": 1}).render() == "'{\"a\": 1}'"


def test_flat_array():
    assert array_literal([1, 2, 3]) == "{1,2,3}"
    assert coerce_field_value(["a", "b"]).render() == "'{a,b}'"


def test_nested_array_and_special_elements():
    assert array_literal([[1, 2], [3, 4]]) == "{{1,2},{3,4}}"
    assert array_literal(["a b", "x,y", None, "null", ""]) == '{"a b","x,y",NULL,"null",""}'
    assert array_literal(['say "hi"', "[1]"]) == '{"say \\"hi\\"",[1]}'
