from decimal import Decimal

import pytest

from rowgrid.query.quoting import quote_ident, quote_literal, quote_table


def test_quote_ident_plain():
    assert quote_ident("age") == '"age"'


def test_quote_ident_escapes_double_quotes():
    assert quote_ident('we"ird') == '"we""ird"'
    assert quote_ident('select"; drop table x; --') == '"select""; drop table x; --"'


def test_quote_table():
    assert quote_table({"schema": "public", "name": "Users"}) == '"public"."Users"'


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, "null"),
        (True, "true"),
        (False, "false"),
        (5, "5"),
        (-1.5, "-1.5"),
        (Decimal("10.20"), "10.20"),
        ("abc", "'abc'"),
        ("it's", "'it''s'"),
        ("", "''"),
        (["a", 1, None], "('a',1,null)"),
    ],
)
def test_quote_literal(value, expected):
    assert quote_literal(value) == expected


def test_quote_literal_backslash_uses_escape_string():
    assert quote_literal("a\\b") == "E'a\\\\b'"


def test_quote_literal_non_finite_floats_are_text():
    assert quote_literal(float("nan")) == "'NaN'"
    assert quote_literal(float("inf")) == "'Infinity'"
    assert quote_literal(float("-inf")) == "'-Infinity'"


@pytest.mark.parametrize("text", ["'", "''", "a'; drop table x; --", "\\'", "'\\", '"', ";", "\\"])
def test_quote_literal_never_terminates_early(text):
    out = quote_literal(text)
    body = out[2:-1] if out.startswith("E'") else out[1:-1]
    assert out.endswith("'")
    # внутри литерала одинарные кавычки только парами
    assert body.replace("''", "").count("'") == 0
    unescaped = body.replace("''", "'")
    if out.startswith("E'"):
        unescaped = unescaped.replace("\\\\", "\\")
    assert unescaped == text
