import pytest

from dalite.core.splitter import split_sql_script
from dalite.exceptions import InvalidArgumentError


def test_split_simple_script() -> None:
    assert split_sql_script("SELECT 1; SELECT 2;") == ("SELECT 1", "SELECT 2")


def test_semicolons_inside_literals_and_comments() -> None:
    script = "SELECT 'a;b' AS x; -- trailing; comment\nSELECT \"c;d\" FROM t"
    assert split_sql_script(script) == ("SELECT 'a;b' AS x", "-- trailing; comment\nSELECT \"c;d\" FROM t")


def test_empty_statements_are_dropped() -> None:
    assert split_sql_script(";;SELECT 1;;  ;") == ("SELECT 1",)
    assert split_sql_script("   ") == ()


def test_case_expression_does_not_open_statement_block() -> None:
    script = "SELECT CASE WHEN a = 1 THEN 'x' ELSE 'y' END FROM t; SELECT 2"
    assert split_sql_script(script) == ("SELECT CASE WHEN a = 1 THEN 'x' ELSE 'y' END FROM t", "SELECT 2")


def test_tsql_begin_end_block_kept_whole() -> None:
    script = "IF 1 = 1 BEGIN SELECT 1; SELECT 2; END; SELECT 3"
    assert split_sql_script(script, "tsql") == ("IF 1 = 1 BEGIN SELECT 1; SELECT 2; END", "SELECT 3")


def test_begin_transaction_is_a_statement() -> None:
    assert split_sql_script("BEGIN TRANSACTION; SELECT 1; COMMIT", "tsql") == (
        "BEGIN TRANSACTION",
        "SELECT 1",
        "COMMIT",
    )


def test_placeholders_survive_splitting() -> None:
    assert split_sql_script("SELECT @id; SELECT @name", "tsql") == ("SELECT @id", "SELECT @name")


def test_unterminated_literal_rejected() -> None:
    with pytest.raises(InvalidArgumentError):
        split_sql_script("SELECT 'unterminated")
