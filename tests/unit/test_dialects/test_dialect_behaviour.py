"""Per-backend paging, quoting, parameter rendering and connection arguments."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from dalite.dialects import (
    Dialect,
    MySQLDialect,
    PostgreSQLDialect,
    SQLServerDialect,
    get_dialect,
    normalize_paging,
    register_dialect,
    registered_providers,
)
from dalite.exceptions import InvalidArgumentError, MissingDependencyError, UnsupportedProviderError
from dalite.parameters import TypedParameter
from dalite.utils.sync_tools import ThreadedConnection

pytestmark = pytest.mark.anyio


@pytest.mark.parametrize(
    ("page_number", "page_size", "expected"),
    [(2, 25, (2, 25)), (0, 10, (1, 10)), (-3, -1, (1, 10)), ("2", 5, (1, 5)), (True, 5, (1, 5)), (3, None, (3, 10))],
)
def test_normalize_paging(page_number: object, page_size: object, expected: tuple[int, int]) -> None:
    assert normalize_paging(page_number, page_size) == expected


def test_sqlserver_paging_clause() -> None:
    dialect = SQLServerDialect("Server=localhost")
    paged = dialect.apply_paging("SELECT * FROM Users ORDER BY Id;", 3, 20)
    assert paged == "SELECT * FROM Users ORDER BY Id\nOFFSET 40 ROWS FETCH NEXT 20 ROWS ONLY"


@pytest.mark.parametrize("dialect_cls", [PostgreSQLDialect, MySQLDialect])
def test_limit_offset_paging(dialect_cls: type[Dialect]) -> None:
    dialect = dialect_cls("Host=localhost")
    paged = dialect.apply_paging("SELECT * FROM users ORDER BY id", 0, 0)
    assert paged == "SELECT * FROM users ORDER BY id\nLIMIT 10 OFFSET 0"
    assert dialect.apply_paging("SELECT 1", 4, 5).endswith("LIMIT 5 OFFSET 15")


def test_paging_survives_trailing_line_comment() -> None:
    paged = PostgreSQLDialect("Host=x").apply_paging("SELECT * FROM users ORDER BY id -- newest last", 2, 5)
    assert paged.splitlines() == ["SELECT * FROM users ORDER BY id -- newest last", "LIMIT 5 OFFSET 5"]


def test_postgres_binds_placeholders_inside_arrays() -> None:
    dialect = PostgreSQLDialect("postgresql://app@localhost/orders")
    sql, params = dialect.prepare("SELECT * FROM t WHERE id = ANY(ARRAY[@a, @b])", {"a": 1, "b": 2})
    assert sql == "SELECT * FROM t WHERE id = ANY(ARRAY[%(a)s, %(b)s])"
    assert params == {"a": 1, "b": 2}
    sql, params = dialect.prepare("SELECT tags[@i] FROM t", {"i": 1})
    assert sql == "SELECT tags[%(i)s] FROM t"
    assert params == {"i": 1}


def test_mysql_binds_placeholders_inside_brackets() -> None:
    sql, params = MySQLDialect("Host=x").prepare("SELECT JSON_EXTRACT(doc, '$[0]'), [@a]", {"a": 3})
    assert sql == "SELECT JSON_EXTRACT(doc, '$[0]'), [%(a)s]"
    assert params == {"a": 3}


def test_sqlserver_keeps_bracketed_identifiers() -> None:
    sql, params = SQLServerDialect("Server=x").prepare("SELECT [@a], @a FROM [dbo].[Users]", {"a": 3})
    assert sql == "SELECT [@a], %(a)s FROM [dbo].[Users]"
    assert params == {"a": 3}


def test_quote_identifier() -> None:
    assert SQLServerDialect("Server=x").quote_identifier("dbo.Users") == "[dbo].[Users]"
    assert SQLServerDialect("Server=x").quote_identifier("[dbo].Order") == "[dbo].[Order]"
    assert MySQLDialect("Host=x").quote_identifier("odd`name") == "`odd``name`"
    assert PostgreSQLDialect("Host=x").quote_identifier("public.users") == '"public"."users"'


def test_plain_values_pass_through_coercion_map() -> None:
    mysql = MySQLDialect("Host=x")
    assert mysql.render_parameter("flag", True) == 1
    assert mysql.render_parameter("doc", {"a": 1}) == '{"a":1}'
    assert mysql.render_parameter("amount", Decimal("1.5")) == Decimal("1.5")
    assert mysql.render_parameter("missing", None) is None
    postgres = PostgreSQLDialect("Host=x")
    assert postgres.render_parameter("flag", True) is True
    assert postgres.render_parameter("items", [1, 2]) == [1, 2]


def test_typed_parameters_are_not_recoerced() -> None:
    mysql = MySQLDialect("Host=x")
    assert mysql.render_parameter("flag", TypedParameter(True, "bit")) is True


def test_postgres_json_typed_parameters() -> None:
    json_types = pytest.importorskip("psycopg.types.json")
    dialect = PostgreSQLDialect("Host=x")
    assert isinstance(dialect.render_parameter("doc", TypedParameter({"a": 1}, "jsonb")), json_types.Jsonb)
    assert isinstance(dialect.render_parameter("doc", TypedParameter({"a": 1}, "JSON")), json_types.Json)
    assert dialect.render_parameter("doc", TypedParameter(None, "jsonb")) is None


def test_prepare_uses_pyformat() -> None:
    sql, params = SQLServerDialect("Server=x").prepare("SELECT * FROM t WHERE a = @a AND b LIKE '%x'", {"@a": False})
    assert sql == "SELECT * FROM t WHERE a = %(a)s AND b LIKE '%%x'"
    assert params == {"a": 0}


def test_sqlserver_connect_kwargs() -> None:
    dialect = SQLServerDialect(
        "Server=db,1444;Database=Shop;User Id=sa;Password=pw;Application Name=shop;Connect Timeout=5"
    )
    assert dialect.connect_kwargs(timeout=30) == {
        "server": "db",
        "port": "1444",
        "database": "Shop",
        "user": "sa",
        "password": "pw",
        "appname": "shop",
        "login_timeout": 5,
        "timeout": 30,
    }


def test_sqlserver_connect_uses_pymssql() -> None:
    driver = MagicMock()
    with patch("dalite.dialects.sqlserver._import_pymssql", return_value=driver):
        connection = SQLServerDialect("Server=db;Database=Shop").connect(timeout=10)
    driver.connect.assert_called_once_with(server="db", database="Shop", timeout=10)
    assert connection is driver.connect.return_value


async def test_sqlserver_async_connect_runs_in_thread() -> None:
    driver = MagicMock()
    with patch("dalite.dialects.sqlserver._import_pymssql", return_value=driver):
        connection = await SQLServerDialect("Server=db").connect_async()
    assert isinstance(connection, ThreadedConnection)
    assert connection.raw is driver.connect.return_value


def test_mysql_connect_kwargs() -> None:
    dialect = MySQLDialect("Server=db;Database=app;Uid=root;Pwd=secret;CharSet=latin1")
    assert dialect.connect_kwargs(timeout=15) == {
        "host": "db",
        "port": 3306,
        "database": "app",
        "user": "root",
        "password": "secret",
        "charset": "latin1",
        "read_timeout": 15,
        "write_timeout": 15,
    }
    assert MySQLDialect("mysql://u:p@h:3307/d").connect_kwargs()["charset"] == "utf8mb4"


async def test_mysql_async_connect_uses_asyncmy() -> None:
    driver = MagicMock()
    driver.connect = AsyncMock(return_value="connection")
    with patch("dalite.dialects.mysql._import_asyncmy", return_value=driver):
        assert await MySQLDialect("Host=h;Database=d").connect_async(timeout=5) == "connection"
    driver.connect.assert_awaited_once_with(host="h", database="d", port=3306, charset="utf8mb4")


def test_postgres_connect_arguments() -> None:
    url = "postgresql://app@localhost/orders"
    assert PostgreSQLDialect(url).connect_arguments() == (url, {})
    assert PostgreSQLDialect("host=localhost dbname=orders").connect_arguments(2) == (
        "host=localhost dbname=orders",
        {"options": "-c statement_timeout=2000"},
    )
    conninfo, kwargs = PostgreSQLDialect(
        "Host=pg;Port=5433;Database=orders;Username=app;Password=pw;SSL Mode=Require;Timeout=4"
    ).connect_arguments()
    assert conninfo == ""
    assert kwargs == {
        "host": "pg",
        "port": 5433,
        "dbname": "orders",
        "user": "app",
        "password": "pw",
        "sslmode": "require",
        "connect_timeout": 4,
    }


def test_missing_driver_raises_missing_dependency() -> None:
    with patch.dict("sys.modules", {"pymssql": None}):
        with pytest.raises(MissingDependencyError, match="sqlserver"):
            SQLServerDialect("Server=x").connect()


def test_registry() -> None:
    assert get_dialect("PostgreSQL") is PostgreSQLDialect
    assert {"mysql", "postgresql", "sqlserver"} <= set(registered_providers())
    with pytest.raises(UnsupportedProviderError):
        get_dialect("oracle")
    with pytest.raises(InvalidArgumentError):
        register_dialect("bogus", object)  # type: ignore[arg-type]
    with pytest.raises(InvalidArgumentError):
        register_dialect("  ", MySQLDialect)
