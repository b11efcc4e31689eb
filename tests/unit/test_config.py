from pathlib import Path

import pytest

from dalite.config import DatabaseConfig, DatabaseProvider, DatabaseSettings, normalize_provider
from dalite.exceptions import ConfigurationError, UnsupportedProviderError


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("SqlServer", DatabaseProvider.SQLSERVER),
        ("mssql", DatabaseProvider.SQLSERVER),
        (" PostgreSQL ", DatabaseProvider.POSTGRESQL),
        ("postgres", DatabaseProvider.POSTGRESQL),
        ("MySql", DatabaseProvider.MYSQL),
        (DatabaseProvider.MYSQL, DatabaseProvider.MYSQL),
    ],
)
def test_provider_aliases(value: object, expected: DatabaseProvider) -> None:
    assert DatabaseProvider.parse(value) is expected


def test_unknown_provider() -> None:
    with pytest.raises(UnsupportedProviderError) as exc_info:
        DatabaseProvider.parse("Oracle")
    assert exc_info.value.provider == "Oracle"
    assert normalize_provider(" Oracle ") == "oracle"


def test_config_validates_fields() -> None:
    config = DatabaseConfig("postgres", "Host=pg")
    assert config.provider is DatabaseProvider.POSTGRESQL
    assert config.provider_tag == "postgresql"
    assert DatabaseConfig("SQLite", ":memory:").provider == "sqlite"
    with pytest.raises(ConfigurationError):
        DatabaseConfig("mysql", "  ")
    with pytest.raises(ConfigurationError):
        DatabaseConfig(None, "Host=x")  # type: ignore[arg-type]


def test_from_mapping_is_case_insensitive() -> None:
    settings = DatabaseSettings.from_mapping(
        {
            "Connections": {
                "Primary": {"Provider": "SqlServer", "ConnectionString": "Server=db;Database=Shop"},
                "reports": {"provider": "postgresql", "connection_string": "postgresql://app@pg/reports"},
            }
        }
    )
    assert settings.get("Primary").provider is DatabaseProvider.SQLSERVER
    assert settings.get("reports").connection_string == "postgresql://app@pg/reports"


def test_missing_connection_key() -> None:
    settings = DatabaseSettings()
    with pytest.raises(ConfigurationError, match="Connection key 'Primary' not found in configuration."):
        settings.get("Primary")


@pytest.mark.parametrize(
    "data",
    [
        [],
        {"Connections": []},
        {"Connections": {"a": "Server=x"}},
        {"Connections": {"a": {"ConnectionString": "Server=x"}}},
        {"Connections": {"a": {"Provider": "mysql"}}},
    ],
)
def test_from_mapping_rejects_bad_shapes(data: object) -> None:
    with pytest.raises(ConfigurationError):
        DatabaseSettings.from_mapping(data)  # type: ignore[arg-type]


def test_from_file(tmp_path: Path) -> None:
    path = tmp_path / "appsettings.json"
    path.write_text('{"connections": {"main": {"provider": "mysql", "connectionString": "Server=m;Database=d"}}}')
    assert DatabaseSettings.from_file(path).get("main").provider is DatabaseProvider.MYSQL
    with pytest.raises(ConfigurationError):
        DatabaseSettings.from_json("{not json")
