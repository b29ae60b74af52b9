"""Pick a schema reader for the configured provider."""

from typing import Dict
from sqlalchemy.engine import URL
from efrev.config.settings import Settings
from efrev.errors import UnsupportedProviderError
from efrev.readers.base import BaseSchemaReader
from efrev.readers.snapshot_reader import SnapshotSchemaReader
from efrev.readers.sqlalchemy_reader import SqlAlchemySchemaReader
from efrev.config.logging import get_logger

logger = get_logger(__name__)

SQL_SERVER = "sqlserver"
MYSQL = "mysql"
POSTGRESQL = "postgresql"
SQLITE = "sqlite"
SNAPSHOT = "snapshot"

# Provider names accepted in settings (case-insensitive), including ADO.NET invariant names
PROVIDER_ALIASES = {
    "sqlserver": SQL_SERVER,
    "mssql": SQL_SERVER,
    "system.data.sqlclient": SQL_SERVER,
    "microsoft.data.sqlclient": SQL_SERVER,
    "mysql": MYSQL,
    "mysql.data.mysqlclient": MYSQL,
    "mysqlconnector": MYSQL,
    "postgresql": POSTGRESQL,
    "postgres": POSTGRESQL,
    "npgsql": POSTGRESQL,
    "sqlite": SQLITE,
    "snapshot": SNAPSHOT,
}

_MYSQL_KEYS = {
    "server": "host",
    "host": "host",
    "data source": "host",
    "port": "port",
    "database": "database",
    "initial catalog": "database",
    "uid": "username",
    "user id": "username",
    "user": "username",
    "username": "username",
    "pwd": "password",
    "password": "password",
}


def resolve_provider(name: str) -> str:
    """
    Canonical provider key for a configured provider name.

    Raises:
        UnsupportedProviderError: If no reader handles the provider
    """
    provider = PROVIDER_ALIASES.get((name or "").strip().lower())
    if provider is None:
        supported = ", ".join(sorted({"SqlServer", "MySql", "PostgreSql", "Sqlite", "Snapshot"}))
        raise UnsupportedProviderError(f"Unsupported provider: {name}. Supported: {supported}")
    return provider


def parse_ado_connection_string(connection_string: str) -> Dict[str, str]:
    """Split 'Key=Value;Key=Value' into a lower-cased key dictionary."""
    parts = {}
    for segment in connection_string.split(";"):
        if "=" not in segment:
            continue
        key, value = segment.split("=", 1)
        parts[key.strip().lower()] = value.strip()
    return parts


def to_sqlalchemy_url(provider: str, connection_string: str) -> str:
    """
    Database URL for SQLAlchemy.

    URLs ('dialect+driver://...') are used unchanged. ADO.NET-style
    connection strings are converted: SQL Server through pyodbc's
    odbc_connect, MySQL into a PyMySQL URL.
    """
    if "://" in connection_string:
        return connection_string

    if provider == SQL_SERVER:
        url = URL.create("mssql+pyodbc", query={"odbc_connect": connection_string})
        return url.render_as_string(hide_password=False)

    if provider == MYSQL:
        fields = {}
        for key, value in parse_ado_connection_string(connection_string).items():
            if key in _MYSQL_KEYS:
                fields[_MYSQL_KEYS[key]] = value
        if "port" in fields:
            fields["port"] = int(fields["port"])
        return URL.create("mysql+pymysql", **fields).render_as_string(hide_password=False)

    if provider == SQLITE:
        return f"sqlite:///{connection_string}"

    return connection_string


def create_schema_reader(settings: Settings) -> BaseSchemaReader:
    """
    Build the schema reader for settings.provider.

    Args:
        settings: Settings with provider, connection_string and schema_name

    Returns:
        A snapshot reader or a SQLAlchemy reader

    Raises:
        UnsupportedProviderError: If the provider is unknown
    """
    provider = resolve_provider(settings.provider)
    if provider == SNAPSHOT:
        logger.debug(f"Using snapshot reader for {settings.connection_string}")
        return SnapshotSchemaReader(settings.connection_string)

    url = to_sqlalchemy_url(provider, settings.connection_string or "")
    reader = SqlAlchemySchemaReader(url, schema=settings.schema_name)
    logger.debug(f"Using SQLAlchemy reader ({provider}) for {reader.masked_url}")
    return reader
