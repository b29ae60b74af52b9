"""SQL column types to C# property types."""

from efrev.schema.models import Column

SQL_TO_CLR = {
    # integers
    "int": "int",
    "integer": "int",
    "int4": "int",
    "mediumint": "int",
    "serial": "int",
    "bigint": "long",
    "int8": "long",
    "bigserial": "long",
    "smallint": "short",
    "int2": "short",
    "tinyint": "byte",
    # booleans
    "bit": "bool",
    "bool": "bool",
    "boolean": "bool",
    # exact and approximate numerics
    "decimal": "decimal",
    "numeric": "decimal",
    "money": "decimal",
    "smallmoney": "decimal",
    "float": "double",
    "double": "double",
    "double precision": "double",
    "float8": "double",
    "real": "float",
    "float4": "float",
    # dates and times
    "date": "DateTime",
    "datetime": "DateTime",
    "datetime2": "DateTime",
    "smalldatetime": "DateTime",
    "timestamp": "DateTime",
    "timestamp without time zone": "DateTime",
    "datetimeoffset": "DateTimeOffset",
    "timestamp with time zone": "DateTimeOffset",
    "timestamptz": "DateTimeOffset",
    "time": "TimeSpan",
    "interval": "TimeSpan",
    "year": "short",
    # identifiers
    "uniqueidentifier": "Guid",
    "uuid": "Guid",
    # binary
    "binary": "byte[]",
    "varbinary": "byte[]",
    "image": "byte[]",
    "blob": "byte[]",
    "tinyblob": "byte[]",
    "mediumblob": "byte[]",
    "longblob": "byte[]",
    "bytea": "byte[]",
    "rowversion": "byte[]",
}

REFERENCE_TYPES = {"string", "byte[]"}


def _base_type_name(data_type: str) -> str:
    """Strip length/precision arguments and unsigned markers: 'DECIMAL(10,2) UNSIGNED' -> 'decimal'."""
    name = data_type.split("(", 1)[0].strip().lower()
    for suffix in (" unsigned", " zerofill"):
        if name.endswith(suffix):
            name = name[: -len(suffix)].strip()
    return name


def clr_type_for(column: Column) -> str:
    """
    C# type for a column, with '?' for nullable value types.

    Unknown SQL types map to string. MySQL tinyint(1) maps to bool.
    """
    data_type = column.data_type or ""
    base = _base_type_name(data_type)
    if base == "tinyint" and data_type.replace(" ", "").lower().startswith("tinyint(1)"):
        clr = "bool"
    else:
        clr = SQL_TO_CLR.get(base, "string")

    if column.nullable and clr not in REFERENCE_TYPES:
        clr += "?"
    return clr


def is_string_type(clr_type: str) -> bool:
    return clr_type == "string"
