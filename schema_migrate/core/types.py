"""Dialect-independent type vocabulary.

``normalize_type`` folds a dialect spelling into one canonical name from a
closed set. Parameterized canonical types keep their parameters
(``VARCHAR(n)``, ``CHAR(n)``, ``DECIMAL(p,s)``, ``NUMERIC(p,s)``). Anything
not recognized comes back unchanged.
"""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Mapping

INTEGER = "INTEGER"
BIGINT = "BIGINT"
SMALLINT = "SMALLINT"
BOOLEAN = "BOOLEAN"
TEXT = "TEXT"
TIMESTAMP = "TIMESTAMP"
TIMESTAMP_TZ = "TIMESTAMP_TZ"
DATE = "DATE"
TIME = "TIME"
REAL = "REAL"
DOUBLE = "DOUBLE"
BINARY = "BINARY"
JSON = "JSON"
UUID = "UUID"

DEFAULT_VARCHAR = "VARCHAR(255)"

_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "INT": INTEGER,
        "INTEGER": INTEGER,
        "INT4": INTEGER,
        "MEDIUMINT": INTEGER,
        "BIGINT": BIGINT,
        "INT8": BIGINT,
        "SMALLINT": SMALLINT,
        "INT2": SMALLINT,
        "TINYINT": SMALLINT,
        "BOOLEAN": BOOLEAN,
        "BOOL": BOOLEAN,
        "BIT": BOOLEAN,
        "TINYINT(1)": BOOLEAN,
        "TEXT": TEXT,
        "TINYTEXT": TEXT,
        "MEDIUMTEXT": TEXT,
        "LONGTEXT": TEXT,
        "NTEXT": TEXT,
        "CLOB": TEXT,
        "TIMESTAMP": TIMESTAMP,
        "TIMESTAMP WITHOUT TIME ZONE": TIMESTAMP,
        "DATETIME": TIMESTAMP,
        "DATETIME2": TIMESTAMP,
        "SMALLDATETIME": TIMESTAMP,
        "TIMESTAMP WITH TIME ZONE": TIMESTAMP_TZ,
        "TIMESTAMPTZ": TIMESTAMP_TZ,
        "DATETIMEOFFSET": TIMESTAMP_TZ,
        "DATE": DATE,
        "TIME": TIME,
        "TIME WITHOUT TIME ZONE": TIME,
        "FLOAT": REAL,
        "FLOAT4": REAL,
        "REAL": REAL,
        "DOUBLE": DOUBLE,
        "DOUBLE PRECISION": DOUBLE,
        "FLOAT8": DOUBLE,
        "BYTEA": BINARY,
        "BLOB": BINARY,
        "MEDIUMBLOB": BINARY,
        "LONGBLOB": BINARY,
        "VARBINARY(MAX)": BINARY,
        "IMAGE": BINARY,
        "JSON": JSON,
        "JSONB": JSON,
        "UUID": UUID,
        "UNIQUEIDENTIFIER": UUID,
    }
)

_VARCHAR_PREFIXES = ("VARCHAR", "NVARCHAR", "CHARACTER VARYING", "CHAR VARYING", "VARCHAR2")
_VARCHAR_LENGTH = re.compile(r"\(\s*(\d+|MAX)\s*\)")
# fractional-seconds precision: TIMESTAMP(3), TIMESTAMPTZ(6), TIME(0) WITH TIME ZONE
_TEMPORAL_PRECISION = re.compile(r"^(TIMESTAMPTZ|TIMESTAMP|TIMETZ|TIME|DATETIME2|DATETIMEOFFSET|DATETIME)\s*\(\s*\d+\s*\)")
_WITH_TIME_ZONE = re.compile(r"^TIMESTAMP(?:TZ\b|.*\bWITH TIME ZONE\b)")

IDENTITY_TYPES = frozenset({"SERIAL", "BIGSERIAL", "SMALLSERIAL", "SERIAL2", "SERIAL4", "SERIAL8"})


def clean_type(raw: str) -> str:
    return " ".join(raw.upper().split())


def normalize_type(raw: str) -> str:
    t = clean_type(raw)
    t = _TEMPORAL_PRECISION.sub(r"\1", t)

    alias = _ALIASES.get(t)
    if alias is not None:
        return alias

    if t.startswith(_VARCHAR_PREFIXES):
        m = _VARCHAR_LENGTH.search(t)
        if m:
            if m.group(1) == "MAX":
                return TEXT
            return f"VARCHAR({m.group(1)})"
        return DEFAULT_VARCHAR

    # CHAR(n), DECIMAL(p,s), NUMERIC(p,s) are canonical as written; unknown
    # types fall through the same way.
    return t


def is_identity_type(raw: str) -> bool:
    """True for types that are auto-increment by themselves (SERIAL family)."""
    return clean_type(raw).split("(")[0] in IDENTITY_TYPES


def is_big_integer(raw: str) -> bool:
    return "BIG" in raw.upper()


def has_time_zone(raw: str) -> bool:
    """True for timezone-bearing timestamps in any spelling, precision included."""
    return bool(_WITH_TIME_ZONE.match(clean_type(raw)))


# bare type keywords, used to tell "key VARCHAR (10)" from "KEY idx (col)"
TYPE_WORDS = frozenset(
    {k for k in _ALIASES if k.isalnum()}
    | {"VARCHAR", "NVARCHAR", "VARCHAR2", "CHAR", "NCHAR", "CHARACTER", "DECIMAL", "NUMERIC", "ENUM", "SET",
       "BINARY", "VARBINARY", "YEAR", "GEOMETRY", "POINT"}
    | IDENTITY_TYPES
)


def is_type_word(word: str) -> bool:
    return word.upper() in TYPE_WORDS
