"""Identifier and column-type validation for generated SQL.

Table and column names cannot be bound as query parameters, so every name
that ends up in generated DDL/DML must pass ``validate_identifier`` first.
"""

import re

from dbadmin.exceptions import InvalidIdentifier, MalformedColumnSpec, UnsupportedType

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Column type tokens accepted on create/alter, in the order the UI lists them
ALLOWED_TYPES = (
    "INTEGER",
    "SERIAL",
    "VARCHAR(255)",
    "TEXT",
    "BOOLEAN",
    "DATE",
    "TIMESTAMP",
    "FLOAT",
    "JSON",
    "UUID",
)

# DuckDB spelling of each token. SERIAL is expanded by the DDL layer into a
# sequence-backed INTEGER.
DUCKDB_TYPES = {
    "INTEGER": "INTEGER",
    "SERIAL": "INTEGER",
    "VARCHAR(255)": "VARCHAR(255)",
    "TEXT": "TEXT",
    "BOOLEAN": "BOOLEAN",
    "DATE": "DATE",
    "TIMESTAMP": "TIMESTAMP",
    "FLOAT": "DOUBLE",
    "JSON": "JSON",
    "UUID": "UUID",
}


def is_valid_identifier(name: str) -> bool:
    """Return True if ``name`` may be interpolated into SQL as an identifier."""
    return isinstance(name, str) and IDENTIFIER_PATTERN.fullmatch(name) is not None


def validate_identifier(name: str, kind: str = "identifier") -> str:
    """Return ``name`` unchanged or raise InvalidIdentifier."""
    if not is_valid_identifier(name):
        raise InvalidIdentifier(
            f"Invalid {kind} name: {name!r}. Use letters, digits and _ only, "
            "not starting with a digit",
            {"kind": kind, "name": name},
        )
    return name


def normalize_type(type_token: str) -> str:
    """Return the canonical spelling of an allowed type token.

    Raises:
        UnsupportedType: if the token is not in ALLOWED_TYPES
    """
    normalized = (type_token or "").strip().upper()
    if normalized not in ALLOWED_TYPES:
        raise UnsupportedType(
            f"Unsupported column type: {type_token!r}",
            {"type": type_token, "allowed_types": list(ALLOWED_TYPES)},
        )
    return normalized


def parse_column_spec(spec: str) -> tuple[str, str]:
    """Split and validate a ``name:TYPE`` column spec.

    Returns:
        Tuple of (column name, canonical type token)
    """
    parts = spec.split(":", 1) if isinstance(spec, str) else []
    if len(parts) != 2:
        raise MalformedColumnSpec(
            f"Invalid column spec: {spec!r}. Expected name:type",
            {"spec": spec},
        )
    name, type_token = parts
    validate_identifier(name, "column")
    return name, normalize_type(type_token)


def quote(name: str) -> str:
    """Quote an already validated identifier."""
    return f'"{name}"'
