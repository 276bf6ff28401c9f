"""Example-based SQL mapper with a fluent SQL builder and an SQLite connection pool."""

__version__ = "0.1.0"

__all__ = [
    "criteria",
    "database",
    "errors",
    "example",
    "schema",
    "sqlbuilder",
]