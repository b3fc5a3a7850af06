"""Member register records, SQLite schema migrations, storage, CSV imports and request guards."""

__version__ = "0.1.0"

__all__ = ["__version__"]