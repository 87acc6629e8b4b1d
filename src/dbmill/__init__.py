"""dbmill: SQL Server schema scripting."""

__version__ = "0.4.0"
