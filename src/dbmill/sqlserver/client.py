from collections.abc import Iterator
from typing import Any, Optional

import pyodbc


class SqlServerClient:
    """Thin wrapper around pyodbc for read-only catalog queries.

    ``timeout`` bounds both the login and every statement issued through
    this client.
    """

    def __init__(self, connection_string: str, timeout: Optional[int] = None) -> None:
        self._connection_string = connection_string
        self._timeout = timeout
        self._connection: pyodbc.Connection | None = None

    def connect(self) -> None:
        """Open the connection. Must be called before fetchall/iterate."""
        if self._connection is not None:
            raise RuntimeError("Already connected. Call close() before reconnecting.")

        kwargs: dict[str, Any] = {"autocommit": True, "readonly": True}
        if self._timeout:
            kwargs["timeout"] = self._timeout

        self._connection = pyodbc.connect(self._connection_string, **kwargs)
        if self._timeout:
            self._connection.timeout = self._timeout

    def fetchall(self, sql_statement: str) -> list[dict[str, Any]]:
        if self._connection is None:
            raise RuntimeError("Not connected. Call connect() first.")
        cursor = self._connection.cursor()
        try:
            cursor.execute(sql_statement)
            columns = [column[0] for column in cursor.description]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]
        finally:
            cursor.close()

    def fetchone(self, sql_statement: str) -> dict[str, Any] | None:
        rows = self.fetchall(sql_statement)
        return rows[0] if rows else None

    def iterate(
        self, sql_statement: str, batch_size: int = 100
    ) -> Iterator[dict[str, Any]]:
        """Stream rows in batches instead of materializing the result set."""
        if self._connection is None:
            raise RuntimeError("Not connected. Call connect() first.")
        cursor = self._connection.cursor()
        try:
            cursor.execute(sql_statement)
            columns = [column[0] for column in cursor.description]
            while True:
                rows = cursor.fetchmany(batch_size)
                if not rows:
                    break
                for row in rows:
                    yield dict(zip(columns, row))
        finally:
            cursor.close()

    def close(self) -> None:
        if self._connection is not None:
            try:
                self._connection.close()
            finally:
                self._connection = None

    def __enter__(self) -> "SqlServerClient":
        self.connect()
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()
