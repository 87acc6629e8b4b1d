from unittest.mock import MagicMock, patch

import pytest

pytest.importorskip("pyodbc")

from dbmill.sqlserver.client import SqlServerClient  # noqa: E402


@pytest.fixture
def mock_pyodbc():
    with patch("dbmill.sqlserver.client.pyodbc") as mock_module:
        mock_connection = MagicMock()
        mock_cursor = MagicMock()
        mock_connection.cursor.return_value = mock_cursor
        mock_module.connect.return_value = mock_connection
        yield mock_module, mock_connection, mock_cursor


def test_client_connects_read_only(mock_pyodbc):
    mock_module, _, _ = mock_pyodbc

    client = SqlServerClient("DRIVER={x};SERVER=db01;")
    client.connect()

    mock_module.connect.assert_called_once_with(
        "DRIVER={x};SERVER=db01;", autocommit=True, readonly=True
    )


def test_client_applies_timeout(mock_pyodbc):
    mock_module, mock_connection, _ = mock_pyodbc

    client = SqlServerClient("DRIVER={x};SERVER=db01;", timeout=15)
    client.connect()

    mock_module.connect.assert_called_once_with(
        "DRIVER={x};SERVER=db01;", autocommit=True, readonly=True, timeout=15
    )
    assert mock_connection.timeout == 15


def test_client_fetchall_returns_dicts(mock_pyodbc):
    _, _, mock_cursor = mock_pyodbc
    mock_cursor.description = [("id",), ("name",)]
    mock_cursor.fetchall.return_value = [(1, "Orders"), (2, "Customers")]

    client = SqlServerClient("DRIVER={x};SERVER=db01;")
    client.connect()
    rows = client.fetchall("SELECT id, name FROM t")

    mock_cursor.execute.assert_called_once_with("SELECT id, name FROM t")
    assert rows == [{"id": 1, "name": "Orders"}, {"id": 2, "name": "Customers"}]
    mock_cursor.close.assert_called_once()


def test_client_fetchone_returns_first_row_or_none(mock_pyodbc):
    _, _, mock_cursor = mock_pyodbc
    mock_cursor.description = [("version",)]
    mock_cursor.fetchall.return_value = [(15,)]

    client = SqlServerClient("DRIVER={x};SERVER=db01;")
    client.connect()
    assert client.fetchone("SELECT 15 AS version") == {"version": 15}

    mock_cursor.fetchall.return_value = []
    assert client.fetchone("SELECT 1 WHERE 1 = 0") is None


def test_client_iterate_streams_batches(mock_pyodbc):
    _, _, mock_cursor = mock_pyodbc
    mock_cursor.description = [("name",)]
    mock_cursor.fetchmany.side_effect = [[("a",), ("b",)], [("c",)], []]

    client = SqlServerClient("DRIVER={x};SERVER=db01;")
    client.connect()
    names = [row["name"] for row in client.iterate("SELECT name FROM t", batch_size=2)]

    assert names == ["a", "b", "c"]
    mock_cursor.fetchmany.assert_called_with(2)
    mock_cursor.close.assert_called_once()


def test_client_raises_when_not_connected():
    client = SqlServerClient("DRIVER={x};SERVER=db01;")

    with pytest.raises(RuntimeError, match="Not connected"):
        client.fetchall("SELECT 1")
    with pytest.raises(RuntimeError, match="Not connected"):
        list(client.iterate("SELECT 1"))


def test_client_connect_twice_raises(mock_pyodbc):
    client = SqlServerClient("DRIVER={x};SERVER=db01;")
    client.connect()

    with pytest.raises(RuntimeError, match="Already connected"):
        client.connect()


def test_client_context_manager_closes(mock_pyodbc):
    _, mock_connection, _ = mock_pyodbc

    with SqlServerClient("DRIVER={x};SERVER=db01;") as client:
        assert client is not None

    mock_connection.close.assert_called_once()
