"""SQL Server connectivity."""
