"""Web administration service for a DuckDB database."""
