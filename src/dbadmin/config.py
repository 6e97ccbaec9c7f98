"""Application configuration using pydantic-settings."""

from pathlib import Path
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via:
    1. Environment variables (e.g., DATA_DIR=/my/path)
    2. .env file in the project root

    The database path is derived from DATA_DIR by default but can be overridden.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # API settings
    api_title: str = "DB Admin API"
    api_version: str = "0.1.0"
    api_prefix: str = "/api"
    debug: bool = True  # Default to True for development

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8081

    # CORS (the admin UI is served from another origin)
    cors_allow_origins: list[str] = ["*"]

    # Storage paths
    data_dir: Path = Path("./data")
    database_path: Path | None = None

    # DuckDB settings
    duckdb_threads: int = 4
    duckdb_memory_limit: str = "4GB"

    # Free-form SQL guard: case-insensitive substrings rejected on the
    # query execution and query export endpoints
    query_denylist: list[str] = ["DROP", "DELETE"]

    # Backup/restore
    backup_filename: str = "db_backup.zip"
    max_upload_bytes: int = 512 * 1024 * 1024  # 512 MB

    @model_validator(mode="after")
    def set_default_paths(self) -> "Settings":
        """Set default paths based on data_dir if not explicitly provided."""
        if self.database_path is None:
            self.database_path = self.data_dir / "dbadmin.duckdb"
        return self

    @property
    def storage_paths(self) -> dict[str, Path]:
        """Return all storage paths for health check validation."""
        return {
            "data_dir": self.data_dir,
            "database_dir": self.database_path.parent,
        }


# Global settings instance
settings = Settings()
