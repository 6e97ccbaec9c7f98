"""HTTP client for the DB Admin API."""

from typing import Any, BinaryIO
from pathlib import Path
import re

import httpx
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, DownloadColumn

from .config import CLIConfig, get_config

FILENAME_PATTERN = re.compile(r'filename="?([^";]+)"?')


class APIError(Exception):
    """API error with status code and details."""

    def __init__(self, status_code: int, message: str, details: dict | None = None):
        self.status_code = status_code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{status_code}] {message}")


def error_from_body(status_code: int, body: Any, fallback: str) -> APIError:
    """Build an APIError from a ``{"detail": ...}`` error body."""
    detail = body.get("detail", body) if isinstance(body, dict) else body
    if isinstance(detail, dict):
        return APIError(
            status_code,
            detail.get("message") or detail.get("error") or fallback,
            detail.get("details") or {},
        )
    if isinstance(detail, list):
        # Request validation errors
        messages = [f"{'.'.join(str(p) for p in item.get('loc', []))}: {item.get('msg')}"
                    for item in detail if isinstance(item, dict)]
        return APIError(status_code, "; ".join(messages) or fallback, {"errors": detail})
    return APIError(status_code, str(detail) if detail else fallback)


class DbAdminClient:
    """HTTP client for the DB Admin API."""

    def __init__(self, config: CLIConfig | None = None, verbose: bool = False):
        self.config = config or get_config()
        self.verbose = verbose
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(base_url=self.config.url, timeout=300.0)
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self) -> "DbAdminClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _handle_response(self, response: httpx.Response) -> Any:
        """Handle API response, raising error if not successful."""
        if self.verbose:
            print(f"  -> {response.status_code} ({response.elapsed.total_seconds():.2f}s)")

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            raise error_from_body(response.status_code, body, f"HTTP {response.status_code}")

        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    def get(self, path: str, params: dict | None = None) -> Any:
        """Make GET request."""
        if self.verbose:
            print(f"GET {path}")
        return self._handle_response(self.client.get(path, params=params))

    def post(self, path: str, json_data: Any = None) -> Any:
        """Make POST request with JSON body."""
        if self.verbose:
            print(f"POST {path}")
        return self._handle_response(self.client.post(path, json=json_data))

    def put(self, path: str, json_data: Any = None) -> Any:
        """Make PUT request with JSON body."""
        if self.verbose:
            print(f"PUT {path}")
        return self._handle_response(self.client.put(path, json=json_data))

    def delete(self, path: str) -> Any:
        """Make DELETE request."""
        if self.verbose:
            print(f"DELETE {path}")
        return self._handle_response(self.client.delete(path))

    def upload_file(self, path: str, file: BinaryIO, filename: str, field: str = "file") -> Any:
        """Upload a file using multipart form data."""
        if self.verbose:
            print(f"POST {path} (file upload, field '{field}')")

        response = self.client.post(path, files={field: (filename, file)})
        return self._handle_response(response)

    def download(
        self,
        path: str,
        output_path: Path | None = None,
        method: str = "GET",
        json_data: Any = None,
        default_name: str = "download",
        show_progress: bool = True,
    ) -> Path:
        """
        Download a response body to a local file.

        Without ``output_path`` the file name comes from the response's
        Content-Disposition header, falling back to ``default_name``.
        """
        if self.verbose:
            print(f"{method} {path} (file download)")

        with self.client.stream(method, path, json=json_data) as response:
            if response.status_code >= 400:
                response.read()
                try:
                    body = response.json()
                except ValueError:
                    body = response.text
                raise error_from_body(response.status_code, body, "Download failed")

            if output_path is None:
                match = FILENAME_PATTERN.search(response.headers.get("content-disposition", ""))
                output_path = Path(match.group(1) if match else default_name)

            total = int(response.headers.get("content-length", 0))

            if show_progress and total > 1024 * 1024:  # Show progress for files > 1MB
                with Progress(
                    SpinnerColumn(),
                    TextColumn("[progress.description]{task.description}"),
                    BarColumn(),
                    DownloadColumn(),
                ) as progress:
                    task = progress.add_task(f"Downloading to {output_path.name}", total=total)

                    with open(output_path, "wb") as f:
                        for chunk in response.iter_bytes(chunk_size=8192):
                            f.write(chunk)
                            progress.update(task, advance=len(chunk))
            else:
                with open(output_path, "wb") as f:
                    for chunk in response.iter_bytes(chunk_size=8192):
                        f.write(chunk)

        return output_path


def get_client(verbose: bool = False) -> DbAdminClient:
    """Get a configured API client."""
    config = get_config()
    errors = config.validate()
    if errors:
        raise ValueError("\n".join(errors))
    return DbAdminClient(config, verbose=verbose)
