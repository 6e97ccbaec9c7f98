"""Configuration management commands."""

import typer

from .. import config as cli_config
from ..config import get_config
from ..output import print_dict, print_error, print_info, print_json, print_success
from ..main import state


app = typer.Typer(help="Configuration management")


@app.command("set")
def set_config(
    key: str = typer.Argument(..., help="Configuration key (url)"),
    value: str = typer.Argument(..., help="Configuration value"),
) -> None:
    """Set a configuration value.

    Supported keys:
    - url: DB Admin API base URL, e.g. http://localhost:8081

    Configuration is saved to ~/.dbadmin/config.yaml
    """
    try:
        config = get_config()
        config.set_value(key, value)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if state.json_output:
        print_json({"success": True, "key": key, "file": str(cli_config.CONFIG_FILE)})
    else:
        print_success(f"Configuration updated: {key} = {config.url}")
        print_success(f"Saved to: {cli_config.CONFIG_FILE}")


@app.command("show")
def show_config() -> None:
    """Show current configuration.

    The DBADMIN_URL environment variable overrides the config file.
    """
    config = get_config()

    if state.json_output:
        print_json(config.to_dict())
        return

    print_dict(config.to_dict(), title="Current Configuration")
    if cli_config.CONFIG_FILE.exists():
        print_info(f"Config file: {cli_config.CONFIG_FILE}")
    else:
        print_info(f"Config file not found: {cli_config.CONFIG_FILE}")
