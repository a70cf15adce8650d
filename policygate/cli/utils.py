"""
policygate - CLI Utilities
"""

import json
import sys
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from policygate.config import GatewayConfig
from policygate.exceptions import ConfigurationError
from policygate.observability.logging import setup_logging


console = Console()
err_console = Console(stderr=True)


def load_config(config_path: str) -> GatewayConfig:
    """
    Load process configuration and apply environment overrides.

    Logging is configured from the loaded settings. Exits with status 1 if the
    configuration cannot be loaded.

    Args:
        config_path: Path to configuration file (YAML)

    Returns:
        Validated configuration
    """
    try:
        config = GatewayConfig.from_env(base=GatewayConfig.from_file(config_path))
    except ConfigurationError as e:
        error(f"Failed to load configuration: {e}")
        sys.exit(1)

    setup_logging(
        config.service_name,
        level=config.logging.level,
        json_format=config.logging.format == "json",
    )
    return config


def parse_rule_config(raw: Optional[str]) -> Optional[str]:
    """Treat an empty --rule option as no rule configuration."""
    if raw is None or not raw.strip():
        return None
    return raw


def success(message: str):
    """Display success message."""
    console.print(f"[green]✓[/green] {escape(message)}")


def error(message: str):
    """Display error message."""
    err_console.print(f"[red]✗[/red] {escape(message)}")


def warning(message: str):
    """Display warning message."""
    console.print(f"[yellow]⚠[/yellow] {escape(message)}")


def info(message: str):
    """Display info message."""
    console.print(f"[blue]ℹ[/blue] {escape(message)}")


def print_json(data: Any, title: Optional[str] = None):
    """
    Pretty print JSON data.

    Args:
        data: Data to print as JSON
        title: Optional title for the panel
    """
    json_str = json.dumps(data, indent=2)
    syntax = Syntax(json_str, "json", theme="monokai", line_numbers=False)

    if title:
        console.print(Panel(syntax, title=title, border_style="blue"))
    else:
        console.print(syntax)


def print_table(data: list, columns: list, title: Optional[str] = None):
    """
    Print data as a formatted table.

    Args:
        data: List of dictionaries to display
        columns: List of column names to display
        title: Optional table title
    """
    table = Table(title=title, show_header=True, header_style="bold blue")

    for column in columns:
        table.add_column(column.replace("_", " ").title())

    for row in data:
        table.add_row(*[str(row.get(col, "")) for col in columns])

    console.print(table)


def format_duration(seconds: float) -> str:
    """
    Format duration in human-readable format.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string
    """
    if seconds < 0.001:
        return f"{seconds * 1000000:.2f}µs"
    elif seconds < 1:
        return f"{seconds * 1000:.2f}ms"
    elif seconds < 60:
        return f"{seconds:.2f}s"
    else:
        mins = int(seconds / 60)
        secs = seconds % 60
        return f"{mins}m {secs:.2f}s"
