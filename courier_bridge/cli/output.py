"""CLI output formatters for Rich tables and JSON.

Each formatter returns a string so commands stay thin and tests can
assert on plain text.
"""

import json
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from courier_bridge.services.integration_types import ApiError, ApiResult, RequestConfig
from courier_bridge.services.path_extractor import generate_path_accessor, get_by_path

console = Console()

_PREVIEW_WIDTH = 60


def _render(renderable: Any) -> str:
    with console.capture() as capture:
        console.print(renderable)
    return capture.get()


def _preview(value: Any) -> str:
    """Short one-line rendering of a value for table cells."""
    if isinstance(value, (dict, list)):
        text = json.dumps(value, default=str)
    elif value is None:
        text = "null"
    else:
        text = str(value)
    return text if len(text) <= _PREVIEW_WIDTH else text[: _PREVIEW_WIDTH - 1] + "…"


def format_paths(paths: list[str], source: Any = None, as_json: bool = False) -> str:
    """Format discovered field paths, with sample values from ``source``.

    Args:
        paths: Paths from extract_paths.
        source: The response the paths came from.
        as_json: Return a JSON list instead of a table.
    """
    if as_json:
        return json.dumps(paths, indent=2)
    if not paths:
        return "No field paths found."

    table = Table(title=f"Field Paths ({len(paths)})")
    table.add_column("Path", style="cyan", no_wrap=True)
    table.add_column("Sample")
    table.add_column("Accessor", style="dim")
    for path in paths:
        table.add_row(escape(path), escape(_preview(get_by_path(source, path))), escape(generate_path_accessor(path)))
    return _render(table)


def format_result(result: ApiResult, as_json: bool = False) -> str:
    """Format an ApiResult as a Rich panel or JSON.

    Errors render their code, status and message; successes render the
    response body.
    """
    payload = result.to_dict() if isinstance(result, ApiError) else result.data
    if as_json:
        return json.dumps(payload, indent=2, default=str)

    if isinstance(result, ApiError):
        kind = "Network error" if result.is_network_error else f"HTTP {result.status} {result.status_text or ''}".rstrip()
        lines = [
            f"[bold red]{kind}[/bold red]  [dim]{result.code} / {result.error_code}[/dim]",
            escape(result.message),
        ]
        if result.details:
            lines += ["", escape(json.dumps(result.details, indent=2, default=str))]
        return _render(Panel("\n".join(lines), title="Courier Call Failed", border_style="red"))

    body = escape(json.dumps(result.data, indent=2, default=str))
    return _render(Panel(body, title=f"Courier Response ({result.status})", border_style="green"))


def format_request_config(config: RequestConfig) -> str:
    """RequestConfig as the camelCase JSON the console and ``call`` accept."""
    return json.dumps(config.model_dump(by_alias=True, mode="json"), indent=2)
