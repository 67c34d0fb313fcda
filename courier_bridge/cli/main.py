"""Courier Bridge CLI.

Runs the console backend and the core pipeline from a terminal: test a
courier call from a saved config, list the field paths of a response,
compile an adapter module, import a cURL command.

Usage:
    courier-bridge serve                        Start the API server
    courier-bridge call request.json            Run one courier call
    courier-bridge paths response.json          List mappable field paths
    courier-bridge compile courier.json mappings.json -o out/
    courier-bridge curl "curl https://..."      Convert cURL to a request config
"""

import asyncio
import json
import os
from pathlib import Path
from types import SimpleNamespace
from typing import Any, NoReturn, Optional

import typer
from pydantic import ValidationError as SchemaValidationError
from rich.console import Console
from rich.markup import escape
from sqlalchemy.orm import Session

from courier_bridge.cli.config import CourierBridgeConfig, load_config
from courier_bridge.cli.output import format_paths, format_request_config, format_result
from courier_bridge.errors import CourierBridgeError, DomainError, format_error
from courier_bridge.services.courier_proxy import CourierProxyService
from courier_bridge.services.integration_types import ApiError, RequestConfig
from courier_bridge.services.mapping_compiler import compile_module, module_filename
from courier_bridge.services.path_extractor import extract_paths

app = typer.Typer(
    name="courier-bridge",
    help="Courier API integration console: proxy, field paths, adapter modules",
    no_args_is_help=True,
)
config_app = typer.Typer(help="Configuration management")

app.add_typer(config_app, name="config")

console = Console()

# --- Global state ---
_config_path: str | None = None


@app.callback()
def main(
    config: Optional[str] = typer.Option(
        None, "--config", help="Path to courier-bridge.yaml config file"
    ),
):
    """Courier Bridge CLI."""
    global _config_path
    _config_path = config


def _load_settings() -> CourierBridgeConfig:
    try:
        return load_config(config_path=_config_path) or CourierBridgeConfig()
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except (ValueError, TypeError) as e:
        console.print(f"[red]Config validation failed:[/red] {e}")
        raise typer.Exit(1)


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        console.print(f"[red]File not found:[/red] {path}")
        raise typer.Exit(1)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON in {path}:[/red] {e}")
        raise typer.Exit(1)


def _fail(exc: DomainError) -> NoReturn:
    console.print(format_error(CourierBridgeError.from_domain(exc)), style="red", markup=False, soft_wrap=True)
    raise typer.Exit(1)


def build_proxy(db: Session | None, settings: CourierBridgeConfig) -> CourierProxyService:
    """Proxy for CLI calls, honouring the ``proxy`` config section."""
    return CourierProxyService(
        db,
        timeout=settings.proxy.timeout_seconds,
        allow_private=settings.proxy.allow_private_hosts or None,
    )


# --- Server ---


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port"),
):
    """Start the Courier Bridge API server."""
    import uvicorn

    settings = _load_settings()
    final_host = host or settings.server.host
    final_port = port or settings.server.port
    if settings.proxy.allow_private_hosts:
        os.environ["COURIER_BRIDGE_ALLOW_PRIVATE_HOSTS"] = "true"

    console.print(f"[bold]Starting Courier Bridge on {final_host}:{final_port}[/bold]")
    uvicorn.run(
        "courier_bridge.api.main:app",
        host=final_host,
        port=final_port,
        workers=1,
        log_level=settings.server.log_level,
        lifespan="on",
    )


# --- Pipeline commands ---


@app.command()
def call(
    config_file: Path = typer.Argument(..., help="RequestConfig JSON file"),
    courier: Optional[str] = typer.Option(None, "--courier", "-c", help="Courier name for credential lookup"),
    use_db: bool = typer.Option(True, "--db/--no-db", help="Use stored credentials and record the call"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Run one courier API call and print the result."""
    settings = _load_settings()
    try:
        config = RequestConfig.model_validate(_read_json(config_file))
    except SchemaValidationError as e:
        console.print(f"[red]Invalid request config:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    async def _run(db: Session | None):
        return await build_proxy(db, settings).call(config, courier=courier)

    try:
        if use_db:
            from courier_bridge.db.connection import get_db_context, init_db

            init_db()
            with get_db_context() as db:
                result = asyncio.run(_run(db))
        else:
            result = asyncio.run(_run(None))
    except DomainError as e:
        _fail(e)

    console.print(format_result(result, as_json=json_output), markup=False, highlight=False, soft_wrap=True)
    if isinstance(result, ApiError):
        raise typer.Exit(1)


@app.command()
def paths(
    response_file: Path = typer.Argument(..., help="JSON response body"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List the mappable field paths of a courier response."""
    data = _read_json(response_file)
    found = extract_paths(data)
    console.print(format_paths(found, data, as_json=json_output), markup=False, highlight=False, soft_wrap=True)


@app.command("compile")
def compile_cmd(
    courier_file: Path = typer.Argument(..., help="Courier JSON: name, auth_type, auth_config"),
    mappings_file: Path = typer.Argument(..., help="JSON list of {api_field, tms_field, api_type}"),
    output_dir: Optional[Path] = typer.Option(None, "--output", "-o", help="Write <slug>_mapping.js here"),
):
    """Compile field mappings into an adapter module."""
    courier_data = _read_json(courier_file)
    mapping_data = _read_json(mappings_file)
    if not isinstance(courier_data, dict) or not courier_data.get("name"):
        console.print("[red]Courier file must be an object with a name.[/red]")
        raise typer.Exit(1)
    if not isinstance(mapping_data, list):
        console.print("[red]Mappings file must be a JSON list.[/red]")
        raise typer.Exit(1)

    courier_obj = SimpleNamespace(
        name=courier_data["name"],
        auth_type=courier_data.get("auth_type", courier_data.get("authType", "none")),
        auth_config=courier_data.get("auth_config", courier_data.get("authConfig", {})) or {},
    )
    mappings = [
        SimpleNamespace(
            api_field=m.get("api_field", ""),
            tms_field=m.get("tms_field", ""),
            api_type=m.get("api_type") or "track_shipment",
        )
        for m in mapping_data
        if isinstance(m, dict)
    ]
    try:
        source = compile_module(courier_obj, mappings)
    except SchemaValidationError as e:
        console.print(f"[red]Invalid auth_config for {escape(courier_obj.name)}:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if output_dir is None:
        console.print(source, markup=False, highlight=False, soft_wrap=True)
        return
    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / module_filename(courier_obj.name)
    target.write_text(source, encoding="utf-8")
    console.print(f"[green]Wrote[/green] {target}")


@app.command()
def curl(command: str = typer.Argument(..., help="cURL command, quoted")):
    """Convert a cURL command into a request config JSON."""
    from courier_bridge.services.curl_parser import parse_curl

    try:
        config = parse_curl(command)
    except DomainError as e:
        _fail(e)
    console.print(format_request_config(config), markup=False, highlight=False, soft_wrap=True)


# --- Config commands ---


@config_app.command("show")
def config_show():
    """Display resolved configuration."""
    try:
        cfg = load_config(config_path=_config_path)
    except FileNotFoundError as e:
        console.print(f"[red]Config file not found:[/red] {e}")
        raise typer.Exit(1)
    except (ValueError, TypeError) as e:
        console.print(f"[red]Config validation failed:[/red] {e}")
        raise typer.Exit(1)
    if cfg is None:
        console.print("[yellow]No config file found; using defaults.[/yellow]")
        console.print("Searched: ./courier-bridge.yaml, ~/.courier-bridge/config.yaml")
        cfg = CourierBridgeConfig()

    console.print("[bold]Server:[/bold]")
    console.print(f"  host: {cfg.server.host}")
    console.print(f"  port: {cfg.server.port}")
    console.print(f"  log_level: {cfg.server.log_level}")

    console.print("\n[bold]Proxy:[/bold]")
    console.print(f"  timeout_seconds: {cfg.proxy.timeout_seconds}")
    console.print(f"  allow_private_hosts: {cfg.proxy.allow_private_hosts}")
