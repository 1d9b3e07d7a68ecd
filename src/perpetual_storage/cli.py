# cli.py
import json
import logging
from typing import Optional

import click

from perpetual_storage.adapters.storage import PerpetualAdapter
from perpetual_storage.exceptions import PerpetualStorageError
from perpetual_storage.schemas import OperationType, Visibility
from perpetual_storage.settings import get_settings

logger = logging.getLogger(__name__)


def _echo_json(data) -> None:
    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json", exclude_none=True)
    click.echo(json.dumps(data, indent=2, default=str))


def _adapter(ctx: click.Context) -> PerpetualAdapter:
    return ctx.obj["adapter"]


def _run(func, *args, **kwargs):
    """Call an adapter method, turning storage errors into CLI errors."""
    try:
        return func(*args, **kwargs)
    except PerpetualStorageError as e:
        logger.debug(f"{type(e).__name__}: {e.message}")
        raise click.ClickException(e.message) from e


@click.group()
@click.option("--root", default=None, help="Storage root directory (default: STORAGE_DIR)")
@click.option("--autonomi/--no-autonomi", default=None,
              help="Enable Autonomi directory archiving (default: USE_AUTONOMI_FOR_DIRECTORIES)")
@click.option("--api-url", default=None, help="Autonomi API base URL (default: AUTONOMI_API_URL)")
@click.pass_context
def cli(ctx: click.Context, root: Optional[str], autonomi: Optional[bool], api_url: Optional[str]):
    """Perpetual storage: local files with optional Autonomi archiving"""
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["adapter"] = _run(
        PerpetualAdapter,
        root or settings.storage_dir,
        settings.use_autonomi_for_directories if autonomi is None else autonomi,
        api_url or settings.autonomi_api_url,
        timeout=settings.autonomi_timeout,
    )
    if ctx.obj["adapter"].autonomi_bridge is not None:
        ctx.call_on_close(ctx.obj["adapter"].autonomi_bridge.close)


@cli.command()
@click.pass_context
def show_config(ctx: click.Context):
    """Show current configuration"""
    settings = ctx.obj["settings"]
    adapter = _adapter(ctx)

    click.echo("Current Configuration:")
    click.echo(f"  Storage Root: {adapter.root}")
    click.echo(f"  Autonomi Enabled: {adapter.archive_enabled}")
    if adapter.archive_enabled:
        click.echo(f"  Autonomi API URL: {adapter.autonomi_bridge.api_url}")
        click.echo(f"  Autonomi Timeout: {adapter.autonomi_bridge.timeout}s")
    click.echo(f"  Log Level: {settings.log_level}")


@cli.command(name="ls")
@click.argument("path", default="")
@click.option("--recursive", "-r", is_flag=True, help="List subdirectories too")
@click.pass_context
def list_contents(ctx: click.Context, path: str, recursive: bool):
    """List files and directories below PATH"""
    entries = _run(lambda: list(_adapter(ctx).list_contents(path, recursive)))
    if not entries:
        click.echo("No entries found")
        return
    for entry in entries:
        if entry.is_dir():
            click.echo(click.style(f"{entry.path}/", fg="blue"))
        else:
            click.echo(f"{entry.path}  {entry.file_size} bytes")


@cli.command()
@click.argument("path")
@click.pass_context
def cat(ctx: click.Context, path: str):
    """Print the contents of a file"""
    click.echo(_run(_adapter(ctx).read, path), nl=False)


@cli.command()
@click.argument("local_file", type=click.File("rb"))
@click.argument("destination")
@click.option("--visibility", type=click.Choice([v.value for v in Visibility]), default=None,
              help="Visibility of the stored file")
@click.pass_context
def put(ctx: click.Context, local_file, destination: str, visibility: Optional[str]):
    """Store LOCAL_FILE at DESTINATION"""
    options = {"visibility": visibility} if visibility else None
    _run(_adapter(ctx).write_stream, destination, local_file, options)
    click.echo(f"Stored {destination}")


@cli.command()
@click.argument("path")
@click.option("--dir", "is_dir", is_flag=True, help="Delete a directory and its contents")
@click.pass_context
def rm(ctx: click.Context, path: str, is_dir: bool):
    """Delete a file (or a directory with --dir)"""
    adapter = _adapter(ctx)
    _run(adapter.delete_directory if is_dir else adapter.delete, path)
    click.echo(f"Deleted {path}")


@cli.command()
@click.argument("path")
@click.option("--public", is_flag=True, help="Make the archive publicly retrievable")
@click.pass_context
def upload_dir(ctx: click.Context, path: str, public: bool):
    """Upload directory PATH to the Autonomi network"""
    result = _run(_adapter(ctx).upload_directory_to_autonomi, path, public)
    _echo_json(result)


@cli.command()
@click.argument("path")
@click.option("--data-map", default=None, help="Data map of a private archive")
@click.option("--public-address", default=None, help="Address of a public archive")
@click.pass_context
def download_dir(ctx: click.Context, path: str, data_map: Optional[str], public_address: Optional[str]):
    """Download an archived directory into PATH"""
    result = _run(_adapter(ctx).download_directory_from_autonomi, path, data_map, public_address)
    _echo_json(result)


@cli.command()
@click.option("--date", default=None, help="Only transactions of this day (YYYY-MM-DD)")
@click.option("--operation-type", type=click.Choice([t.value for t in OperationType]), default=None,
              help="Only uploads or only downloads")
@click.pass_context
def transactions(ctx: click.Context, date: Optional[str], operation_type: Optional[str]):
    """Show directory transaction history"""
    _echo_json(_run(_adapter(ctx).get_directory_transactions, date, operation_type))


@cli.command()
@click.option("--days", default=30, type=int, help="Number of days to include (1-365)")
@click.pass_context
def stats(ctx: click.Context, days: int):
    """Show directory operation statistics"""
    _echo_json(_run(_adapter(ctx).get_directory_stats, days))


if __name__ == "__main__":
    cli()
