"""CLI for blobfs.

Commands:
    init                     - Create the database tables
    reset                    - Drop and recreate all tables
    ls [folder]              - List subfolders and files
    cat <path>               - Print file content
    stat <path>              - Show file details
    put <local> <path>       - Upload a local file
    rm <path>                - Delete a file (or a folder with -r)
    mv <old> <new>           - Rename a file or folder
    meta <path>              - Show or replace file metadata
    find <field=value>...    - Find files by name, type or metadata
"""

from __future__ import annotations

import asyncio
import json
import logging
import mimetypes
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from blobfs.config import settings
from blobfs.db import async_session_factory, engine, init_db, reset_db
from blobfs.errors import BlobFSError, NotFoundError
from blobfs.filesystem import BlobFS, Descriptor
from blobfs.paths import display, resolve
from blobfs.store.sql import SqlBlobStore

app = typer.Typer(
    name="blobfs",
    help="blobfs: a hierarchical filesystem on a flat blob store",
    no_args_is_help=True,
)
console = Console()


def run_async(coro):
    """Run an async coroutine in sync context."""
    return asyncio.run(coro)


def run_fs(coro):
    """Run a filesystem coroutine, turning blobfs errors into exit code 1."""
    try:
        return run_async(coro)
    except BlobFSError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None


def get_fs() -> BlobFS:
    """Build a filesystem on the configured database."""
    return BlobFS(
        SqlBlobStore(async_session_factory),
        on_modified=lambda message: console.print(f"[green]{escape(message)}[/green]"),
    )


def parse_pairs(pairs: list[str]) -> dict[str, Any]:
    """Parse ``key=value`` pairs. Values are read as JSON when possible."""
    result: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got {pair!r}")
        try:
            result[key] = json.loads(value)
        except ValueError:
            result[key] = value
    return result


def files_table(title: str, files: list[Descriptor], folders: list[str] | None = None) -> Table:
    table = Table(title=title)
    table.add_column("Name")
    table.add_column("Size", justify="right")
    table.add_column("Type")
    table.add_column("Modified")
    for folder in folders or []:
        table.add_row(f"[blue]{escape(folder)}/[/blue]", "", "folder", "")
    for f in files:
        table.add_row(
            escape(f.pathname if folders is None else f.filename),
            f"{f.content_length:,}",
            f.content_type,
            f.last_modified.isoformat(timespec="seconds"),
        )
    return table


@app.callback()
def main_options(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show debug logging")
    ] = False,
):
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@app.command("init")
def init():
    """Initialize the database schema (creates tables if they don't exist)."""
    async def _init():
        await init_db(engine)
        console.print("[green]Database initialized.[/green]")

    run_async(_init())


@app.command("reset")
def reset(
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Skip confirmation prompt")
    ] = False,
):
    """Drop all tables and recreate them.

    WARNING: This destroys all files!
    """
    if not force:
        confirm = typer.confirm(
            "This will DELETE ALL FILES. Are you sure?",
            default=False,
        )
        if not confirm:
            console.print("[yellow]Aborted.[/yellow]")
            raise typer.Exit(0)

    async def _reset():
        await reset_db(engine)
        console.print("[green]Database reset.[/green]")

    run_async(_reset())


@app.command("ls")
def list_folder(
    folder: Annotated[str, typer.Argument(help="Folder to list")] = "/",
):
    """List the subfolders and files directly inside a folder."""
    async def _ls():
        fs = get_fs()
        folders = await fs.get_folders(folder)
        files = await fs.get_files(folder)
        if not folders and not files:
            console.print(f"[yellow]Empty or missing folder:[/yellow] {escape(display(resolve(folder)))}")
            return
        console.print(files_table(display(resolve(folder)), files, folders))

    run_fs(_ls())


@app.command("cat")
def cat(
    pathname: Annotated[str, typer.Argument(help="File to print")],
):
    """Write the content of a file to stdout."""
    async def _cat():
        return await get_fs().get_file(pathname)

    descriptor = run_fs(_cat())
    typer.echo(descriptor.content, nl=False)


@app.command("stat")
def stat(
    pathname: Annotated[str, typer.Argument(help="File to describe")],
):
    """Show details for a file."""
    async def _stat():
        return await get_fs().get_file(pathname)

    f = run_fs(_stat())
    panel_content = []
    panel_content.append(f"[bold]Pathname:[/bold] {escape(f.pathname)}")
    panel_content.append(f"[bold]Content Type:[/bold] {f.content_type}")
    panel_content.append(f"[bold]Size:[/bold] {f.content_length:,} bytes")
    panel_content.append(f"[bold]Modified:[/bold] {f.last_modified}")
    if isinstance(f.metadata, dict) and f.metadata:
        panel_content.append("[bold]Metadata:[/bold]")
        for k, v in f.metadata.items():
            panel_content.append(f"  • {escape(str(k))}: {escape(str(v))}")
    console.print(Panel("\n".join(panel_content), title=escape(f.filename)))


@app.command("put")
def put(
    local: Annotated[
        Path, typer.Argument(help="Local file to upload", exists=True, dir_okay=False)
    ],
    pathname: Annotated[str, typer.Argument(help="Destination pathname")],
    content_type: Annotated[
        str | None, typer.Option("--content-type", "-t", help="Content type (guessed from the name)")
    ] = None,
    meta: Annotated[
        list[str] | None, typer.Option("--meta", "-m", help="Metadata as key=value (repeatable)")
    ] = None,
    update: Annotated[
        bool, typer.Option("--update", "-u", help="Replace the file if it exists")
    ] = False,
):
    """Upload a local file."""
    data = local.read_bytes()
    if content_type is None:
        content_type, _ = mimetypes.guess_type(local.name)
    metadata = parse_pairs(meta) if meta else None

    async def _put():
        fs = get_fs()
        if update:
            created = await fs.create_or_update_file(pathname, data, metadata, content_type)
            return "created" if created else "updated"
        await fs.create_file(pathname, data, metadata, content_type)
        return "created"

    status = run_fs(_put())
    console.print(f"{escape(resolve(pathname))} {status} ({len(data):,} bytes)")


@app.command("rm")
def remove(
    pathname: Annotated[str, typer.Argument(help="File or folder to delete")],
    recursive: Annotated[
        bool, typer.Option("--recursive", "-r", help="Delete a folder and everything in it")
    ] = False,
):
    """Delete a file, or a whole folder with --recursive."""
    async def _rm():
        fs = get_fs()
        if recursive:
            return await fs.delete_folder(pathname)
        return await fs.delete_file(pathname)

    count = run_fs(_rm())
    console.print(f"[bold]Deleted:[/bold] {count} file(s)")


@app.command("mv")
def move(
    old: Annotated[str, typer.Argument(help="File or folder to rename")],
    new: Annotated[str, typer.Argument(help="New name, relative to the old one's folder or absolute")],
):
    """Rename a file or a folder."""
    async def _mv():
        fs = get_fs()
        if await fs.is_file(old):
            return await fs.rename_file(old, new)
        if await fs.is_folder(old):
            return await fs.rename_folder(old, new)
        raise NotFoundError(resolve(old))

    count = run_fs(_mv())
    console.print(f"[bold]Renamed:[/bold] {count} file(s)")


@app.command("meta")
def meta(
    pathname: Annotated[str, typer.Argument(help="File whose metadata to show")],
    set_: Annotated[
        list[str] | None,
        typer.Option("--set", "-s", help="Replace the metadata with key=value pairs (repeatable)"),
    ] = None,
):
    """Show the metadata of a file, or replace it with --set."""
    async def _meta():
        fs = get_fs()
        if set_:
            await fs.update_metadata(pathname, parse_pairs(set_))
        return await fs.get_metadata(pathname)

    console.print_json(data=run_fs(_meta()))


@app.command("find")
def find(
    conditions: Annotated[
        list[str], typer.Argument(help="Conditions as field=value, e.g. metadata.author=smith")
    ],
):
    """Find files whose fields equal the given values."""
    query = parse_pairs(conditions)

    async def _find():
        return await get_fs().find_files(query)

    files = run_fs(_find())
    if not files:
        console.print("[yellow]No matching files.[/yellow]")
        return
    console.print(files_table(f"{len(files)} match(es)", files))


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
