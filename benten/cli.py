"""
CLI commands for benten.

Provides the `benten` command-line interface for running the library
syncer, querying the index, serving the HTTP API and index maintenance.
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
import uvicorn
from rich.console import Console
from rich.table import Table

from config import ConfigurationLoader, configure_logging
from core import __version__
from core.errors import BentenError, ConfigurationError, QueryError
from core.models.config import BentenConfig
from core.search.resolver import QueryResolver
from core.storage import FileSystemBlobStore, SQLiteDocumentStore
from core.sync import LibrarySyncEngine, SpoolSubscription
from core.tags import MutagenTagReader
from benten.api import create_app

console = Console()

config_option = click.option(
    '--config', '-c', 'config_path',
    type=click.Path(dir_okay=False, path_type=Path),
    help='Config file (default: ~/.config/benten/config.json or $BENTEN_CONFIG_FILE)'
)


def load_config(config_path: Optional[Path]) -> BentenConfig:
    """Load configuration or exit with status 1"""
    try:
        return ConfigurationLoader().load(config_path)
    except ConfigurationError as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)


def open_store(config: BentenConfig) -> SQLiteDocumentStore:
    return SQLiteDocumentStore(config.database_path, timeout=config.operation_timeout_s)


@click.group()
@click.version_option(version=__version__, prog_name="benten")
def main():
    """
    benten CLI.

    Index an audio library by its tags and search it by title, album or artist.
    """
    pass


@main.command()
@config_option
@click.option('--full', is_flag=True, help='Walk the whole library before watching')
@click.option('--clear-index', is_flag=True, help='Delete every index entry first')
def sync(config_path: Optional[Path], full: bool, clear_index: bool):
    """Watch the library and keep the index up to date."""
    config = load_config(config_path)
    log_path = configure_logging(config.log_file, config.log_level)
    if log_path:
        console.print(f"[blue]Add log to {log_path}...[/blue]")

    try:
        store = open_store(config)
        if clear_index:
            removed = store.clear_index()
            console.print(f"[green]✅ Cleared {removed} index entries[/green]")

        subscription = None
        if config.spool_dir is not None:
            subscription = SpoolSubscription(
                config.spool_dir,
                max_outstanding=config.upload_concurrency,
                poll_interval_s=config.poll_interval_s
            )

        engine = LibrarySyncEngine(
            config=config,
            store=store,
            blobs=FileSystemBlobStore(config.blob_root),
            tag_reader=MutagenTagReader(),
            subscription=subscription
        )
        console.print(f"[blue]🎵 Watching {config.target}[/blue]")
        asyncio.run(engine.run(full=full))
    except KeyboardInterrupt:
        console.print("[yellow]Stopped[/yellow]")
    except BentenError as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)


@main.command()
@config_option
@click.argument('phrase')
@click.option('--limit', '-n', type=int, default=None, help='Maximum index entries examined')
def search(config_path: Optional[Path], phrase: str, limit: Optional[int]):
    """Find pieces whose title, album or artist contains PHRASE."""
    config = load_config(config_path)
    configure_logging(config.log_file, config.log_level)

    resolver = QueryResolver(open_store(config), default_limit=config.default_limit)
    try:
        pieces = resolver.search(phrase, limit)
    except QueryError as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)

    if not pieces:
        console.print("[yellow]No matches[/yellow]")
        return

    table = Table(title=f"Matches for {phrase!r}")
    table.add_column("ID", justify="right")
    table.add_column("Title")
    table.add_column("Artist")
    table.add_column("Album")
    table.add_column("Path", style="dim")
    for stored in pieces:
        piece = stored.piece
        table.add_row(str(stored.id), piece.title, piece.artist, piece.album, piece.path)
    console.print(table)


@main.command()
@config_option
@click.option('--host', default=None, help='Bind address (default from config)')
@click.option('--port', type=int, default=None, help='Port (default from config)')
def serve(config_path: Optional[Path], host: Optional[str], port: Optional[int]):
    """Serve the query and object endpoints over HTTP."""
    config = load_config(config_path)
    configure_logging(config.log_file, config.log_level)

    app = create_app(
        open_store(config),
        FileSystemBlobStore(config.blob_root),
        default_limit=config.default_limit
    )
    uvicorn.run(app, host=host or config.host, port=port or config.port, log_config=None)


@main.command(name='clear-index')
@config_option
def clear_index_command(config_path: Optional[Path]):
    """Delete every index entry (pieces are kept)."""
    config = load_config(config_path)
    configure_logging(config.log_file, config.log_level)

    try:
        removed = open_store(config).clear_index()
    except BentenError as e:
        console.print(f"[red]❌ Failed to clear index: {e}[/red]")
        sys.exit(1)
    console.print(f"[green]✅ Successfully cleared the index ({removed} entries)[/green]")


if __name__ == '__main__':
    main()
