"""Command-line interface for novelreader."""

import logging
from pathlib import Path

import click
import yaml

from . import __version__
from .config import (
    CONFIG_FILENAME,
    config_to_dict,
    create_default_config,
    find_config_file,
    load_config,
)
from .decoder import EncodingPolicy
from .document import ReaderError
from .navigator import Navigator
from .session import Session
from .store import JsonFileStore, PositionStore

APP_NAME = "novelreader"
STATE_FILENAME = "state.json"


def default_state_file() -> Path:
    """Per-user location of the reader state file."""
    return Path(click.get_app_dir(APP_NAME)) / STATE_FILENAME


@click.group()
@click.version_option(version=__version__, prog_name="novelreader")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Config file path",
)
@click.option(
    "--state",
    "state_file",
    type=click.Path(dir_okay=False),
    help="State file holding documents and reading positions",
)
@click.option(
    "--chunk-size",
    type=click.IntRange(min=1),
    help="Characters per page (default 80)",
)
@click.option(
    "--encoding",
    type=click.Choice([p.value for p in EncodingPolicy]),
    help="Decoding of newly opened documents",
)
@click.option("-v", "--verbose", is_flag=True, help="Log decoding and state changes")
@click.pass_context
def main(ctx, config_path, state_file, chunk_size, encoding, verbose):
    """Read plain-text novels one page at a time.

    novelreader keeps a list of opened documents and remembers the reading
    position in each one between runs. Files in UTF-8 or GBK are supported;
    with --encoding auto the encoding is detected from the bytes.

    \b
    Quick start:
      novelreader open book.txt        # Load a document and show page 1
      novelreader next                 # Next page (wraps to the start)
      novelreader prev                 # Previous page (wraps to the end)
      novelreader search "chapter 3"   # Jump to the next occurrence
      novelreader switch other.txt     # Change the active document
      novelreader list                 # Show loaded documents
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s"
        )
    ctx.ensure_object(dict)
    ctx.obj.update(
        config_path=Path(config_path) if config_path else None,
        state_file=Path(state_file) if state_file else None,
        chunk_size=chunk_size,
        encoding=encoding,
    )


def _load_session(ctx: click.Context) -> Session:
    """Build the session from configuration and saved state."""
    options = ctx.obj or {}
    try:
        cfg = load_config(
            config_path=options.get("config_path"),
            chunk_size_override=options.get("chunk_size"),
            encoding_override=options.get("encoding"),
            state_file_override=options.get("state_file"),
        )
        navigator = Navigator(
            chunk_size=cfg.chunk_size,
            display_width=cfg.display.width,
            name_width=cfg.display.name_width,
        )
    except ReaderError as e:
        raise click.ClickException(str(e))

    kv = JsonFileStore(cfg.state_file or default_state_file())
    # One file write per command; close runs before the batch exits
    ctx.with_resource(kv.batch())
    session = Session.restore(
        PositionStore(kv), navigator=navigator, policy=cfg.policy
    )
    ctx.call_on_close(session.close)
    return session


@main.command("open")
@click.argument(
    "paths", nargs=-1, type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.pass_context
def open_documents(ctx, paths):
    """Load text files into the reader.

    Files that are already loaded keep their reading position. The first
    document ever loaded becomes the active one.

    \b
    Examples:
      novelreader open book.txt
      novelreader --encoding auto open a.txt b.txt
    """
    if not paths:
        raise click.UsageError("No files specified")

    session = _load_session(ctx)
    loaded = 0
    for input_path in paths:
        resolved = str(input_path.resolve())
        if resolved in session.registry:
            session.open(resolved, b"")
            click.echo(f"Already loaded: {_relative_path(input_path)}")
            continue
        try:
            data = input_path.read_bytes()
        except OSError as e:
            click.echo(f"Warning: Cannot read {input_path}: {e}", err=True)
            continue
        result = session.open(resolved, data)
        click.echo(
            f"Loaded: {_relative_path(input_path)} ({result.document.encoding})"
        )
        loaded += 1

    click.echo(f"\n{loaded} file(s) loaded")
    if session.active() is not None:
        click.echo(session.status_line())


@main.command("next")
@click.pass_context
def next_page(ctx):
    """Show the next page of the active document."""
    session = _load_session(ctx)
    try:
        session.next_page()
        click.echo(session.status_line())
    except ReaderError as e:
        raise click.ClickException(str(e))


@main.command("prev")
@click.pass_context
def previous_page(ctx):
    """Show the previous page of the active document."""
    session = _load_session(ctx)
    try:
        session.previous_page()
        click.echo(session.status_line())
    except ReaderError as e:
        raise click.ClickException(str(e))


@main.command()
@click.pass_context
def show(ctx):
    """Show the current page of the active document."""
    session = _load_session(ctx)
    try:
        click.echo(session.status_line())
    except ReaderError as e:
        raise click.ClickException(str(e))


@main.command()
@click.argument("term", required=False)
@click.pass_context
def search(ctx, term):
    """Jump to the next occurrence of TERM in the active document.

    Searching starts just after the current position and wraps around to
    the beginning. The match is case-sensitive. Without TERM, the text is
    prompted for; an empty answer cancels.
    """
    session = _load_session(ctx)
    try:
        session.require_active()
    except ReaderError as e:
        raise click.ClickException(str(e))

    if term is None:
        term = click.prompt("Search text", default="", show_default=False)
        if not term:
            return

    try:
        match = session.search(term)
    except ReaderError as e:
        raise click.ClickException(str(e))

    suffix = "" if match.advanced else " (from the beginning)"
    click.echo(f"Found '{term}' at position {match.index}{suffix}")
    click.echo(session.status_line())


@main.command()
@click.argument("name", required=False)
@click.pass_context
def switch(ctx, name):
    """Make another loaded document active.

    NAME is a document path or file name. Without NAME, the loaded
    documents are listed and one is chosen by number.
    """
    session = _load_session(ctx)
    documents = session.registry.documents
    if not documents:
        raise click.ClickException("No document is loaded. Open a document first.")

    if name is None:
        for i, document in enumerate(documents, start=1):
            click.echo(f"  {i}. {document.name}")
        choice = click.prompt(
            "Switch to", type=click.IntRange(1, len(documents))
        )
        name = documents[choice - 1].path
    elif Path(name).exists():
        # Documents are registered under their resolved paths
        resolved = str(Path(name).resolve())
        if resolved in session.registry:
            name = resolved

    try:
        document = session.switch_to(name)
    except ReaderError as e:
        raise click.ClickException(str(e))

    click.echo(f"Switched to: {document.name}")
    click.echo(session.status_line())


@main.command("list")
@click.pass_context
def list_documents(ctx):
    """List loaded documents and reading progress."""
    session = _load_session(ctx)
    documents = session.registry.documents
    if not documents:
        click.echo("No documents loaded")
        return

    active = session.active()
    for document in documents:
        marker = "*" if document is active else " "
        page, pages = session.navigator.page_info(document)
        click.echo(f"{marker} {document.name}  page {page}/{pages}  {document.path}")


@main.group()
def config():
    """Manage novelreader configuration."""
    pass


@config.command("init")
@click.option(
    "-d",
    "--directory",
    type=click.Path(),
    default=".",
    help="Directory to create config in",
)
def config_init(directory):
    """Create a new .novelreader.yaml configuration file."""
    try:
        config_path = create_default_config(Path(directory))
        click.echo(f"Created: {config_path}")
    except ReaderError as e:
        raise click.ClickException(str(e))


@config.command("show")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True),
    help="Config file path",
)
def config_show(config_path):
    """Display current configuration.

    Shows merged configuration from file, environment, and defaults.
    """
    try:
        cfg = load_config(config_path=Path(config_path) if config_path else None)
    except ReaderError as e:
        raise click.ClickException(str(e))
    data = config_to_dict(cfg)
    if data["state_file"] is None:
        data["state_file"] = str(default_state_file())
    click.echo(yaml.dump(data, default_flow_style=False, sort_keys=False))


@config.command("where")
@click.option(
    "-d",
    "--directory",
    type=click.Path(exists=True),
    help="Directory to search from",
)
def config_where(directory):
    """Show which config file would be used.

    Searches up the directory tree for .novelreader.yaml.
    """
    start = Path(directory) if directory else Path.cwd()
    config_path = find_config_file(start)

    if config_path:
        click.echo(f"Config file: {config_path}")
    else:
        click.echo(f"No {CONFIG_FILENAME} found (searched from {start})")


def _relative_path(path: Path) -> str:
    """Get a relative path for display."""
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main()
