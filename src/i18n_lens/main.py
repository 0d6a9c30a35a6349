"""Main CLI entry point for i18n-lens."""

import logging
import threading
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .editing import TranslationAborted, TranslationEditor
from .engine import ResourceEngine, create_engine
from .messages import RecordingUserNotifier
from .queries import sorted_locations, unused_keys

console = Console()


class ConsoleUserNotifier(RecordingUserNotifier):
    """Prints user-facing messages to the terminal as they arrive."""

    def warn(self, message: str) -> None:
        super().warn(message)
        console.print(f"[yellow]⚠️  {message}[/yellow]")

    def error(self, message: str) -> None:
        super().error(message)
        console.print(f"[bold red]❌ {message}[/bold red]")


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _open(workspace: str, watch: bool = False) -> ResourceEngine:
    engine = create_engine(workspace, notifier=ConsoleUserNotifier(), watch=watch)
    try:
        engine.initialize()
    except Exception:
        raise click.ClickException("Initialization failed, see the messages above")
    return engine


def _parse_translations(pairs: tuple[str, ...]) -> dict[str, str]:
    translations = {}
    for pair in pairs:
        language, sep, text = pair.partition("=")
        if not sep or not language:
            raise click.BadParameter(f"Expected LANG=TEXT, got {pair!r}", param_hint="--set")
        translations[language] = text
    return translations


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Show scanning progress")
def cli(verbose: bool):
    """i18n-lens - Keep code and JSON translation resources consistent."""
    configure_logging(verbose)


@cli.command()
@click.argument("workspace", type=click.Path(exists=True, file_okay=False))
def scan(workspace: str):
    """Scan a workspace and report missing and unused translations.

    Examples:
        i18n-lens scan ./my-app
    """
    engine = _open(workspace)
    try:
        resources = engine.catalog.get_all()
        console.print(f"🔍 Found {len(resources)} resource file(s) and {len(engine.index.keys())} key(s)")

        missing = Table(title="Missing translations")
        missing.add_column("Key")
        missing.add_column("Missing in")
        for key in sorted(engine.index.keys()):
            absent = engine.catalog.find_by_key_existence(key).missing
            if absent:
                missing.add_row(key, ", ".join(absent))
        if missing.row_count:
            console.print(missing)

        for resource in resources:
            unused = unused_keys(engine.index, engine.patterns, resource.path)
            if unused:
                console.print(f"[dim]{resource.name}: {len(unused)} unused key(s): {', '.join(sorted(unused))}[/dim]")
    finally:
        engine.dispose()


@cli.command()
@click.argument("workspace", type=click.Path(exists=True, file_okay=False))
@click.argument("key")
def where(workspace: str, key: str):
    """Print every location of KEY."""
    engine = _open(workspace)
    try:
        locations = sorted_locations(engine.index.get_locations(key))
        if not locations:
            console.print(f"'{key}' was not found")
            return
        for location in locations:
            console.print(f"{location.path}:{location.line + 1}:{location.start + 1}")
    finally:
        engine.dispose()


@cli.command()
@click.argument("workspace", type=click.Path(exists=True, file_okay=False))
def watch(workspace: str):
    """Keep the index live and print every change notification."""
    engine = _open(workspace, watch=True)
    engine.changes.catalog_changed.subscribe(
        lambda resources: console.print(f"📝 Catalog changed: {len(resources)} resource file(s)")
    )
    engine.changes.locations_changed.subscribe(
        lambda locations: console.print(f"📍 Locations changed: {len(locations)} key(s)")
    )
    console.print(f"👀 Watching {Path(workspace).resolve()} (Ctrl+C to stop)")
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        pass
    finally:
        engine.dispose()


@cli.command()
@click.argument("workspace", type=click.Path(exists=True, file_okay=False))
@click.argument("key")
@click.option("--set", "pairs", multiple=True, help="Translation as LANG=TEXT (repeatable)")
def add(workspace: str, key: str, pairs: tuple[str, ...]):
    """Add KEY to every resource file that lacks it."""
    engine = _open(workspace)
    try:
        edits = TranslationEditor.for_engine(engine).add(key, _parse_translations(pairs))
        console.print(f"✅ Added '{key}' to {len(edits)} file(s)")
    except TranslationAborted as e:
        raise click.ClickException(f"Language input aborted: {e}")
    finally:
        engine.dispose()


@cli.command()
@click.argument("workspace", type=click.Path(exists=True, file_okay=False))
@click.argument("key")
@click.option("--set", "pairs", multiple=True, help="Translation as LANG=TEXT (repeatable)")
def edit(workspace: str, key: str, pairs: tuple[str, ...]):
    """Change existing translations of KEY."""
    engine = _open(workspace)
    try:
        edits = TranslationEditor.for_engine(engine).edit(key, _parse_translations(pairs))
        console.print(f"✅ Updated '{key}' in {len(edits)} file(s)")
    finally:
        engine.dispose()


@cli.command()
@click.argument("workspace", type=click.Path(exists=True, file_okay=False))
@click.argument("key")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
def delete(workspace: str, key: str, yes: bool):
    """Delete KEY from every resource file."""
    engine = _open(workspace)
    try:
        if key not in engine.catalog.all_keys():
            console.print(f"'{key}' is not defined in any resource file")
            return
        if not yes:
            click.confirm(f"Are you sure you want to delete the key '{key}'?", abort=True)
        edits = TranslationEditor.for_engine(engine).delete(key)
        console.print(f"🗑️  Deleted '{key}' from {len(edits)} file(s)")
    finally:
        engine.dispose()


if __name__ == "__main__":
    cli()
