"""CLI for Photo Ranker."""

from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import Annotated

import structlog
import typer
from rich.console import Console
from rich.logging import RichHandler

from photo_ranker import __version__
from photo_ranker.core.config import RankerConfig, load_config
from photo_ranker.core.errors import ConfigurationError, PhotoRankerError
from photo_ranker.models import Item
from photo_ranker.services.catalog import demo_catalog, load_catalog
from photo_ranker.services.reporting import render_leaderboard, summary, write_leaderboard_csv
from photo_ranker.services.session import RankingSession
from photo_ranker.services.simulation import SimulatedVoter, rank_agreement, run_simulation
from photo_ranker.services.storage import EventStore, context_key, export_backup, import_backup

# Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

app = typer.Typer(
    name="photo-ranker",
    help="Photo Ranker - rank a photo catalog from pairwise preference votes",
    add_completion=False,
)
console = Console()

ConfigOption = Annotated[
    Path | None, typer.Option("--config", "-c", help="Path to config YAML file")
]
CatalogOption = Annotated[
    Path | None,
    typer.Option("--catalog", help="Catalog manifest (YAML/JSON); demo catalog if omitted"),
]
AlbumOption = Annotated[
    str | None, typer.Option("--album", help="Album id; the global stream if omitted")
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-V", help="Verbose output")]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"photo-ranker v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
) -> None:
    """Photo Ranker CLI."""


def _setup_logging(verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


def _load_config(config_path: Path | None) -> RankerConfig:
    return load_config(config_path) if config_path else RankerConfig()


def _load_items(catalog_path: Path | None) -> list[Item]:
    return load_catalog(catalog_path) if catalog_path else demo_catalog()


def _fail(e: Exception, verbose: bool = False) -> typer.Exit:
    if isinstance(e, ConfigurationError):
        console.print(f"[red]{e}")
    elif isinstance(e, (PhotoRankerError, FileNotFoundError)):
        console.print(f"[red]Error:[/red] {e}")
    else:
        console.print(f"[red]Unexpected error:[/red] {e}")
        if verbose:
            console.print_exception()
    return typer.Exit(1)


def _open_session(
    config_path: Path | None,
    catalog_path: Path | None,
    album: str | None,
) -> tuple[RankingSession, EventStore]:
    config = _load_config(config_path)
    items = _load_items(catalog_path)
    store = EventStore(config.storage.db_path)
    return RankingSession.open(items, store, context_key(album), config), store


@app.command()
def validate(
    config_path: Annotated[Path, typer.Argument(help="Path to config YAML file")],
) -> None:
    """Validate a configuration file.

    Args:
        config_path: Path to YAML configuration file.
    """
    try:
        config = load_config(config_path)
    except Exception as e:
        raise _fail(e) from e

    console.print("[green]Configuration is valid![/green]")
    console.print(f"  Initial rating: {config.rating.initial_rating}")
    console.print(
        f"  Uncertainty: {config.rating.min_uncertainty}-{config.rating.initial_uncertainty}"
    )
    console.print(f"  Upset threshold: {config.rating.upset_threshold}")
    console.print(f"  Exploration rate: {config.matchmaking.exploration_rate}")
    console.print(f"  Database: {config.storage.db_path}")


@app.command("leaderboard")
def show_leaderboard(
    config_path: ConfigOption = None,
    catalog_path: CatalogOption = None,
    album: AlbumOption = None,
    top: Annotated[int | None, typer.Option("--top", help="Only show the top N")] = None,
    csv_path: Annotated[Path | None, typer.Option("--csv", help="Also write a CSV")] = None,
    verbose: VerboseOption = False,
) -> None:
    """Replay the vote log and print the leaderboard."""
    _setup_logging(verbose)
    try:
        session, store = _open_session(config_path, catalog_path, album)
        try:
            ranked = session.snapshot
            stats = summary(ranked)
            console.print(
                f"[bold]{stats['total_items']} photos[/bold], "
                f"{stats['comparisons']} comparisons, "
                f"{stats['placed_items']} placed"
            )
            console.print(render_leaderboard(ranked, top=top))
            if csv_path:
                write_leaderboard_csv(ranked, csv_path)
                console.print(f"CSV saved to: {csv_path}")
        finally:
            store.close()
    except Exception as e:
        raise _fail(e, verbose) from e


@app.command("next-pair")
def next_pair(
    config_path: ConfigOption = None,
    catalog_path: CatalogOption = None,
    album: AlbumOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Suggest the next pair to compare."""
    _setup_logging(verbose)
    try:
        session, store = _open_session(config_path, catalog_path, album)
        try:
            pair = session.next_pair()
        finally:
            store.close()
    except Exception as e:
        raise _fail(e, verbose) from e

    console.print(f"[bold]{pair.rationale}[/bold] ({pair.policy.value})")
    console.print(f"  A: {pair.left.id}  {pair.left.title}  {pair.left.url}")
    console.print(f"  B: {pair.right.id}  {pair.right.title}  {pair.right.url}")


@app.command()
def vote(
    winner: Annotated[str, typer.Argument(help="Id of the preferred photo")],
    loser: Annotated[str, typer.Argument(help="Id of the other photo")],
    config_path: ConfigOption = None,
    catalog_path: CatalogOption = None,
    album: AlbumOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Record a vote."""
    _setup_logging(verbose)
    try:
        session, store = _open_session(config_path, catalog_path, album)
        try:
            session.vote(winner, loser)
            ranked = {r.id: r for r in session.snapshot}
        finally:
            store.close()
    except Exception as e:
        raise _fail(e, verbose) from e

    for label, item_id in (("Winner", winner), ("Loser", loser)):
        r = ranked[item_id]
        console.print(f"  {label}: {item_id} → {r.rating:.0f} ± {r.uncertainty:.0f}")


@app.command()
def undo(
    config_path: ConfigOption = None,
    catalog_path: CatalogOption = None,
    album: AlbumOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Drop the most recent vote."""
    _setup_logging(verbose)
    try:
        session, store = _open_session(config_path, catalog_path, album)
        try:
            event = session.undo()
        finally:
            store.close()
    except Exception as e:
        raise _fail(e, verbose) from e

    if event is None:
        console.print("[yellow]Nothing to undo[/yellow]")
    else:
        console.print(f"Removed vote: {event.winner_id} over {event.loser_id}")


@app.command("export")
def export_log(
    output: Annotated[Path, typer.Option("--output", "-o", help="Backup file to write")],
    config_path: ConfigOption = None,
    album: AlbumOption = None,
) -> None:
    """Export the vote log to a JSON backup."""
    try:
        config = _load_config(config_path)
        store = EventStore(config.storage.db_path)
        try:
            events = store.load_events(context_key(album))
        finally:
            store.close()
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(export_backup(events, album_id=album), encoding="utf-8")
    except Exception as e:
        raise _fail(e) from e

    console.print(f"Exported {len(events)} votes to: {output}")


@app.command("import")
def import_log(
    backup_path: Annotated[Path, typer.Argument(help="Backup file to read")],
    config_path: ConfigOption = None,
) -> None:
    """Replace a context's vote log with a JSON backup."""
    try:
        config = _load_config(config_path)
        album, events = import_backup(backup_path.read_text(encoding="utf-8"))
        store = EventStore(config.storage.db_path)
        try:
            store.replace_events(context_key(album), events)
        finally:
            store.close()
    except Exception as e:
        raise _fail(e) from e

    console.print(f"Imported {len(events)} votes into {context_key(album)}")


@app.command()
def simulate(
    votes: Annotated[int, typer.Option("--votes", help="Number of simulated votes")] = 200,
    photos: Annotated[int, typer.Option("--photos", help="Demo catalog size")] = 20,
    noise: Annotated[float, typer.Option("--noise", help="Voter noise (0-1)")] = 0.1,
    seed: Annotated[int, typer.Option("--seed", help="Random seed")] = 42,
    config_path: ConfigOption = None,
    top: Annotated[int | None, typer.Option("--top", help="Only show the top N")] = 10,
    verbose: VerboseOption = False,
) -> None:
    """Rank a demo catalog with a simulated voter, without touching storage."""
    _setup_logging(verbose)
    try:
        config = _load_config(config_path)
        items = demo_catalog(photos)
        voter = SimulatedVoter.spread(items, noise=noise, seed=seed)
        session = RankingSession(items, config, rng=random.Random(seed))  # noqa: S311
        run_simulation(session, voter, votes)
    except Exception as e:
        raise _fail(e, verbose) from e

    ranked = session.snapshot
    console.print(render_leaderboard(ranked, top=top))
    agreement = rank_agreement(ranked, voter.true_ratings)
    console.print(f"\nAgreement with hidden order: [bold]{agreement:.1%}[/bold]")


@app.command()
def info() -> None:
    """Show tool information and example commands."""
    console.print("[bold]Photo Ranker[/bold]")
    console.print(f"Version: {__version__}\n")

    console.print("[bold]Example Commands:[/bold]")
    console.print("  # Suggest a pair from your catalog")
    console.print("  photo-ranker next-pair --catalog photos.yaml\n")

    console.print("  # Record a vote")
    console.print("  photo-ranker vote 5321 8876 --catalog photos.yaml\n")

    console.print("  # Show the leaderboard for an album")
    console.print("  photo-ranker leaderboard --catalog photos.yaml --album 7215 --top 20\n")

    console.print("  # Move votes between machines")
    console.print("  photo-ranker export -o backup.json && photo-ranker import backup.json\n")

    console.print("  # Watch the ranker converge on a simulated voter")
    console.print("  photo-ranker simulate --votes 300 --noise 0.2")


if __name__ == "__main__":
    app()
