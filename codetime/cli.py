"""Command line interface for CodeTime Sync."""

from datetime import date
from pathlib import Path
from typing import Optional

import typer

from .auth import ApiCredentials, CredentialsError, FirestoreCredentials, KeychainManager
from .config import Config, setup_logging
from .main import TrackerApp
from .sync import DeltaRecord, InvalidDeltaError, SyncOutcome, format_duration, validate_delta

app = typer.Typer(help="Track per-language coding time and sync it to a remote store")


@app.callback()
def main_callback(
    debug: bool = typer.Option(False, "--debug", help="Verbose logging"),
):
    """CodeTime Sync."""
    config = Config.load()
    setup_logging(debug or config.debug_mode)


@app.command()
def configure(
    service_account: Path = typer.Argument(
        ..., exists=True, dir_okay=False, help="Firebase service account JSON file"
    ),
):
    """Store Firestore credentials and switch to the Firestore backend."""
    try:
        creds = FirestoreCredentials.from_service_account_json(service_account.read_text())
    except CredentialsError as e:
        typer.echo(f"Firebase setup failed: {e}", err=True)
        raise typer.Exit(code=1)

    if not KeychainManager().store(creds):
        typer.echo("Could not write to the system keychain", err=True)
        raise typer.Exit(code=1)

    config = Config.load()
    config.backend.kind = "firestore"
    config.save()
    typer.echo(f"Firestore configured for project {creds.project_id}")


@app.command()
def token(api_token: str = typer.Argument(..., help="Tracking API token")):
    """Store a tracking API token and switch to the HTTP backend."""
    try:
        creds = ApiCredentials(api_token=api_token)
    except CredentialsError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)

    if not KeychainManager().store(creds):
        typer.echo("Could not write to the system keychain", err=True)
        raise typer.Exit(code=1)

    config = Config.load()
    config.backend.kind = "http"
    config.save()
    typer.echo(f"API token stored, syncing to {config.backend.get_api_url()}")


@app.command()
def log(
    language: str = typer.Argument(..., help="Language name, e.g. python"),
    seconds: int = typer.Argument(..., help="Seconds spent"),
    day: Optional[str] = typer.Option(None, "--date", help="Day as YYYY-MM-DD (default: today)"),
):
    """Submit one delta of coding time."""
    delta = DeltaRecord(
        date=day or date.today().isoformat(),
        total_seconds=seconds,
        languages={language: seconds},
    )
    try:
        validate_delta(delta)
    except InvalidDeltaError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=2)

    with TrackerApp() as tracker:
        tracker.start(schedule=False)
        outcome = tracker.coordinator.submit(tracker.user_id, delta)

    # A queued delta gets one more attempt from the shutdown drain
    delivered = outcome is SyncOutcome.SUCCESS or (
        outcome is SyncOutcome.QUEUED and tracker.coordinator.stats.succeeded > 0
    )
    if delivered:
        typer.echo(f"Synced {format_duration(seconds)} of {language} for {delta.date}")
    elif outcome is SyncOutcome.QUEUED:
        # The offline queue lives only as long as this process
        typer.echo("Backend unreachable; the delta could not be delivered", err=True)
        raise typer.Exit(code=1)
    else:
        typer.echo("Backend rejected the delta", err=True)
        raise typer.Exit(code=1)


@app.command()
def show(
    day: Optional[str] = typer.Option(None, "--date", help="Day as YYYY-MM-DD (default: today)"),
):
    """Show the stored record for a day."""
    day = day or date.today().isoformat()
    with TrackerApp() as tracker:
        if not tracker.start(schedule=False):
            typer.echo("Backend unavailable", err=True)
            raise typer.Exit(code=1)
        record = tracker.store.read(tracker.user_id, day)

    typer.echo(f"User ID: {tracker.user_id}")
    typer.echo(f"Date: {day}")
    if record is None:
        typer.echo("No time recorded")
        return

    typer.echo(f"Total: {format_duration(record.total_seconds)}")
    for lang, secs in sorted(record.languages.items(), key=lambda kv: -kv[1]):
        typer.echo(f"  {lang}: {format_duration(secs)}")


@app.command()
def status():
    """Show configuration and credential status."""
    config = Config.load()
    keychain = KeychainManager()
    typer.echo(f"User ID: {config.user_id or '(not assigned yet)'}")
    typer.echo(f"Backend: {config.backend.kind}")
    if config.backend.kind == "http":
        typer.echo(f"API URL: {config.backend.get_api_url()}")
    if config.backend.kind == "sqlite":
        typer.echo(f"Database: {config.backend.get_sqlite_path()}")
    configured = keychain.has_credentials(config.backend.kind)
    typer.echo(f"Credentials: {'configured' if configured else 'missing'}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
