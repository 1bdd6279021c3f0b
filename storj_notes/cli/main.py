"""
Root entrypoint for the storj-notes command-line interface.

Usage:

    storj-notes [OPTIONS] get <identifier>
    storj-notes [OPTIONS] set <identifier> <value>
    storj-notes [OPTIONS] list [prefix]
    storj-notes [OPTIONS] delete <identifier>

The root callback resolves the configuration (flags, then NOTES_* environment
variables, then defaults). Each command then:

    1. validates credentials before any storage client is constructed
    2. resolves the access grant
    3. opens the NoteService (project + bucket)
    4. runs exactly one note operation
    5. closes the service

Errors are printed once, to stderr, and mapped to exit codes:

    0    success
    1    authentication, service-open or operation failure
    2    usage error (missing command, credentials or arguments)
    130  interrupted with Ctrl-C
"""

# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------
import warnings
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, List, Optional

import typer

from storj_notes import __version__
from storj_notes.access import resolve_access
from storj_notes.cancellation import CancellationToken, interrupt_cancels
from storj_notes.config import NotesConfig, load_env_file
from storj_notes.errors import (
    AuthError,
    MetadataParseWarning,
    NotesError,
    OperationCancelled,
    OperationError,
    ServiceOpenError,
    UsageError,
)
from storj_notes.logging_utils import log_error, log_verbose, log_warning
from storj_notes.models import format_upload_time
from storj_notes.service import NoteService
from storj_notes.types import StorageClient
from storj_notes.uplink_client import UplinkClient

EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130

# Load environment variables from .env before options are resolved.
load_env_file()


@dataclass
class CliState:
    """
    Per-invocation state shared between the root callback and commands.

    Tests pass a CliState with a custom `client_factory` through
    `CliRunner.invoke(cli, args, obj=...)`.
    """

    client_factory: Callable[[], StorageClient] = UplinkClient
    config: Optional[NotesConfig] = None
    verbose: bool = False
    token: CancellationToken = field(default_factory=CancellationToken)


# ---------------------------------------------------------------------------
# Root CLI application
# ---------------------------------------------------------------------------
cli = typer.Typer(
    help=(
        "Store short text notes in a Storj bucket.\n\n"
        "Authenticate with either --access, or all of --satellite, "
        "--apikey and --passphrase."
    ),
    add_completion=False,
)


def _usage_exit(ctx: typer.Context, message: str) -> None:
    log_error(message)
    log_error("")
    log_error(ctx.get_help())
    raise typer.Exit(code=EXIT_USAGE)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@cli.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    passphrase: Optional[str] = typer.Option(
        None, "--passphrase", help="Passphrase for data (env: NOTES_PASSPHRASE)."
    ),
    apikey: Optional[str] = typer.Option(
        None, "--apikey", help="API key for the satellite (env: NOTES_APIKEY)."
    ),
    satellite: Optional[str] = typer.Option(
        None, "--satellite", help="Satellite address for notes (env: NOTES_SATELLITE)."
    ),
    access: Optional[str] = typer.Option(
        None, "--access", help="Access grant to the Storj network (env: NOTES_ACCESS)."
    ),
    bucket: Optional[str] = typer.Option(
        None, "--bucket", help="Bucket name, default 'notes' (env: NOTES_BUCKET)."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show progress on stderr."
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """
    Resolve configuration before any command runs.

    Credentials are validated here only when no command was given; otherwise
    each command validates them, so `<command> --help` works without any.
    """
    state = ctx.ensure_object(CliState)
    state.verbose = verbose

    config = NotesConfig.resolve(
        passphrase=passphrase,
        apikey=apikey,
        satellite=satellite,
        access=access,
        bucket=bucket,
    )
    state.config = config

    if ctx.invoked_subcommand is None:
        _require_config(ctx)
        _usage_exit(ctx, "Command not set `list`, `get`, `set`, `delete`")


# ---------------------------------------------------------------------------
# Shared command plumbing
# ---------------------------------------------------------------------------


def _require_config(ctx: typer.Context) -> CliState:
    """Return the CLI state, exiting with usage help if credentials are missing."""
    state: CliState = ctx.obj
    try:
        state.config.validate()
    except UsageError as exc:
        _usage_exit(ctx, str(exc))
    return state


@contextmanager
def open_service(state: CliState) -> Iterator[NoteService]:
    """
    Resolve access, open the service and close it again on exit.

    A failure to close is reported but does not change the outcome of the
    command that already ran.
    """
    config = state.config
    if config is None:
        raise UsageError("configuration was not resolved")

    log_verbose("Loading storage client...", state.verbose)
    client = state.client_factory()

    log_verbose("Resolving access grant...", state.verbose)
    grant = resolve_access(config, client, state.token)

    log_verbose(f"Opening bucket {config.bucket!r}...", state.verbose)
    service = NoteService.open(client, grant, config.bucket, token=state.token)
    try:
        yield service
    finally:
        try:
            service.close()
        except NotesError as exc:
            log_error(f"failed to close service: {exc}")


def run_command(state: CliState, context: str, operation: Callable[[NoteService], Any]) -> Any:
    """
    Run one note operation and translate failures into exit codes.

    `context` describes the operation for error messages, e.g.
    'get note "todo"'. Metadata parse warnings raised while the operation
    runs are printed once each, after it finishes. Other warnings keep
    their usual display.
    """
    caught: List[warnings.WarningMessage] = []
    try:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", MetadataParseWarning)
            with interrupt_cancels(state.token):
                with open_service(state) as service:
                    return operation(service)
    except OperationCancelled:
        log_error(f"{context}: interrupted")
        raise typer.Exit(code=EXIT_INTERRUPTED)
    except UsageError as exc:
        log_error(str(exc))
        raise typer.Exit(code=EXIT_USAGE)
    except AuthError as exc:
        log_error(str(exc))
        raise typer.Exit(code=EXIT_FAILURE)
    except ServiceOpenError as exc:
        log_error(f"unable to open notes service: {exc}")
        raise typer.Exit(code=EXIT_FAILURE)
    except OperationError as exc:
        log_error(f"failed to {context}: {exc}")
        raise typer.Exit(code=EXIT_FAILURE)
    except (NotesError, RuntimeError) as exc:
        log_error(f"{context}: {exc}")
        raise typer.Exit(code=EXIT_FAILURE)
    finally:
        for warning in caught:
            if issubclass(warning.category, MetadataParseWarning):
                log_warning(str(warning.message))
            else:
                warnings.showwarning(
                    warning.message, warning.category, warning.filename, warning.lineno
                )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@cli.command("get")
def get_note(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="Identifier of the note."),
) -> None:
    """Print the message of a note."""
    state = _require_config(ctx)
    note = run_command(state, f'get note "{identifier}"', lambda s: s.get(identifier))
    if note.uploaded is not None:
        log_verbose(f"Uploaded at {format_upload_time(note.uploaded)}", state.verbose)
    typer.echo(note.message)


@cli.command("set")
def set_note(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="Identifier of the note."),
    value: str = typer.Argument(..., help="Message to store."),
) -> None:
    """Store a note, replacing any existing note with the same identifier."""
    state = _require_config(ctx)
    run_command(state, f'set note "{identifier}"', lambda s: s.set(identifier, value))
    log_verbose(f"Stored {identifier!r}.", state.verbose)


@cli.command("list")
def list_notes(
    ctx: typer.Context,
    prefix: str = typer.Argument("", help="Only list identifiers starting with this prefix."),
    long: bool = typer.Option(
        False, "--long", "-l", help="Prefix each identifier with its upload time."
    ),
) -> None:
    """Print note identifiers, one per line."""
    state = _require_config(ctx)
    notes = run_command(state, f'list notes "{prefix}"', lambda s: s.list(prefix))
    for meta in notes:
        if long:
            uploaded = format_upload_time(meta.uploaded) if meta.uploaded else "-"
            typer.echo(f"{uploaded}\t{meta.identifier}")
        else:
            typer.echo(meta.identifier)
    log_verbose(f"{len(notes)} note(s).", state.verbose)


@cli.command("delete")
def delete_note(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="Identifier of the note."),
) -> None:
    """Delete a note."""
    state = _require_config(ctx)
    run_command(state, f'delete note "{identifier}"', lambda s: s.delete(identifier))
    log_verbose(f"Deleted {identifier!r}.", state.verbose)


# ---------------------------------------------------------------------------
# Entry point for `python -m storj_notes.cli.main`
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    cli()
