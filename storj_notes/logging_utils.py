"""
logging_utils.py

A small collection of logging helpers used across the notes tool.

These helpers keep diagnostics consistent and centralized. They
intentionally avoid any heavy logging framework: output goes through
Typer's echo function, and always to stderr, so stdout stays reserved for
command results (note bodies, identifiers) that users may pipe elsewhere.
"""

import typer


def log_verbose(message: str, verbose: bool) -> None:
    """
    Print a high‑level progress message when verbose mode is enabled.

    Parameters
    ----------
    message : str
        A short, plain‑English description of what the tool is doing
        (e.g., "Opening project...", "Downloading note...").

    verbose : bool
        Whether verbose mode is active. When False, this function does
        nothing.
    """
    if verbose:
        typer.echo(message, err=True)


def log_warning(message: str) -> None:
    """Print a non-fatal diagnostic to stderr."""
    typer.echo(f"warning: {message}", err=True)


def log_error(message: str) -> None:
    """Print a fatal diagnostic to stderr. The caller decides the exit code."""
    typer.echo(message, err=True)
