# tests/test_notes_cli.py
"""
CLI tests for the storj-notes Typer application.

Every invocation injects the shared DummyStorage through
`CliRunner.invoke(cli, args, obj=cli_state())`, so no native bindings or
network access are needed.
"""

import threading
import warnings

from storj_notes import __version__
from storj_notes.access import resolve_access
from storj_notes.cli.main import EXIT_FAILURE, EXIT_INTERRUPTED, EXIT_USAGE, CliState, cli
from storj_notes.errors import StorageError
from storj_notes.models import UPLOAD_TIME_KEY

ACCESS = ["--access", "test-grant"]


# =====================================================================
# Usage errors
# =====================================================================


def test_no_command_prints_usage_without_contacting_storage(cli_runner, cli_state):
    result = cli_runner.invoke(cli, ACCESS, obj=cli_state())

    assert result.exit_code == EXIT_USAGE
    assert "Command not set" in result.output
    assert "Usage" in result.output
    assert cli_state.factory.factory_calls == 0


def test_missing_credentials_prints_usage(cli_runner, cli_state):
    result = cli_runner.invoke(cli, ["get", "todo"], obj=cli_state())

    assert result.exit_code == EXIT_USAGE
    assert "Authentication information not set" in result.output
    assert "--passphrase, --apikey, --satellite" in result.output
    assert cli_state.factory.factory_calls == 0


def test_incomplete_passphrase_triple_is_a_usage_error(cli_runner, cli_state):
    result = cli_runner.invoke(
        cli, ["--satellite", "sat", "--apikey", "key", "list"], obj=cli_state()
    )

    assert result.exit_code == EXIT_USAGE
    assert cli_state.factory.factory_calls == 0


def test_unknown_command_is_a_usage_error(cli_runner, cli_state):
    result = cli_runner.invoke(cli, ACCESS + ["frobnicate"], obj=cli_state())

    assert result.exit_code == EXIT_USAGE
    assert cli_state.factory.factory_calls == 0


def test_set_requires_a_value(cli_runner, cli_state):
    result = cli_runner.invoke(cli, ACCESS + ["set", "todo"], obj=cli_state())

    assert result.exit_code == EXIT_USAGE


def test_command_help_needs_no_credentials(cli_runner, cli_state):
    result = cli_runner.invoke(cli, ["get", "--help"], obj=cli_state())

    assert result.exit_code == 0, result.output
    assert "Usage" in result.output
    assert "Authentication information not set" not in result.output
    assert cli_state.factory.factory_calls == 0


def test_version_flag(cli_runner, cli_state):
    result = cli_runner.invoke(cli, ["--version"], obj=cli_state())

    assert result.exit_code == 0
    assert __version__ in result.output


# =====================================================================
# Commands
# =====================================================================


def test_set_then_get_prints_message(cli_runner, cli_state, storage):
    stored = cli_runner.invoke(cli, ACCESS + ["set", "todo", "buy milk"], obj=cli_state())

    assert stored.exit_code == 0, stored.output
    assert stored.output == ""
    assert storage.buckets["notes"]["todo"][0] == b"buy milk"

    fetched = cli_runner.invoke(cli, ACCESS + ["get", "todo"], obj=cli_state())

    assert fetched.exit_code == 0, fetched.output
    assert fetched.output == "buy milk\n"


def test_list_prints_one_identifier_per_line(cli_runner, cli_state, storage):
    storage.put("notes", "a/b", b"x")
    storage.put("notes", "a/c", b"y")
    storage.put("notes", "b/d", b"z")

    result = cli_runner.invoke(cli, ACCESS + ["list", "a/"], obj=cli_state())

    assert result.exit_code == 0, result.output
    assert sorted(result.output.splitlines()) == ["a/b", "a/c"]


def test_list_without_prefix_lists_everything(cli_runner, cli_state, storage):
    storage.put("notes", "one", b"1")
    storage.put("notes", "two", b"2")

    result = cli_runner.invoke(cli, ACCESS + ["list"], obj=cli_state())

    assert result.exit_code == 0, result.output
    assert sorted(result.output.splitlines()) == ["one", "two"]


def test_list_long_shows_upload_time(cli_runner, cli_state, storage):
    storage.put("notes", "dated", b"1", {UPLOAD_TIME_KEY: "2026-10-19T12:30:00Z"})
    storage.put("notes", "undated", b"2")

    result = cli_runner.invoke(cli, ACCESS + ["list", "--long"], obj=cli_state())

    assert result.exit_code == 0, result.output
    assert result.output.splitlines() == [
        "2026-10-19T12:30:00Z\tdated",
        "-\tundated",
    ]


def test_delete_removes_note(cli_runner, cli_state, storage):
    storage.put("notes", "todo", b"buy milk")

    result = cli_runner.invoke(cli, ACCESS + ["delete", "todo"], obj=cli_state())

    assert result.exit_code == 0, result.output
    assert result.output == ""
    assert "todo" not in storage.buckets["notes"]


def test_bucket_option_selects_bucket(cli_runner, cli_state, storage):
    result = cli_runner.invoke(
        cli, ACCESS + ["--bucket", "journal", "set", "day1", "hello"], obj=cli_state()
    )

    assert result.exit_code == 0, result.output
    assert "day1" in storage.buckets["journal"]


def test_environment_variables_are_used(cli_runner, cli_state, storage):
    result = cli_runner.invoke(
        cli,
        ["set", "todo", "from env"],
        obj=cli_state(),
        env={"NOTES_ACCESS": "env-grant", "NOTES_BUCKET": "envbucket"},
    )

    assert result.exit_code == 0, result.output
    assert "todo" in storage.buckets["envbucket"]


def test_passphrase_flags_request_access(cli_runner, cli_state, storage):
    result = cli_runner.invoke(
        cli,
        ["--satellite", "sat", "--apikey", "key", "--passphrase", "pw", "list"],
        obj=cli_state(),
    )

    assert result.exit_code == 0, result.output
    assert storage.calls[0] == "request_access"


def test_verbose_reports_progress(cli_runner, cli_state):
    result = cli_runner.invoke(cli, ACCESS + ["--verbose", "set", "todo", "x"], obj=cli_state())

    assert result.exit_code == 0, result.output
    assert "Resolving access grant..." in result.output


# =====================================================================
# Failures
# =====================================================================


def test_get_missing_note_fails_with_context(cli_runner, cli_state):
    result = cli_runner.invoke(cli, ACCESS + ["get", "nope"], obj=cli_state())

    assert result.exit_code == EXIT_FAILURE
    assert 'failed to get note "nope"' in result.output


def test_auth_failure_exits_non_zero(cli_runner, cli_state, storage):
    storage.failures["parse_access"] = StorageError("malformed grant")

    result = cli_runner.invoke(cli, ACCESS + ["list"], obj=cli_state())

    assert result.exit_code == EXIT_FAILURE
    assert "unable to load access grant: malformed grant" in result.output


def test_service_open_failure_exits_non_zero(cli_runner, cli_state, storage):
    storage.failures["ensure_bucket"] = StorageError("permission denied")

    result = cli_runner.invoke(cli, ACCESS + ["list"], obj=cli_state())

    assert result.exit_code == EXIT_FAILURE
    assert "unable to open notes service" in result.output


def test_upload_failure_reports_abort_outcome(cli_runner, cli_state, storage):
    storage.failures["write"] = StorageError("disk full")
    storage.failures["abort"] = StorageError("abort rejected")

    result = cli_runner.invoke(cli, ACCESS + ["set", "todo", "x"], obj=cli_state())

    assert result.exit_code == EXIT_FAILURE
    assert 'failed to set note "todo"' in result.output
    assert "disk full, abort failed: abort rejected" in result.output


def test_close_failure_is_reported_but_command_succeeds(cli_runner, cli_state, storage):
    storage.failures["close_project"] = StorageError("close timed out")

    result = cli_runner.invoke(cli, ACCESS + ["list"], obj=cli_state())

    assert result.exit_code == 0
    assert "failed to close service" in result.output


def test_malformed_metadata_is_a_warning(cli_runner, cli_state, storage):
    storage.put("notes", "weird", b"?", {UPLOAD_TIME_KEY: "not a time"})

    result = cli_runner.invoke(cli, ACCESS + ["list"], obj=cli_state())

    assert result.exit_code == 0, result.output
    assert "weird" in result.output
    assert 'failed to parse upload time "not a time"' in result.output


def test_missing_bindings_fail_cleanly(cli_runner):
    def _no_bindings():
        raise RuntimeError("uplink-python is required for UplinkClient")

    result = cli_runner.invoke(cli, ACCESS + ["list"], obj=CliState(client_factory=_no_bindings))

    assert result.exit_code == EXIT_FAILURE
    assert "uplink-python is required" in result.output


def test_only_metadata_warnings_use_the_warning_prefix(cli_runner, cli_state, storage, monkeypatch):
    def _noisy_resolve(*args, **kwargs):
        warnings.warn("legacy grant format", DeprecationWarning)
        return resolve_access(*args, **kwargs)

    monkeypatch.setattr("storj_notes.cli.main.resolve_access", _noisy_resolve)
    storage.put("notes", "weird", b"?", {UPLOAD_TIME_KEY: "not a time"})

    result = cli_runner.invoke(cli, ACCESS + ["list"], obj=cli_state())

    assert result.exit_code == 0, result.output
    assert 'warning: failed to parse upload time "not a time"' in result.output
    assert "warning: legacy grant format" not in result.output


# =====================================================================
# Interrupts
# =====================================================================


def test_interrupt_during_get_exits_130_and_releases_handles(cli_runner, cli_state, storage):
    storage.put("notes", "todo", b"buy milk")
    storage.read_gate = threading.Event()
    state = cli_state()
    timer = threading.Timer(0.1, state.token.cancel)
    timer.start()

    try:
        result = cli_runner.invoke(cli, ACCESS + ["get", "todo"], obj=state)
    finally:
        storage.read_gate.set()
        timer.cancel()

    assert result.exit_code == EXIT_INTERRUPTED
    assert 'get note "todo": interrupted' in result.output
    assert storage.projects and all(project.closed for project in storage.projects)
    assert all(download.closed for download in storage.downloads)


def test_interrupt_before_any_call_exits_130(cli_runner, cli_state, storage):
    state = cli_state()
    state.token.cancel()

    result = cli_runner.invoke(cli, ACCESS + ["list"], obj=state)

    assert result.exit_code == EXIT_INTERRUPTED
    assert 'list notes "": interrupted' in result.output
    assert storage.projects == []
