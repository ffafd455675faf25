"""CLI entry point for agent-sessions."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime
from typing import TYPE_CHECKING, TextIO

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from agent_sessions import __version__
from agent_sessions.config import ConfigLoader
from agent_sessions.core import (
    AgentSessionsError,
    SessionValidationError,
    get_logger,
    setup_logging,
)
from agent_sessions.core.logging import parse_log_level
from agent_sessions.sessions import SessionStore

if TYPE_CHECKING:
    from agent_sessions.sessions import SessionMetadata

logger = get_logger("cli")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

PREVIEW_LENGTH = 50

COMMANDS = ("list", "show", "last", "delete", "purge", "rebuild")

# Options that consume the following argument
VALUE_OPTIONS = ("--dir", "--max-sessions")
FLAG_OPTIONS = ("--json", "--debug", "-h", "--help", "-v", "--version")


class UsageError(Exception):
    """Raised for malformed command lines."""


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the agent-sessions CLI.

    Args:
        argv: Arguments without the program name. Defaults to sys.argv[1:].

    Returns:
        Exit code (0 success, 1 failure or not found, 2 usage error).
    """
    args = sys.argv[1:] if argv is None else argv

    if "--version" in args or "-v" in args:
        print(f"agent-sessions {__version__}")
        return EXIT_OK

    if "--help" in args or "-h" in args:
        print_help()
        return EXIT_OK

    try:
        options, positional = parse_args(args)
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Run 'agent-sessions --help' for usage information", file=sys.stderr)
        return EXIT_USAGE

    if not positional:
        print_help(file=sys.stderr)
        return EXIT_USAGE

    command, command_args = positional[0], positional[1:]
    if command not in COMMANDS:
        print(f"Error: Unknown command '{command}'", file=sys.stderr)
        print("Run 'agent-sessions --help' for usage information", file=sys.stderr)
        return EXIT_USAGE

    # Load configuration
    try:
        config = ConfigLoader().load_all()
        if "--dir" in options:
            config.session.session_dir = options["--dir"]
        if "--max-sessions" in options:
            config.session.max_sessions = int(options["--max-sessions"])
    except ValueError as e:
        print(f"Error: Invalid option value: {e}", file=sys.stderr)
        return EXIT_USAGE
    except AgentSessionsError as e:
        print(f"Error: Failed to load configuration: {e}", file=sys.stderr)
        print(
            "Hint: Check your config files at ~/.agent/settings.json or "
            ".agent/settings.json",
            file=sys.stderr,
        )
        return EXIT_FAILURE

    if options.get("--debug"):
        level: int | None = logging.DEBUG
    else:
        level = parse_log_level(config.logging.level)
    setup_logging(
        level=level,
        log_file=config.logging.log_file,
        file_logging=config.logging.file_logging,
    )

    store = SessionStore.from_config(config.session)
    console = Console(highlight=False)
    as_json = bool(options.get("--json"))

    try:
        return run_command(store, console, command, command_args, as_json=as_json)
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except SessionValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except AgentSessionsError as e:
        logger.debug("Command %s failed", command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE


def parse_args(args: list[str]) -> tuple[dict[str, str | bool], list[str]]:
    """Split global options from the command and its arguments.

    Raises:
        UsageError: For unknown options or options missing their value.
    """
    options: dict[str, str | bool] = {}
    positional: list[str] = []

    i = 0
    while i < len(args):
        arg = args[i]
        if arg in VALUE_OPTIONS:
            if i + 1 >= len(args):
                raise UsageError(f"Option '{arg}' requires a value")
            options[arg] = args[i + 1]
            i += 2
            continue
        if arg in FLAG_OPTIONS:
            options[arg] = True
        elif arg.startswith("-") and not _is_number(arg):
            raise UsageError(f"Unknown option '{arg}'")
        else:
            positional.append(arg)
        i += 1

    return options, positional


def run_command(
    store: SessionStore,
    console: Console,
    command: str,
    args: list[str],
    *,
    as_json: bool = False,
) -> int:
    """Dispatch one command against the store.

    Returns:
        Exit code.
    """
    if command == "list":
        _expect_args(command, args, 0)
        return cmd_list(store, console, as_json=as_json)
    if command == "show":
        _expect_args(command, args, 1)
        return cmd_show(store, console, args[0], as_json=as_json)
    if command == "last":
        _expect_args(command, args, 0)
        return cmd_last(store, console, as_json=as_json)
    if command == "delete":
        _expect_args(command, args, 1)
        return cmd_delete(store, console, args[0], as_json=as_json)
    if command == "purge":
        if len(args) > 1:
            raise UsageError("Usage: agent-sessions purge [keep]")
        keep: int | None = None
        if args:
            if not _is_number(args[0]):
                raise UsageError(f"Invalid keep count: {args[0]}")
            keep = int(args[0])
            if keep < 0:
                raise UsageError(f"Keep count must not be negative: {keep}")
        return cmd_purge(store, console, keep, as_json=as_json)
    if command == "rebuild":
        _expect_args(command, args, 0)
        return cmd_rebuild(store, console, as_json=as_json)
    raise UsageError(f"Unknown command '{command}'")


def cmd_list(store: SessionStore, console: Console, *, as_json: bool = False) -> int:
    """Print every session, newest activity first."""
    sessions = store.list_sessions()

    if as_json:
        _print_json([_metadata_dict(m) for m in sessions])
        return EXIT_OK

    if not sessions:
        console.print("No sessions found.")
        return EXIT_OK

    table = Table(title=f"Sessions ({len(sessions)})")
    table.add_column("ID", no_wrap=True)
    table.add_column("Last Active")
    table.add_column("Messages", justify="right")
    table.add_column("First Message")

    for meta in sessions:
        table.add_row(
            escape(meta.id),
            _format_local(meta.last_activity_at),
            str(meta.message_count),
            escape(_preview(meta.first_message)),
        )

    console.print(table)
    return EXIT_OK


def cmd_show(
    store: SessionStore, console: Console, session_id: str, *, as_json: bool = False
) -> int:
    """Print one session's metadata and context summary."""
    session = store.load_session(session_id)
    if session is None:
        print(f"Session not found: {session_id}", file=sys.stderr)
        return EXIT_FAILURE

    if as_json:
        _print_json(
            {
                "metadata": _metadata_dict(session.metadata),
                "contextSummary": session.context_summary,
            }
        )
        return EXIT_OK

    meta = session.metadata
    console.print(f"[bold]{escape(meta.name)}[/bold] ({escape(meta.id)})")
    if meta.description:
        console.print(meta.description, markup=False)
    console.print(f"Created:       {_format_local(meta.created_at)}")
    console.print(f"Last activity: {_format_local(meta.last_activity_at)}")
    console.print(f"Messages:      {meta.message_count}")
    console.print(f"Provider:      {meta.provider} / {meta.model}", markup=False)
    if session.context_summary:
        console.print("")
        console.print(session.context_summary, markup=False)
    return EXIT_OK


def cmd_last(store: SessionStore, console: Console, *, as_json: bool = False) -> int:
    """Print the id of the most recently saved session."""
    session_id = store.get_last_session()

    if as_json:
        _print_json({"sessionId": session_id})
    elif session_id is not None:
        console.print(session_id, markup=False)
    else:
        print("No previous session found.", file=sys.stderr)

    return EXIT_OK if session_id is not None else EXIT_FAILURE


def cmd_delete(
    store: SessionStore, console: Console, session_id: str, *, as_json: bool = False
) -> int:
    """Delete one session."""
    deleted = store.delete_session(session_id)

    if as_json:
        _print_json({"sessionId": session_id, "deleted": deleted})
    elif deleted:
        console.print(f"Deleted session: {session_id}", markup=False)
    else:
        print(f"Session not found: {session_id}", file=sys.stderr)

    return EXIT_OK if deleted else EXIT_FAILURE


def cmd_purge(
    store: SessionStore,
    console: Console,
    keep: int | None,
    *,
    as_json: bool = False,
) -> int:
    """Delete the oldest sessions beyond keep (max_sessions by default)."""
    deleted = store.purge_sessions(keep)
    kept = store.max_sessions if keep is None else keep

    if as_json:
        _print_json({"deleted": deleted, "kept": kept})
    elif deleted:
        console.print(f"Purged {deleted} old session(s), keeping the {kept} most recent.")
    else:
        console.print("No sessions to purge.")
    return EXIT_OK


def cmd_rebuild(store: SessionStore, console: Console, *, as_json: bool = False) -> int:
    """Regenerate the index from the session files."""
    index = store.rebuild_index()

    if as_json:
        _print_json({"sessions": len(index.sessions)})
    else:
        console.print(f"Rebuilt index with {len(index.sessions)} session(s).")
    return EXIT_OK


def print_help(file: TextIO | None = None) -> None:
    """Print help message."""
    help_text = """
agent-sessions - Manage saved agent conversation sessions

Usage: agent-sessions [OPTIONS] COMMAND [ARGS]

Commands:
  list              List sessions, most recent first
  show <id>         Show a session's metadata and context summary
  last              Print the most recently saved session id
  delete <id>       Delete a session
  purge [keep]      Delete all but the <keep> most recent sessions
  rebuild           Rebuild index.json from the session files

Options:
  --dir <path>        Session directory (default: ~/.agent/sessions)
  --max-sessions N    Retention limit (default: 50)
  --json              Print machine-readable JSON
  --debug             Enable debug logging
  -v, --version       Show version and exit
  -h, --help          Show this help message
"""
    print(help_text.strip(), file=file)


def _expect_args(command: str, args: list[str], count: int) -> None:
    if len(args) != count:
        usage = {
            "show": "agent-sessions show <id>",
            "delete": "agent-sessions delete <id>",
        }.get(command, f"agent-sessions {command}")
        raise UsageError(f"Usage: {usage}")


def _is_number(value: str) -> bool:
    return value.lstrip("-").isdigit()


def _preview(text: str) -> str:
    if len(text) <= PREVIEW_LENGTH:
        return text
    return text[:PREVIEW_LENGTH] + "..."


def _format_local(value: datetime) -> str:
    return value.astimezone().strftime("%Y-%m-%d %H:%M")


def _metadata_dict(meta: SessionMetadata) -> dict[str, object]:
    return meta.model_dump(mode="json", by_alias=True)


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2))


if __name__ == "__main__":
    sys.exit(main())
