# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from oacompass.app import build_settings_stores, build_workflow, load_settings, run_relay
from oacompass.common.logging import configure_logging
from oacompass.config import (
    ConfigurationError,
    UserPreferences,
    effective_show_debug,
    get_relay_config,
    parse_institution_config,
    save_user_preferences,
)
from oacompass.domain.model.fields import parse_secondary_field, parse_username_field
from oacompass.domain.search import search_patrons
from oacompass.domain.workflow import OutcomeKind

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from oacompass.domain.workflow import ReconciliationOutcome, ReconciliationWorkflow

log = logging.getLogger(__name__)

_SETTING_KEYS = (
    "proxyBaseUrl",
    "oaIdTypeCode",
    "oaPrimaryField",
    "oaSecondaryField",
    "disallowedEmailDomain",
    "showDebugPanel",
)
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Provision OpenAthens accounts for Alma patrons")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the OpenAthens relay service")
    serve.add_argument("--host", type=str, help="Bind address (defaults to HOST)")
    serve.add_argument("--port", type=int, help="Listen port (defaults to PORT)")

    search = subparsers.add_parser("search", help="Search Alma users")
    search.add_argument("term", type=str, help="Name, email, or primary id")
    search.add_argument("--limit", type=int, default=10, help="Page size (default: %(default)s)")
    search.add_argument(
        "--pages",
        type=int,
        default=1,
        help="Number of pages to load (default: %(default)s)",
    )

    for name, help_text in (
        ("verify", "Look up the patron's OpenAthens account"),
        ("create", "Create an OpenAthens account and save the username in Alma"),
        ("sync", "Find or update the OpenAthens account and save the username in Alma"),
        ("resend", "Resend the OpenAthens activation email"),
    ):
        command = subparsers.add_parser(name, help=help_text)
        command.add_argument("primary_id", type=str, help="Alma primary id of the patron")

    config = subparsers.add_parser("config", help="Institution settings")
    config_sub = config.add_subparsers(dest="config_command", required=True)
    config_sub.add_parser("show", help="Print the effective settings")
    config_set = config_sub.add_parser("set", help="Update settings")
    config_set.add_argument(
        "assignments",
        nargs="+",
        metavar="KEY=VALUE",
        help=f"One or more of: {', '.join(_SETTING_KEYS)}",
    )

    prefs = subparsers.add_parser("prefs", help="Personal preferences")
    prefs_sub = prefs.add_subparsers(dest="prefs_command", required=True)
    prefs_set = prefs_sub.add_parser("set", help="Update preferences")
    prefs_set.add_argument(
        "--show-debug-panel",
        choices=("on", "off", "default"),
        required=True,
        help="Show provider debug output; 'default' follows the institution setting",
    )

    args = parser.parse_args(list(argv))
    if args.command == "search" and (args.limit < 1 or args.pages < 1):
        raise ValueError("--limit and --pages must be positive")
    return args


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"Invalid boolean value: {value}")


def _parse_assignments(assignments: Sequence[str]) -> dict[str, object]:
    """Validate ``KEY=VALUE`` pairs for ``config set``."""

    updates: dict[str, object] = {}
    for assignment in assignments:
        key, sep, value = assignment.partition("=")
        key = key.strip()
        if not sep or key not in _SETTING_KEYS:
            raise ValueError(f"Invalid setting {assignment!r}; expected one of {_SETTING_KEYS}")
        value = value.strip()
        if key == "showDebugPanel":
            updates[key] = _parse_bool(value)
            continue
        if key == "proxyBaseUrl" and value and not value.startswith("https://"):
            raise ValueError("proxyBaseUrl must start with https://")
        if key == "oaPrimaryField":
            parse_username_field(value)
        if key == "oaSecondaryField":
            parse_secondary_field(value)
        updates[key] = value
    return updates


def _print_outcome(outcome: ReconciliationOutcome, *, show_debug: bool) -> None:
    if outcome.status_text:
        print(outcome.status_text)
    if show_debug and outcome.debug_text:
        print(outcome.debug_text)


def _run_workflow(command: str, primary_id: str) -> int:
    institution, preferences = load_settings()
    workflow: ReconciliationWorkflow = build_workflow(institution=institution)
    record = workflow.records.get_user(primary_id)
    if command == "verify":
        outcome = workflow.verify(record)
    elif command == "create":
        outcome = workflow.create(record, primary_id)
    elif command == "sync":
        outcome = workflow.sync(record, primary_id)
    else:
        outcome = workflow.resend_activation(record, primary_id)
    log.info("%s for %s finished: %s", command, primary_id, outcome.kind.value)
    _print_outcome(outcome, show_debug=effective_show_debug(institution, preferences))
    return 1 if outcome.kind is OutcomeKind.FAILED else 0


def _run_search(term: str, *, limit: int, pages: int) -> int:
    institution, _ = load_settings()
    workflow = build_workflow(institution=institution)
    session = search_patrons(workflow.records, term, limit=limit)
    for _ in range(pages - 1):
        if not session.load_more():
            break
    if not session.items:
        print(f"No Alma users found for {term!r}.")
        return 0
    for summary in session.items:
        group = summary.group_description or summary.group_code or "-"
        print(f"{summary.primary_id}\t{summary.display_name}\t{group}\t{summary.expiry or '-'}")
    total = session.total_record_count
    print(f"Showing {len(session.items)} of {total if total is not None else '?'} ({session.query})")
    return 0


def _run_config(args: argparse.Namespace) -> int:
    stores = build_settings_stores()
    if args.config_command == "show":
        institution, preferences = load_settings(stores)
        for key, value in institution.to_mapping().items():
            print(f"{key}={value}")
        print(f"effectiveShowDebugPanel={effective_show_debug(institution, preferences)}")
        return 0
    updates = _parse_assignments(args.assignments)
    merged = {**stores.institution.get(), **updates}
    parse_institution_config(merged)
    stores.institution.set(merged)
    log.info("Updated institution settings: %s", ", ".join(sorted(updates)))
    return 0


def _run_prefs(args: argparse.Namespace) -> int:
    stores = build_settings_stores()
    choice = args.show_debug_panel
    preferences = UserPreferences(show_debug_panel=None if choice == "default" else choice == "on")
    save_user_preferences(stores.preferences, preferences)
    log.info("Updated preferences: showDebugPanel=%s", choice)
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
        if parsed_args.command == "config" and parsed_args.config_command == "set":
            _parse_assignments(parsed_args.assignments)
        relay_config = get_relay_config() if parsed_args.command == "serve" else None
    except (ValueError, ConfigurationError):
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "serve":
            assert relay_config is not None
            if parsed_args.host or parsed_args.port:
                relay_config = replace(
                    relay_config,
                    host=parsed_args.host or relay_config.host,
                    port=parsed_args.port or relay_config.port,
                )
            run_relay(relay_config)
            exit_code = 0
        elif parsed_args.command == "search":
            exit_code = _run_search(parsed_args.term, limit=parsed_args.limit, pages=parsed_args.pages)
        elif parsed_args.command in {"verify", "create", "sync", "resend"}:
            exit_code = _run_workflow(parsed_args.command, parsed_args.primary_id)
        elif parsed_args.command == "config":
            exit_code = _run_config(parsed_args)
        elif parsed_args.command == "prefs":
            exit_code = _run_prefs(parsed_args)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error")
        sys.exit(1)

    if exit_code:
        sys.exit(exit_code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console-script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
