#!/usr/bin/env python3
"""Waybar Google Calendar check CLI."""
from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

from waybar_gcal.config import DEFAULT_CONFIG_DIR, ConfigError, Settings, load_settings
from waybar_gcal.google_calendar import CalendarError
from waybar_gcal.oauth import AuthError, setup_token
from waybar_gcal.services import calendar_lines, fetch_bar_item


logger = logging.getLogger("waybar_gcal")

_HANDLED_ERRORS = (ConfigError, AuthError, CalendarError)


def _global_options(default) -> argparse.ArgumentParser:
    """Options accepted both before and after the subcommand."""
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument(
        "--config-dir",
        default=default,
        help=(
            "Directory to store the tokens (and credentials); "
            f"${{HOME}} is expanded. Default: {DEFAULT_CONFIG_DIR}"
        ),
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=default if default is argparse.SUPPRESS else False,
        help="Log debug details to stderr.",
    )
    return parser


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="waybar-gcal",
        description="Show the next Google Calendar event of the day in waybar.",
        parents=[_global_options(None)],
    )
    sub_options = _global_options(argparse.SUPPRESS)

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser(
        "run",
        parents=[sub_options],
        help="Print today's next event in waybar JSON format.",
    )
    run_parser.add_argument(
        "--calendar",
        help="Identifier of the calendar (use list to print out available options).",
    )

    subparsers.add_parser(
        "setup",
        parents=[sub_options],
        help="Authorize access and store the token.",
    )

    subparsers.add_parser(
        "list",
        parents=[sub_options],
        help="List available calendars.",
    )

    return parser


def _cmd_run(settings: Settings) -> int:
    try:
        item = fetch_bar_item(settings)
    except _HANDLED_ERRORS as exc:
        logger.error(f"Run failed: {exc}")
        return 1

    print(item.to_json())
    return 0


def _cmd_setup(settings: Settings) -> int:
    try:
        setup_token(settings)
    except _HANDLED_ERRORS as exc:
        logger.error(f"Setup failed: {exc}")
        return 1

    print(f"Token stored in {settings.token_path}")
    return 0


def _cmd_list(settings: Settings) -> int:
    try:
        lines = calendar_lines(settings)
    except _HANDLED_ERRORS as exc:
        logger.error(f"Listing calendars failed: {exc}")
        return 1

    for line in lines:
        print(line)
    return 0


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        settings = load_settings(
            config_dir=args.config_dir,
            calendar_id=getattr(args, "calendar", None),
        )
    except ConfigError as exc:
        logger.error(f"Invalid configuration: {exc}")
        return 1

    if args.command == "run":
        return _cmd_run(settings)
    if args.command == "setup":
        return _cmd_setup(settings)
    if args.command == "list":
        return _cmd_list(settings)

    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
