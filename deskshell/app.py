"""DeskShell entry point: CLI flags, logging setup and mode dispatch."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from deskshell.engine.config import ShellConfig
from deskshell.engine.context import ShellContext
from deskshell.engine.errors import ShellError, TransportError
from deskshell.engine.yaml_config import discover_config_path, load_yaml_config

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [pid=%(process)d] %(message)s"


def default_log_file() -> Path:
    return Path.home() / ".deskshell" / "logs" / "deskshell.log"


def configure_logging(
    level: str,
    log_file: Path | None = None,
    to_stderr: bool = False,
) -> Path:
    """Install the rotating file handler (and optionally stderr) on the root logger."""
    log_file = log_file or default_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()
    formatter = logging.Formatter(LOG_FORMAT)
    file_handler = RotatingFileHandler(
        log_file, maxBytes=2_000_000, backupCount=5, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    # Textual owns the terminal in TUI mode
    if to_stderr:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)
    return log_file


def resolve_config(args) -> ShellConfig:
    """Env vars, then YAML (explicit or discovered), then CLI flags."""
    config = ShellConfig.from_env()
    config_path = Path(args.config) if args.config else discover_config_path()
    if config_path is not None:
        config = load_yaml_config(config_path, base=config)

    overrides = {}
    if args.url:
        overrides["server_url"] = args.url
    if args.title:
        overrides["session_title"] = args.title
    if args.log_level:
        overrides["log_level"] = args.log_level
    return dataclasses.replace(config, **overrides) if overrides else config


async def list_sessions(config: ShellConfig) -> int:
    async with ShellContext(config) as ctx:
        try:
            sessions = await ctx.transport.list_sessions()
        except TransportError as exc:
            print(f"Could not reach {config.base_url}: {exc}", file=sys.stderr)
            return 1
    if not sessions:
        print("No sessions.")
        return 0
    for session in sessions:
        marker = "*" if session.title == config.session_title else " "
        print(f"{marker} {session.id}  {session.title}")
    return 0


async def reset_canonical_session(config: ShellConfig) -> int:
    async with ShellContext(config) as ctx:
        try:
            outcome = await ctx.coordinator.reset_session()
        except ShellError as exc:
            print(f"Reset failed: {exc}", file=sys.stderr)
            return 1
    print(f"Fresh session: {outcome.session.id}  {outcome.session.title}")
    return 0


def build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        prog="deskshell",
        description="DeskShell: chat shell for a remote agent session",
    )
    parser.add_argument(
        "--url", metavar="URL",
        help="Base URL of the agent server (default: http://127.0.0.1:4096)",
    )
    parser.add_argument(
        "--title", metavar="TITLE",
        help="Title of the canonical session (default: desktop)",
    )
    parser.add_argument(
        "--config", metavar="PATH",
        help="YAML config file (default: auto-discover .deskshell/config.yaml)",
    )
    parser.add_argument(
        "--log-level", metavar="LEVEL",
        help="Root log level (DEBUG, INFO, WARNING, ERROR)",
    )
    parser.add_argument(
        "--list", action="store_true",
        help="List remote sessions and exit",
    )
    parser.add_argument(
        "--reset", action="store_true",
        help="Replace the canonical session with a fresh one and exit",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    headless = args.list or args.reset

    try:
        config = resolve_config(args)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        sys.exit(2)

    log_file = configure_logging(config.log_level, to_stderr=headless)
    logger.info(
        "Starting DeskShell url=%s title=%s log=%s",
        config.base_url, config.session_title, log_file,
    )

    if args.list:
        sys.exit(asyncio.run(list_sessions(config)))
    if args.reset:
        sys.exit(asyncio.run(reset_canonical_session(config)))

    # TUI mode
    from deskshell.tui.app import DeskShellApp

    DeskShellApp(config).run()


if __name__ == "__main__":
    main()
