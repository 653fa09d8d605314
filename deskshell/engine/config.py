"""Configuration loaded from environment variables.

All settings have sensible defaults. Override via DESKSHELL_* env vars
or a YAML file (see yaml_config.py).
"""
from __future__ import annotations

import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


# Async callback for typed server events leaving the event stream.
# Signature: async def callback(event: ServerEvent) -> None
EventCallback = Callable[[Any], Awaitable[None]]

# Async callback for connection status changes.
# Signature: async def callback(status: ConnectionStatus) -> None
StatusCallback = Callable[[Any], Awaitable[None]]

DEFAULT_SERVER_URL = "http://127.0.0.1:4096"
CANONICAL_SESSION_TITLE = "desktop"

_TRUTHY = {"1", "true", "yes", "on"}


async def fire_event(
    callback: Callable[[Any], Awaitable[None]] | None,
    event: Any,
) -> None:
    """Fire an event callback if set, logging instead of propagating errors."""
    if callback is None:
        return
    try:
        await callback(event)
    except Exception:
        # Never let a consumer error break the stream loop
        logger.exception("Event callback failed for %r", event)


@dataclass
class ShellConfig:
    """Desktop shell configuration."""

    # Remote agent server
    server_url: str = DEFAULT_SERVER_URL
    # Set to 0 (or a negative value) to disable request timeouts.
    request_timeout_seconds: float = 0.0

    # Canonical conversation
    session_title: str = CANONICAL_SESSION_TITLE

    # Health wait during init()
    health_max_attempts: int = 30
    health_interval_seconds: float = 1.0

    # Event stream reconnect policy. Defaults give a fixed 3s retry
    # forever; backoff > 1 grows the delay up to the max.
    reconnect_delay_seconds: float = 3.0
    reconnect_backoff: float = 1.0
    reconnect_max_delay_seconds: float = 3.0
    # 0 (or a negative value) means retry forever.
    reconnect_max_attempts: int = 0

    # Send a client-generated messageID with each prompt and match the
    # echoed message.created against it instead of the one-shot flag.
    correlate_message_ids: bool = False

    # Local launcher
    terminal: str = "xfce4-terminal"

    # Logging
    log_level: str = "INFO"

    @property
    def base_url(self) -> str:
        return self.server_url.rstrip("/")

    @classmethod
    def from_env(cls) -> ShellConfig:
        """Load configuration from DESKSHELL_* environment variables."""
        shell_vars = {
            k: v for k, v in os.environ.items() if k.startswith("DESKSHELL_")
        }
        if shell_vars:
            logger.info(
                "ShellConfig.from_env: DESKSHELL_* env overrides: %s",
                ", ".join(f"{k}={v}" for k, v in sorted(shell_vars.items())),
            )
        else:
            logger.debug("ShellConfig.from_env: no DESKSHELL_* env vars set, using defaults")

        config = cls(
            server_url=(
                os.getenv("DESKSHELL_SERVER_URL")
                or os.getenv("OPENCODE_URL")
                or cls.server_url
            ),
            request_timeout_seconds=float(os.getenv(
                "DESKSHELL_REQUEST_TIMEOUT", str(cls.request_timeout_seconds)
            )),
            session_title=os.getenv(
                "DESKSHELL_SESSION_TITLE", cls.session_title
            ),
            health_max_attempts=int(os.getenv(
                "DESKSHELL_HEALTH_ATTEMPTS", str(cls.health_max_attempts)
            )),
            health_interval_seconds=float(os.getenv(
                "DESKSHELL_HEALTH_INTERVAL", str(cls.health_interval_seconds)
            )),
            reconnect_delay_seconds=float(os.getenv(
                "DESKSHELL_RECONNECT_DELAY", str(cls.reconnect_delay_seconds)
            )),
            reconnect_backoff=float(os.getenv(
                "DESKSHELL_RECONNECT_BACKOFF", str(cls.reconnect_backoff)
            )),
            reconnect_max_delay_seconds=float(os.getenv(
                "DESKSHELL_RECONNECT_MAX_DELAY",
                str(cls.reconnect_max_delay_seconds),
            )),
            reconnect_max_attempts=int(os.getenv(
                "DESKSHELL_RECONNECT_MAX_ATTEMPTS",
                str(cls.reconnect_max_attempts),
            )),
            correlate_message_ids=(
                os.getenv("DESKSHELL_CORRELATE_IDS", "").lower() in _TRUTHY
            ),
            terminal=os.getenv("DESKSHELL_TERMINAL", cls.terminal),
            log_level=os.getenv("DESKSHELL_LOG_LEVEL", cls.log_level),
        )
        logger.info(
            "ShellConfig.from_env: server=%s title=%s log_level=%s",
            config.server_url, config.session_title, config.log_level,
        )
        return config
