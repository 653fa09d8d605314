"""Local launches for ``!app`` and ``$command`` input.

Detached child processes only; nothing here waits on or tracks the
launched program. Window placement and focus belong to the desktop.
"""
from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class LaunchResult:
    success: bool
    target: str
    error: str | None = None


def app_aliases(terminal: str) -> dict[str, str]:
    return {
        "firefox": "firefox",
        "ff": "firefox",
        "chrome": "google-chrome",
        "chromium": "chromium",
        "browser": "google-chrome",
        "files": "pcmanfm",
        "filemanager": "pcmanfm",
        "fm": "pcmanfm",
        "editor": "mousepad",
        "edit": "mousepad",
        "text": "mousepad",
        "notepad": "mousepad",
        "terminal": terminal,
        "term": terminal,
        "code": "code",
        "vscode": "code",
    }


def terminal_command(terminal: str, command: str) -> list[str]:
    """Build argv that runs *command* in *terminal* and keeps a shell open."""
    if terminal == "xfce4-terminal":
        escaped = command.replace("'", "'\\''")
        return [terminal, "-e", f"bash -c '{escaped}; exec bash'"]
    if terminal in ("alacritty", "foot"):
        return [terminal, "-e", "bash", "-c", f"{command}; exec bash"]
    return [terminal, "-e", command]


class Launcher:
    """Starts applications and terminal commands as detached processes."""

    def __init__(self, terminal: str = "xfce4-terminal") -> None:
        self._terminal = terminal
        self._aliases = app_aliases(terminal)

    def resolve_app(self, name: str) -> str:
        return self._aliases.get(name.lower(), name)

    def launch_app(self, name: str) -> LaunchResult:
        if not name:
            return LaunchResult(success=False, target="", error="No application given")
        executable = self.resolve_app(name)
        logger.info("Launching app: %s", executable)
        return self._spawn([executable], executable)

    def launch_shell(self, command: str) -> LaunchResult:
        if not command:
            return LaunchResult(success=False, target="", error="No command given")
        argv = terminal_command(self._terminal, command)
        logger.info("Launching terminal: %s", " ".join(argv))
        return self._spawn(argv, command)

    def _spawn(self, argv: list[str], target: str) -> LaunchResult:
        try:
            subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            logger.warning("Launch failed for %s: %s", argv[0], exc)
            return LaunchResult(success=False, target=target, error=str(exc))
        return LaunchResult(success=True, target=target)
