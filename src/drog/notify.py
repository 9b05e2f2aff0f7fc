"""Best-effort desktop notifications.

Uses notify-send on Linux desktops and osascript on macOS. A missing tool,
a headless session or a failing command is logged and otherwise ignored.
"""

import os
import shutil
import subprocess
import sys
from typing import List, Optional

import structlog

logger = structlog.get_logger()

NOTIFY_TIMEOUT_SECONDS = 5


def in_desktop_environment() -> Optional[str]:
    """Return a description of the desktop session, or None when headless."""
    if sys.platform in ["win32", "cygwin"]:
        return "windows"
    elif sys.platform == "darwin":
        return "mac"
    else:
        return os.environ.get("DESKTOP_SESSION") or os.environ.get("DISPLAY") or os.environ.get(
            "WAYLAND_DISPLAY"
        )


def _applescript_string(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


class DesktopNotifier:
    """Shows system notifications through the platform's command-line tool."""

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled

    def command(self, title: str, message: str) -> Optional[List[str]]:
        """Build the notification command for this platform, if one exists."""
        if sys.platform == "darwin":
            script = (
                f"display notification {_applescript_string(message)} "
                f"with title {_applescript_string(title)}"
            )
            return ["osascript", "-e", script]

        notify_send = shutil.which("notify-send")
        if notify_send:
            return [notify_send, title, message]
        return None

    def notify(self, title: str, message: str) -> bool:
        """Display a notification.

        Returns:
            True if the notification command ran successfully.
        """
        if not self.enabled or not in_desktop_environment():
            return False

        cmd = self.command(title, message)
        if cmd is None:
            logger.debug("notifier_unavailable", platform=sys.platform)
            return False

        try:
            subprocess.run(cmd, check=True, capture_output=True, timeout=NOTIFY_TIMEOUT_SECONDS)
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning("notification_failed", error=str(e))
            return False
        return True
