"""Copy text to the system clipboard with whatever tool the platform offers."""
import subprocess
import sys

CLIPBOARD_TIMEOUT = 3  # seconds

_COMMANDS = {
    "darwin": [["pbcopy"]],
    "linux": [["xclip", "-selection", "clipboard"], ["xsel", "--clipboard", "--input"]],
    "win32": [["clip"]],
}


def clipboard_commands(platform: str | None = None) -> list[list[str]]:
    platform = platform or sys.platform
    for prefix, commands in _COMMANDS.items():
        if platform.startswith(prefix):
            return commands
    return []


def copy_to_clipboard(text: str, platform: str | None = None) -> bool:
    """True if one of the platform's clipboard commands accepted the text."""
    for command in clipboard_commands(platform):
        try:
            result = subprocess.run(
                command, input=text, text=True, capture_output=True, timeout=CLIPBOARD_TIMEOUT
            )
        except (OSError, subprocess.TimeoutExpired):
            continue
        if result.returncode == 0:
            return True
    return False
