"""
ctxbridge.console - Terminal output for commands and background workers.

Normal output goes to stdout; warnings about failed work and errors go to
stderr. Verbosity is process-wide: git hooks run `ctx auto-refresh --quiet`,
the watcher's per-refresh lines only show with --verbose.
"""
import os
import sys

QUIET = "quiet"
NORMAL = "normal"
VERBOSE = "verbose"

_level = NORMAL

_COLORS = {
    "reset": "\x1b[0m",
    "bold": "\x1b[1m",
    "dim": "\x1b[2m",
    "red": "\x1b[31m",
    "green": "\x1b[32m",
    "yellow": "\x1b[33m",
    "cyan": "\x1b[36m",
    "gray": "\x1b[90m",
}


def set_level(level: str) -> None:
    global _level
    if level not in (QUIET, NORMAL, VERBOSE):
        raise ValueError(f"Unknown verbosity: {level}")
    _level = level


def get_level() -> str:
    return _level


def _supports_color(stream) -> bool:
    return "NO_COLOR" not in os.environ and hasattr(stream, "isatty") and stream.isatty()


def _c(color: str, text: str, stream=None) -> str:
    if not _supports_color(stream or sys.stdout):
        return text
    return f"{_COLORS[color]}{text}{_COLORS['reset']}"


def info(msg: str) -> None:
    if _level == QUIET:
        return
    print(msg)


def success(msg: str) -> None:
    if _level == QUIET:
        return
    print(f"{_c('green', '+')} {msg}")


def warn(msg: str) -> None:
    print(f"{_c('yellow', '!', sys.stderr)} {msg}", file=sys.stderr)


def error(msg: str) -> None:
    print(f"{_c('red', 'x', sys.stderr)} {msg}", file=sys.stderr)


def debug(msg: str) -> None:
    """Diagnostic line for background work, prefixed like the hook scripts' output."""
    if _level != VERBOSE:
        return
    print(_c("gray", f"[ctx] {msg}", sys.stderr), file=sys.stderr)


def dim(msg: str) -> None:
    if _level == QUIET:
        return
    print(_c("dim", msg))


def header(msg: str) -> None:
    if _level == QUIET:
        return
    print()
    print(_c("bold", _c("cyan", msg)))


def table(rows: list[tuple[str, str]]) -> None:
    """Print aligned key/value rows."""
    if _level == QUIET or not rows:
        return
    width = max(len(key) for key, _ in rows)
    for key, value in rows:
        print(f"  {_c('dim', key.ljust(width))}  {value}")
