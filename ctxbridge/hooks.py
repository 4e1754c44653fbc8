#!/usr/bin/env python3
"""
ctxbridge.hooks - Git hooks that refresh the live session.

post-commit, post-checkout and post-merge each get one marked block that
starts `ctx auto-refresh --quiet` in the background, so git never waits on
it. The block is delimited by HOOK_MARKER on both ends:

  - install appends the block unless the marker is already present
  - uninstall removes exactly the text between (and including) the markers
    and leaves anything else in the hook alone

Existing hooks from other tools are preserved in both directions.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path

from ctxbridge.errors import HookTargetMissingError
from ctxbridge.gitprobe import get_git_root

HOOK_MARKER = "# --- ai-context-bridge auto-save ---"
HOOK_NAMES = ["post-commit", "post-checkout", "post-merge"]
SHEBANG = "#!/bin/sh"

_BLOCK_RE = re.compile(r"\n?" + re.escape(HOOK_MARKER) + r".*?" + re.escape(HOOK_MARKER) + r"\n?", re.DOTALL)


def hook_script() -> str:
    """The marked block appended to each hook."""
    return (
        f"\n{HOOK_MARKER}\n"
        "# Auto-save context on git events so it's ready when a rate limit hits.\n"
        "# Installed by: ctx init / ctx hooks install\n"
        "# Remove with: ctx hooks uninstall\n"
        "if command -v ctx >/dev/null 2>&1; then\n"
        "  ctx auto-refresh --quiet &\n"
        "fi\n"
        f"{HOOK_MARKER}\n"
    )


def _hooks_dir(cwd: Path | str | None) -> Path | None:
    root = get_git_root(cwd)
    return root / ".git" / "hooks" if root else None


# Hooks written by other tools need not be UTF-8; undecodable bytes round-trip unchanged
HOOK_ENCODING = "utf-8"
HOOK_ERRORS = "surrogateescape"


def _read(path: Path) -> str | None:
    """Hook content; "" when the hook does not exist, None when it cannot be read."""
    try:
        return path.read_text(encoding=HOOK_ENCODING, errors=HOOK_ERRORS)
    except FileNotFoundError:
        return ""
    except OSError:
        return None


def _write(path: Path, content: str) -> None:
    path.write_text(content, encoding=HOOK_ENCODING, errors=HOOK_ERRORS)


def install_hooks(cwd: Path | str | None = None) -> list[str]:
    """Add the refresh block to every hook that lacks it. Returns the hooks newly installed."""
    hooks_dir = _hooks_dir(cwd)
    if hooks_dir is None:
        raise HookTargetMissingError(str(cwd) if cwd else None)
    hooks_dir.mkdir(parents=True, exist_ok=True)

    installed = []
    script = hook_script()
    for name in HOOK_NAMES:
        path = hooks_dir / name
        existing = _read(path)
        if existing is None or HOOK_MARKER in existing:
            continue

        if existing.strip():
            content = existing.rstrip() + "\n" + script
        else:
            content = SHEBANG + "\n" + script
        _write(path, content)
        path.chmod(0o755)
        installed.append(name)

    return installed


def uninstall_hooks(cwd: Path | str | None = None) -> list[str]:
    """Strip the refresh block from every hook. Returns the hooks modified."""
    hooks_dir = _hooks_dir(cwd)
    if hooks_dir is None:
        return []

    removed = []
    for name in HOOK_NAMES:
        path = hooks_dir / name
        if not path.is_file():
            continue
        content = _read(path)
        if content is None or HOOK_MARKER not in content:
            continue

        remaining = _BLOCK_RE.sub("\n", content)
        if remaining.strip() in ("", SHEBANG):
            path.unlink()
        else:
            _write(path, remaining)
        removed.append(name)

    return removed


@dataclass
class HookStatus:
    installed: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.missing


def check_hooks(cwd: Path | str | None = None) -> HookStatus:
    hooks_dir = _hooks_dir(cwd)
    if hooks_dir is None:
        return HookStatus(missing=list(HOOK_NAMES))

    status = HookStatus()
    for name in HOOK_NAMES:
        if HOOK_MARKER in (_read(hooks_dir / name) or ""):
            status.installed.append(name)
        else:
            status.missing.append(name)
    return status
