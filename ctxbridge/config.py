#!/usr/bin/env python3
"""
ctxbridge.config - Data root discovery, project config and file I/O helpers.

Layout of the data root (.ctx/ at the project root):

    config.json                      project configuration
    rules/<NN>-<name>.md             ordered rule documents
    sessions/<branch>/<id>.json      immutable session snapshots
    sessions/live.json               the single live session
    resume-prompts/<tool>.md         pre-rendered resume prompts
    resume-prompts/README.md         index of the above
    watcher.pid                      watcher marker
"""

import json
import os
import tempfile
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path

from ctxbridge.errors import NotInitializedError

# ============================================================================
# CONSTANTS
# ============================================================================

CTX_DIR = ".ctx"
CONFIG_FILE = "config.json"
RULES_DIR = "rules"
SESSIONS_DIR = "sessions"
RESUME_DIR = "resume-prompts"
LIVE_FILE = "live.json"
PID_FILE = "watcher.pid"

CONFIG_VERSION = "0.2.0"
DEFAULT_TOOLS = [
    "claude", "cursor", "codex", "copilot", "windsurf", "cline",
    "aider", "continue", "amazonq", "zed", "antigravity",
]
DEFAULT_WATCH_INTERVAL = 30  # seconds


# ============================================================================
# CONFIG
# ============================================================================

@dataclass
class SessionDefaults:
    include_git_diff: bool = True
    include_files: bool = True


@dataclass
class CtxConfig:
    """Project configuration stored in .ctx/config.json."""
    version: str = CONFIG_VERSION
    default_tool: str | None = None
    enabled_tools: list[str] = field(default_factory=lambda: list(DEFAULT_TOOLS))
    auto_save: bool = True
    auto_detect: bool = True  # probe diff, files, commits and HEAD on every snapshot
    watch_interval: int = DEFAULT_WATCH_INTERVAL
    session_defaults: SessionDefaults = field(default_factory=SessionDefaults)
    extra: dict = field(default_factory=dict)  # unknown keys, written back untouched

    def to_dict(self) -> dict:
        data = asdict(self)
        extra = data.pop("extra")
        data.update(extra)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CtxConfig":
        known = {f.name for f in fields(cls)} - {"extra"}
        config = cls(extra={k: v for k, v in data.items() if k not in known})
        for key in known:
            if key not in data:
                continue
            if key == "session_defaults":
                raw = data[key] if isinstance(data[key], dict) else {}
                config.session_defaults = SessionDefaults(**{
                    k: bool(v) for k, v in raw.items()
                    if k in SessionDefaults.__dataclass_fields__
                })
            else:
                setattr(config, key, data[key])
        return config


# ============================================================================
# DATA ROOT DISCOVERY
# ============================================================================

def find_ctx_root(start: Path | str | None = None) -> Path | None:
    """Walk up from start (default: cwd) to the directory holding .ctx/."""
    current = Path(start or Path.cwd()).resolve()
    for candidate in (current, *current.parents):
        if (candidate / CTX_DIR).is_dir():
            return candidate
    return None


def get_project_root(start: Path | str | None = None) -> Path:
    """Project root (parent of .ctx/); raises NotInitializedError when absent."""
    root = find_ctx_root(start)
    if root is None:
        raise NotInitializedError(str(start or Path.cwd()))
    return root


def get_ctx_dir(start: Path | str | None = None) -> Path:
    """The .ctx/ directory; raises NotInitializedError when absent."""
    return get_project_root(start) / CTX_DIR


def init_ctx_dir(project_dir: Path | str) -> Path:
    """Create the .ctx/ layout. Existing config and .gitignore are kept."""
    ctx_dir = Path(project_dir) / CTX_DIR
    (ctx_dir / RULES_DIR).mkdir(parents=True, exist_ok=True)
    (ctx_dir / SESSIONS_DIR).mkdir(parents=True, exist_ok=True)

    config_path = ctx_dir / CONFIG_FILE
    if not config_path.exists():
        write_config(ctx_dir, CtxConfig())

    gitignore = ctx_dir / ".gitignore"
    if not gitignore.exists():
        gitignore.write_text(f"{SESSIONS_DIR}/\n{PID_FILE}\n", encoding="utf-8")

    return ctx_dir


def read_config(ctx_dir: Path) -> CtxConfig:
    """Read config.json merged over defaults. A missing or corrupt file yields defaults."""
    data = load_json(Path(ctx_dir) / CONFIG_FILE)
    if not isinstance(data, dict):
        return CtxConfig()
    return CtxConfig.from_dict(data)


def write_config(ctx_dir: Path, config: CtxConfig) -> None:
    write_text_atomic(Path(ctx_dir) / CONFIG_FILE, json.dumps(config.to_dict(), indent=2) + "\n")


# ============================================================================
# FILE I/O
# ============================================================================

def load_json(path: Path, default=None):
    """Load a JSON file, returning default when it is missing or unreadable."""
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8", errors="replace"))
    except (OSError, json.JSONDecodeError):
        return default


def write_text_atomic(path: Path, content: str) -> None:
    """Replace path's content in one step, so readers never see a partial file.

    Concurrent writers (watcher timers, git hooks) end up last-writer-wins.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w", delete=False, dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp", encoding="utf-8"
    ) as tmp:
        tmp.write(content)
        tmp.flush()
        os.fsync(tmp.fileno())
        tmp_name = tmp.name
    try:
        os.replace(tmp_name, path)
    except OSError:
        Path(tmp_name).unlink(missing_ok=True)
        raise
