"""
ctxbridge - One project context for every AI coding tool

Keeps project rules and the current work session in sync across Claude Code,
Cursor, Codex, Copilot, Windsurf and other assistants, each within its own
character budget. When one tool hits a rate limit, the context is already
saved and a ready-to-paste resume prompt is waiting for the next one.

Features:
- Budget-aware compilation of rules + session per tool
- Live session refreshed by git hooks and an optional watcher
- Pre-rendered resume prompts in .ctx/resume-prompts/
- Pluggable tool adapters (entry point group: ctxbridge.adapters)

Quick start:
    pip install ctxbridge
    ctx init
    ctx save "what you're working on"
    ctx switch cursor
"""

__version__ = "0.2.0"
__all__ = [
    "__version__",
    "compile_context",
    "CompiledOutput",
    "RefreshPipeline",
    "LiveSessionStore",
    "RuleStore",
    "SessionStore",
    "Watcher",
    "install_hooks",
    "uninstall_hooks",
]

from ctxbridge.compiler import CompiledOutput, compile_context  # noqa: E402
from ctxbridge.hooks import install_hooks, uninstall_hooks  # noqa: E402
from ctxbridge.live import LiveSessionStore, RefreshPipeline  # noqa: E402
from ctxbridge.rules import RuleStore  # noqa: E402
from ctxbridge.session import SessionStore  # noqa: E402
from ctxbridge.watcher import Watcher  # noqa: E402
