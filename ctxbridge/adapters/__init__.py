"""
ctxbridge tool adapters.

Adapters are discovered via:
1. Built-in adapters (claude, cursor, codex, ...)
2. Entry points: ctxbridge.adapters (pip installed third-party adapters)
"""
import sys
from pathlib import Path

from ctxbridge.adapters.base import ToolAdapter
from ctxbridge.adapters.builtin import (
    AiderAdapter,
    AmazonQAdapter,
    AntigravityAdapter,
    ClaudeAdapter,
    ClineAdapter,
    CodexAdapter,
    ContinueAdapter,
    CopilotAdapter,
    CursorAdapter,
    ZedAdapter,
)
from ctxbridge.adapters.windsurf import WindsurfAdapter
from ctxbridge.config import write_text_atomic

BUILTIN_ADAPTERS: list[type[ToolAdapter]] = [
    ClaudeAdapter,
    CursorAdapter,
    CodexAdapter,
    CopilotAdapter,
    WindsurfAdapter,
    ClineAdapter,
    AiderAdapter,
    ContinueAdapter,
    AmazonQAdapter,
    ZedAdapter,
    AntigravityAdapter,
]

ALIASES = {
    "claude-code": "claude",
    "github-copilot": "copilot",
    "amazon-q": "amazonq",
    "openai-codex": "codex",
}

# Global adapter registry, in registration order
_adapters: dict[str, ToolAdapter] = {}
_discovered: bool = False


def discover_adapters() -> None:
    """Register built-in adapters, then any installed through entry points."""
    global _discovered
    if _discovered:
        return

    for adapter_class in BUILTIN_ADAPTERS:
        register_adapter(adapter_class)

    try:
        from importlib.metadata import entry_points
        for ep in entry_points(group="ctxbridge.adapters"):
            try:
                register_adapter(ep.load())
            except Exception as e:
                print(f"[ctx] Skipping adapter {ep.name}: {e}", file=sys.stderr)
    except Exception:
        pass

    _discovered = True


def register_adapter(adapter_class: type[ToolAdapter]) -> ToolAdapter:
    """Register an adapter class; a later registration replaces one of the same name."""
    instance = adapter_class()
    _adapters[instance.name] = instance
    return instance


def reset_registry() -> None:
    """Forget all registrations (useful for testing)."""
    global _discovered
    _adapters.clear()
    _discovered = False


def get_adapter(name: str) -> ToolAdapter | None:
    """Look up an adapter by name or alias, case-insensitively."""
    discover_adapters()
    key = name.lower()
    return _adapters.get(ALIASES.get(key, key))


def get_all_adapters() -> list[ToolAdapter]:
    discover_adapters()
    return list(_adapters.values())


def get_adapter_names() -> list[str]:
    return [a.name for a in get_all_adapters()]


def get_tool_budgets() -> dict[str, int]:
    """Character budget per tool, for rule validation."""
    return {a.name: a.char_budget for a in get_all_adapters()}


def write_outputs(files: dict[Path, str]) -> int:
    """Write an adapter's path->content map. Returns the number of files written."""
    for path, content in files.items():
        write_text_atomic(Path(path), content)
    return len(files)


# Export public API
__all__ = [
    "ToolAdapter",
    "ALIASES",
    "BUILTIN_ADAPTERS",
    "discover_adapters",
    "register_adapter",
    "reset_registry",
    "get_adapter",
    "get_all_adapters",
    "get_adapter_names",
    "get_tool_budgets",
    "write_outputs",
]
