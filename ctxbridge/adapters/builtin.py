"""
Built-in adapters for tools with simple layouts.

Budgets are the character limits each tool tolerates for injected
instructions. Windsurf, the one tool with tight per-file limits, lives in
windsurf.py.
"""
from pathlib import Path

from ctxbridge.adapters.base import (
    RuleDirAdapter,
    SingleFileAdapter,
    command_available,
    import_rule_dir,
)
from ctxbridge.chars import yaml_frontmatter


class ClaudeAdapter(SingleFileAdapter):
    name = "claude"
    display_name = "Claude Code"
    char_budget = 100_000
    config_paths = ("CLAUDE.md",)
    file_path = "CLAUDE.md"

    def detect(self):
        return command_available("claude")


class CursorAdapter(RuleDirAdapter):
    """Cursor project rules: .mdc files with frontmatter; legacy .cursorrules imported too."""

    name = "cursor"
    display_name = "Cursor"
    char_budget = 100_000
    config_paths = (".cursor/rules/", ".cursorrules")
    rules_dir = ".cursor/rules"
    extension = ".mdc"

    def frontmatter(self, title):
        return yaml_frontmatter({"description": title, "globs": "", "alwaysApply": True})

    def import_existing(self, project_root):
        imported = import_rule_dir(Path(project_root) / self.rules_dir, self.extension)
        legacy = Path(project_root) / ".cursorrules"
        if legacy.is_file():
            text = legacy.read_text(encoding="utf-8", errors="replace").strip()
            if text:
                imported = f"{imported}\n\n## cursorrules\n\n{text}" if imported else text
        return imported

    def detect(self):
        return command_available("cursor")


class CodexAdapter(SingleFileAdapter):
    name = "codex"
    display_name = "OpenAI Codex"
    char_budget = 32_768  # Codex reads at most 32 KiB of AGENTS.md
    config_paths = ("AGENTS.md",)
    file_path = "AGENTS.md"

    def detect(self):
        return command_available("codex")


class CopilotAdapter(SingleFileAdapter):
    name = "copilot"
    display_name = "GitHub Copilot"
    char_budget = 64_000
    config_paths = (".github/copilot-instructions.md",)
    file_path = ".github/copilot-instructions.md"

    def detect(self):
        return command_available("gh", "copilot", "--version")


class ClineAdapter(RuleDirAdapter):
    name = "cline"
    display_name = "Cline"
    char_budget = 200_000  # no hard limit
    config_paths = (".clinerules/",)
    rules_dir = ".clinerules"


class AiderAdapter(SingleFileAdapter):
    name = "aider"
    display_name = "Aider"
    char_budget = 100_000
    config_paths = ("CONVENTIONS.md",)
    file_path = "CONVENTIONS.md"

    def detect(self):
        return command_available("aider")


class ContinueAdapter(RuleDirAdapter):
    name = "continue"
    display_name = "Continue"
    char_budget = 100_000
    config_paths = (".continue/rules/",)
    rules_dir = ".continue/rules"

    def frontmatter(self, title):
        return yaml_frontmatter({"name": title, "globs": "**/*", "alwaysApply": True})


class AmazonQAdapter(RuleDirAdapter):
    name = "amazonq"
    display_name = "Amazon Q Developer"
    char_budget = 100_000
    config_paths = (".amazonq/rules/",)
    rules_dir = ".amazonq/rules"

    def detect(self):
        return command_available("q")


class ZedAdapter(SingleFileAdapter):
    name = "zed"
    display_name = "Zed"
    char_budget = 100_000
    config_paths = (".rules",)
    file_path = ".rules"

    def detect(self):
        return command_available("zed")


class AntigravityAdapter(RuleDirAdapter):
    name = "antigravity"
    display_name = "Antigravity (Google)"
    char_budget = 100_000
    config_paths = (".agent/rules/",)
    rules_dir = ".agent/rules"
