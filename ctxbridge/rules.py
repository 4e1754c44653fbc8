#!/usr/bin/env python3
"""
ctxbridge.rules - Ordered rule documents in .ctx/rules/.

Filenames carry the ordering: "01-project.md" has priority 1 and display
name "project". Files without a numeric prefix sort last (priority 99).
Lower priority numbers win when a tool's budget runs out.
"""

import re
from dataclasses import dataclass
from pathlib import Path

from ctxbridge.chars import format_chars
from ctxbridge.config import RULES_DIR

RULE_EXTENSION = ".md"
DEFAULT_PRIORITY = 99

_PRIORITY_RE = re.compile(r"^(\d+)-")


@dataclass(frozen=True)
class RuleDocument:
    """One rule file. Never mutated; add/delete go through RuleStore."""
    name: str
    source_path: Path
    content: str
    priority: int

    @property
    def char_count(self) -> int:
        return len(self.content)

    @property
    def filename(self) -> str:
        return f"{self.priority:02d}-{self.name}{RULE_EXTENSION}"


@dataclass
class BudgetCheck:
    """How a rule set measures up against one tool's character budget."""
    tool: str
    budget: int
    used: int

    @property
    def remaining(self) -> int:
        return self.budget - self.used

    @property
    def overflow(self) -> bool:
        return self.used > self.budget

    @property
    def display(self) -> str:
        pct = round(self.used / self.budget * 100) if self.budget else 0
        flag = " OVERFLOW" if self.overflow else ""
        return f"{format_chars(self.used)} / {format_chars(self.budget)} ({pct}%){flag}"


def sort_rules(rules: list[RuleDocument]) -> list[RuleDocument]:
    """Ascending priority, ties broken by filename."""
    return sorted(rules, key=lambda r: (r.priority, r.source_path.name))


def parse_rule_filename(filename: str) -> tuple[int, str]:
    """Split "03-code-style.md" into (3, "code-style")."""
    stem = filename[:-len(RULE_EXTENSION)] if filename.endswith(RULE_EXTENSION) else filename
    match = _PRIORITY_RE.match(stem)
    if not match:
        return DEFAULT_PRIORITY, stem
    return int(match.group(1)), stem[match.end():]


def safe_rule_name(name: str) -> str:
    """Lowercase name restricted to [a-z0-9_-]."""
    return re.sub(r"[^a-zA-Z0-9_-]", "-", name.strip()).lower() or "rule"


class RuleStore:
    """Read, add and delete the rule documents of one project."""

    def __init__(self, ctx_dir: Path):
        self.rules_dir = Path(ctx_dir) / RULES_DIR

    def read(self) -> list[RuleDocument]:
        """All rule documents, sorted by (priority, filename). Missing dir -> []."""
        if not self.rules_dir.is_dir():
            return []
        rules = []
        for path in sorted(self.rules_dir.iterdir()):
            if not path.is_file() or path.suffix != RULE_EXTENSION:
                continue
            try:
                content = path.read_text(encoding="utf-8", errors="replace")
            except OSError:
                continue
            priority, name = parse_rule_filename(path.name)
            rules.append(RuleDocument(name=name, source_path=path, content=content, priority=priority))
        return sort_rules(rules)

    def add(self, name: str, content: str, priority: int | None = None) -> Path:
        """Write a new rule file and return its path.

        Without an explicit priority the rule goes after every existing one.
        """
        self.rules_dir.mkdir(parents=True, exist_ok=True)
        if priority is None:
            existing = self.read()
            priority = max(r.priority for r in existing) + 1 if existing else 1
        path = self.rules_dir / f"{priority:02d}-{safe_rule_name(name)}{RULE_EXTENSION}"
        path.write_text(content, encoding="utf-8")
        return path

    def exists(self, name: str) -> bool:
        return self.find(name) is not None

    def find(self, name_or_filename: str) -> RuleDocument | None:
        for rule in self.read():
            if rule.name == name_or_filename or rule.source_path.name == name_or_filename:
                return rule
        return None

    def delete(self, name_or_filename: str) -> bool:
        """Delete a rule by display name or filename. False if no such rule."""
        rule = self.find(name_or_filename)
        if rule is None:
            return False
        rule.source_path.unlink()
        return True

    @staticmethod
    def validate_budget(rules: list[RuleDocument], budgets: dict[str, int]) -> list[BudgetCheck]:
        """Compare the raw size of all rules against each tool's budget."""
        total = sum(r.char_count for r in rules)
        return [BudgetCheck(tool=tool, budget=budget, used=total) for tool, budget in budgets.items()]
