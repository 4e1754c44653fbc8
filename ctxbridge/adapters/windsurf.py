"""
Windsurf adapter - the tightest budget of the built-in tools.

Windsurf caps each rules file at 6,000 characters and all rules at 12,000,
so every file is compressed and the session file is written first: it gets
its share before any rule does.
"""
from pathlib import Path

from ctxbridge.adapters.base import SESSION_FILE_STEM, RuleDirAdapter, command_available, rule_filename
from ctxbridge.compiler import compile_context
from ctxbridge.rules import sort_rules

MAX_PER_FILE = 6_000
MAX_TOTAL = 12_000


class WindsurfAdapter(RuleDirAdapter):
    name = "windsurf"
    display_name = "Windsurf"
    char_budget = MAX_TOTAL
    compress = True
    config_paths = (".windsurf/rules/",)
    rules_dir = ".windsurf/rules"

    def generate(self, rules, session, project_root):
        out_dir = Path(project_root) / self.rules_dir
        output: dict[Path, str] = {}
        used = 0

        if session is not None:
            content = self.compile_session(session, MAX_PER_FILE)
            output[out_dir / f"{SESSION_FILE_STEM}.md"] = content
            used += len(content)

        for rule in sort_rules(rules):
            remaining = MAX_TOTAL - used
            if remaining <= 0:
                break
            compiled = compile_context(None, [rule], min(MAX_PER_FILE, remaining),
                                       compress=True, tool_name=self.name)
            if compiled.rules_included == 0:
                break
            output[out_dir / rule_filename(rule)] = compiled.content
            used += compiled.total_characters

        return output

    def detect(self):
        return command_available("windsurf")
