"""Base classes for ctxbridge tool adapters."""
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

from ctxbridge.chars import strip_frontmatter
from ctxbridge.compiler import compile_context
from ctxbridge.rules import RuleDocument, sort_rules
from ctxbridge.session import Session

GENERATED_MARKER = "Generated by ctxbridge"
SESSION_FILE_STEM = "_session-resume"
DETECT_TIMEOUT = 3  # seconds


class ToolAdapter(ABC):
    """
    Translates rules + session into one AI tool's config files.

    Contract:
    - generate: returns {absolute path: content}; writing is the caller's job
    - import_existing: existing tool config as rule text, or None
    - detect: best-effort "is this tool installed", never raises

    Third-party adapters register through the `ctxbridge.adapters`
    entry-point group.
    """

    # Adapter metadata (override in subclass)
    name: str = "base"
    display_name: str = "Base"
    char_budget: int = 100_000
    compress: bool = False
    config_paths: tuple[str, ...] = ()

    @abstractmethod
    def generate(self, rules: list[RuleDocument], session: Session | None,
                 project_root: Path) -> dict[Path, str]:
        ...

    @abstractmethod
    def import_existing(self, project_root: Path) -> str | None:
        ...

    def detect(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} budget={self.char_budget}>"

    # Helpers shared by the built-in adapters

    def compile_session(self, session: Session, budget: int | None = None) -> str:
        return compile_context(
            session, [], budget or self.char_budget, compress=self.compress, tool_name=self.name
        ).content


def command_available(command: str, *args: str) -> bool:
    """True when `command` is on PATH and `command --version` (or args) exits 0."""
    if shutil.which(command) is None:
        return False
    try:
        result = subprocess.run(
            [command, *(args or ("--version",))],
            capture_output=True, text=True, timeout=DETECT_TIMEOUT,
        )
        return result.returncode == 0
    except (subprocess.TimeoutExpired, OSError):
        return False


def rule_filename(rule: RuleDocument, extension: str = ".md") -> str:
    return f"{rule.priority:02d}-{rule.name}{extension}"


class SingleFileAdapter(ToolAdapter):
    """Tools that read one instructions file: rules and session compiled together."""

    file_path: str = ""

    def generate(self, rules, session, project_root):
        compiled = compile_context(session, rules, self.char_budget,
                                   compress=self.compress, tool_name=self.name)
        return {Path(project_root) / self.file_path: compiled.content}

    def import_existing(self, project_root):
        path = Path(project_root) / self.file_path
        if not path.is_file():
            return None
        try:
            content = path.read_text(encoding="utf-8", errors="replace").strip()
        except OSError:
            return None
        # Our own output is not worth importing back
        if not content or GENERATED_MARKER in content:
            return None
        return content


class RuleDirAdapter(ToolAdapter):
    """Tools that load every file in a rules directory: one file per rule plus a session file."""

    rules_dir: str = ""
    extension: str = ".md"

    def frontmatter(self, title: str) -> str:
        """Prefix for each generated file; none by default."""
        return ""

    def _with_frontmatter(self, title: str, body: str) -> str:
        prefix = self.frontmatter(title)
        return f"{prefix}\n\n{body}" if prefix else body

    def generate(self, rules, session, project_root):
        out_dir = Path(project_root) / self.rules_dir
        output: dict[Path, str] = {}
        for rule in sort_rules(rules):
            output[out_dir / rule_filename(rule, self.extension)] = self._with_frontmatter(rule.name, rule.content)
        if session is not None:
            output[out_dir / f"{SESSION_FILE_STEM}{self.extension}"] = self._with_frontmatter(
                "Session Resume", self.compile_session(session)
            )
        return output

    def import_existing(self, project_root):
        return import_rule_dir(Path(project_root) / self.rules_dir, self.extension)


def import_rule_dir(directory: Path, extension: str = ".md") -> str | None:
    """Join the files of a tool's rules directory into one rule body."""
    if not directory.is_dir():
        return None
    parts = []
    for path in sorted(directory.glob(f"*{extension}")):
        if path.stem == SESSION_FILE_STEM:
            continue
        try:
            content = strip_frontmatter(path.read_text(encoding="utf-8", errors="replace")).strip()
        except OSError:
            continue
        if content and GENERATED_MARKER not in content:
            parts.append(f"## {path.stem}\n\n{content}")
    return "\n\n".join(parts) or None
