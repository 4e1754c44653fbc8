#!/usr/bin/env python3
"""
ctxbridge.live - The live session and the refresh pipeline.

The live session (sessions/live.json) is the one session that is rewritten
in place. Every refresh re-probes git and keeps the task, decisions and
next steps from the previous live session unless the caller passes new
ones, so the context is already saved when a rate limit hits.

A refresh then pre-renders a resume prompt per enabled tool into
resume-prompts/<tool>.md, plus a README index. Triggers:
  - git hooks (`ctx auto-refresh --quiet`, detached)
  - the watcher's interval and file-change timers
  - `ctx init` / `ctx save`

Refreshes inside one process are serialized by the pipeline's lock (the
watcher's two timers share a pipeline). Across processes, a hook and a
watcher may race; whole-file atomic writes make that last-writer-wins.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from ctxbridge import console
from ctxbridge.adapters import get_adapter
from ctxbridge.compiler import compile_context
from ctxbridge.config import CTX_DIR, LIVE_FILE, RESUME_DIR, SESSIONS_DIR, read_config, write_text_atomic
from ctxbridge.errors import AdapterFailure
from ctxbridge.gitprobe import GitProbe
from ctxbridge.rules import RuleStore
from ctxbridge.session import DEFAULT_BRANCH, Session, capture_git_state, read_session_file, utc_timestamp

LIVE_SESSION_ID = "live"
RESUME_INDEX = "README.md"


class LiveSessionStore:
    """The single, continuously overwritten session of a project."""

    def __init__(self, ctx_dir: Path, probe: GitProbe | None = None):
        self.ctx_dir = Path(ctx_dir)
        self.path = self.ctx_dir / SESSIONS_DIR / LIVE_FILE
        self.probe = probe or GitProbe()

    def read(self) -> Session | None:
        if not self.path.exists():
            return None
        return read_session_file(self.path)

    def update(
        self,
        task: str | None = None,
        decisions: list[str] | None = None,
        next_steps: list[str] | None = None,
        tool: str | None = None,
        cwd: Path | str | None = None,
    ) -> Session:
        """Merge fresh git state with the sticky fields of the previous live session.

        Explicit arguments win, then the previous live values, then defaults.
        """
        previous = self.read()
        git = capture_git_state(self.probe, self.ctx_dir, cwd)

        if not task:
            task = previous.task if previous and previous.task else f"Working on {git.branch or DEFAULT_BRANCH}"
        if decisions is None:
            decisions = previous.decisions if previous else []
        if next_steps is None:
            next_steps = previous.next_steps if previous else []
        if tool is None and previous:
            tool = previous.tool

        live = Session(
            id=LIVE_SESSION_ID,
            branch=git.branch,
            timestamp=utc_timestamp(),
            tool=tool,
            task=task,
            decisions=list(decisions),
            next_steps=list(next_steps),
            files_changed=git.changed_files,
            diff_summary=git.diff_summary,
            recent_commits=git.recent_commits,
            head_hash=git.head_hash,
        )
        write_text_atomic(self.path, live.to_json())
        return live


@dataclass
class RefreshResult:
    session: Session
    resume_count: int
    failures: list[AdapterFailure] = field(default_factory=list)


class RefreshPipeline:
    """Re-probe git, rewrite the live session, re-render every resume prompt."""

    def __init__(self, project_root: Path, probe: GitProbe | None = None):
        self.project_root = Path(project_root)
        self.ctx_dir = self.project_root / CTX_DIR
        self.resume_dir = self.ctx_dir / RESUME_DIR
        self.live = LiveSessionStore(self.ctx_dir, probe)
        self.rules = RuleStore(self.ctx_dir)
        self._lock = threading.Lock()

    def refresh(
        self,
        task: str | None = None,
        decisions: list[str] | None = None,
        next_steps: list[str] | None = None,
        cwd: Path | str | None = None,
    ) -> RefreshResult:
        with self._lock:
            session = self.live.update(
                task=task, decisions=decisions, next_steps=next_steps,
                cwd=cwd or self.project_root,
            )
            count, failures = self.pre_generate_resumes(session)
        return RefreshResult(session=session, resume_count=count, failures=failures)

    def pre_generate_resumes(self, live: Session | None = None) -> tuple[int, list[AdapterFailure]]:
        """Write resume-prompts/<tool>.md for every enabled tool, then the index.

        A tool that fails is recorded and skipped; the others still refresh.
        """
        live = live or self.live.read()
        if live is None:
            return 0, []

        config = read_config(self.ctx_dir)
        rules = self.rules.read()
        generated_at = datetime.now(timezone.utc).isoformat(timespec="seconds")

        count = 0
        failures: list[AdapterFailure] = []
        written: list[tuple[str, str]] = []
        for tool_name in config.enabled_tools:
            adapter = get_adapter(tool_name)
            if adapter is None:
                console.debug(f"Skipping unknown tool in config: {tool_name}")
                continue
            try:
                compiled = compile_context(live, rules, adapter.char_budget,
                                           compress=adapter.compress, tool_name=adapter.name)
                body = (
                    f"<!-- READY-TO-PASTE resume prompt for {adapter.display_name} -->\n"
                    f"<!-- Generated: {generated_at} | Branch: {live.branch or DEFAULT_BRANCH} -->\n\n"
                    f"{compiled.resume_prompt}"
                )
                write_text_atomic(self.resume_dir / f"{adapter.name}.md", body)
            except Exception as e:
                failures.append(AdapterFailure(adapter.name, e))
                console.debug(f"Resume prompt for {adapter.name} failed: {e}")
                continue
            written.append((adapter.name, adapter.display_name))
            count += 1

        write_text_atomic(self.resume_dir / RESUME_INDEX, render_resume_index(live, written, generated_at))
        return count, failures


def render_resume_index(live: Session, tools: list[tuple[str, str]], generated_at: str) -> str:
    lines = [
        "# Resume Prompts (auto-generated)",
        "",
        f"**Last updated**: {generated_at}",
        f"**Branch**: {live.branch or DEFAULT_BRANCH}",
        f"**Task**: {live.task}",
        "",
        "## Quick Switch",
        "Open the file for your target tool and paste its contents:",
        "",
    ]
    for name, display in tools:
        lines.append(f"- **{display}**: `{CTX_DIR}/{RESUME_DIR}/{name}.md`")
    if not tools:
        lines.append("- (no tools refreshed)")
    lines += ["", "> These files are rewritten on every commit, checkout and merge, and periodically by `ctx watch`."]
    return "\n".join(lines) + "\n"
