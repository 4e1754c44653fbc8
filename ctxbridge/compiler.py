#!/usr/bin/env python3
"""
ctxbridge.compiler - Pack rules and a session into one tool's budget.

Document layout:

    # Project Context               header
    <rule 1> ... <rule n>           sorted by (priority, filename), budgeted
    ## Current Session              session section, never truncated

Budget policy:
  - Without a session the whole document never exceeds char_budget.
  - The session section is always emitted in full. When header plus session
    alone exceed the budget, CompiledOutput.budget_overflow is set and rule
    content gets no room; output is still produced.
  - Rules are added in order while they fit. The first rule that does not fit
    is cut to the remaining room with a truncation notice, or dropped when
    not even the notice fits; every later rule is dropped.

The resume prompt is separate: a paste-ready continuation instruction built
from the session alone, never budgeted.

Output depends only on the arguments. Nothing clock-derived goes into it.
"""

from dataclasses import dataclass

from ctxbridge.chars import TRUNCATION_NOTICE, compress_markdown, md_list, truncate_to_chars
from ctxbridge.rules import RuleDocument, sort_rules
from ctxbridge.session import DEFAULT_BRANCH, Session

TITLE = "# Project Context"
SESSION_HEADING = "## Current Session"
RESUME_DIRECTIVE = "Continue the following task."


@dataclass(frozen=True)
class CompiledOutput:
    content: str
    resume_prompt: str
    rules_included: int
    rules_truncated: int
    total_characters: int
    budget_overflow: bool = False


def render_header(tool_name: str = "") -> str:
    note = f"<!-- Generated by ctxbridge for {tool_name}. Edit .ctx/rules/ instead. -->" if tool_name \
        else "<!-- Generated by ctxbridge. Edit .ctx/rules/ instead. -->"
    return f"{TITLE}\n\n{note}\n\n"


def render_session(session: Session) -> str:
    """The session section of a compiled document."""
    parts = [
        f"{SESSION_HEADING}\n",
        f"**Task**: {session.task}",
        f"**Branch**: {session.branch or DEFAULT_BRANCH}",
    ]
    if session.head_hash:
        parts.append(f"**HEAD**: {session.head_hash}")
    if session.timestamp:
        parts.append(f"**Saved**: {session.timestamp}")
    if session.decisions:
        parts.append(f"\n### Decisions\n\n{md_list(session.decisions)}")
    if session.next_steps:
        parts.append(f"\n### Next Steps\n\n{md_list(session.next_steps, ordered=True)}")
    if session.files_changed:
        parts.append(f"\n### Files Changed\n\n{md_list(session.files_changed)}")
    if session.diff_summary:
        parts.append(f"\n**Diff**: {session.diff_summary}")
    if session.recent_commits:
        parts.append(f"\n### Recent Commits\n\n{md_list(session.recent_commits)}")
    return "\n".join(parts) + "\n"


def build_resume_prompt(session: Session, tool_name: str = "") -> str:
    """Self-contained continuation instruction for pasting into a chat."""
    target = f" in {tool_name}" if tool_name else ""
    lines = [
        f"{RESUME_DIRECTIVE} I was working on this in another AI coding tool "
        f"and am picking it up{target}. Read the context below before changing anything.",
        "",
        f"## Task\n{session.task}",
        "",
        f"## Branch\n{session.branch or DEFAULT_BRANCH}",
    ]
    if session.decisions:
        lines += ["", "## Decisions already made (do not revisit)", md_list(session.decisions)]
    if session.next_steps:
        lines += ["", "## Next steps", md_list(session.next_steps, ordered=True)]
    if session.files_changed:
        lines += ["", "## Files changed so far", md_list(session.files_changed)]
    if session.diff_summary:
        lines += ["", f"Diff: {session.diff_summary}"]
    if session.recent_commits:
        lines += ["", "## Recent commits", md_list(session.recent_commits)]
    lines += ["", "Start by reviewing the changed files, then continue with the next steps."]
    return "\n".join(lines) + "\n"


def compile_context(
    session: Session | None,
    rules: list[RuleDocument],
    char_budget: int,
    compress: bool = False,
    tool_name: str = "",
) -> CompiledOutput:
    """Build the budgeted document and resume prompt for one tool."""
    header = render_header(tool_name)
    session_block = render_session(session) if session is not None else ""

    fixed = len(header) + len(session_block)
    overflow = fixed > char_budget
    if overflow and session is None:
        # Not even the header fits: emit nothing rather than exceed the budget
        header = ""
        remaining = 0
    else:
        remaining = max(0, char_budget - fixed)

    sections: list[str] = []
    included = truncated = 0
    for rule in sort_rules(rules):
        text = compress_markdown(rule.content) if compress else rule.content.strip()
        if not text:
            continue
        section = f"{text}\n\n"
        if len(section) <= remaining:
            sections.append(section)
            remaining -= len(section)
            included += 1
            continue
        if remaining > len(TRUNCATION_NOTICE):
            sections.append(truncate_to_chars(section, remaining))
            included += 1
            truncated += 1
        break

    content = header + "".join(sections) + session_block
    resume_prompt = build_resume_prompt(session, tool_name) if session is not None else ""
    return CompiledOutput(
        content=content,
        resume_prompt=resume_prompt,
        rules_included=included,
        rules_truncated=truncated,
        total_characters=len(content),
        budget_overflow=overflow,
    )
