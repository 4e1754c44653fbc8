#!/usr/bin/env python3
"""
ctxbridge.chars - Character budgets and markdown shaping.

Tool limits are expressed in characters, not tokens, so everything here
counts `len(text)`.

compress_markdown() is the lossy shrink used for tools with tight limits
(Windsurf). It is a pure function with two guarantees the compiler relies on:
  - idempotent: compress_markdown(compress_markdown(x)) == compress_markdown(x)
  - never longer than its input
"""

import re

TRUNCATION_NOTICE = "\n\n[... truncated to fit tool limits ...]\n"
CODE_ELISION = "... (truncated)"

# Fenced blocks longer than this many lines (fences included) get shortened
MAX_CODE_BLOCK_LINES = 10
KEPT_CODE_BLOCK_LINES = 8

_HEADING_RE = re.compile(r"^#{1,3}[ \t]+(\S.*?)[ \t]*$")
_BULLET_RE = re.compile(r"^([ \t]*)[-*][ \t]+")
_FENCE_RE = re.compile(r"^[ \t]*```")


def char_count(text: str) -> int:
    """Count characters in a string."""
    return len(text)


def truncate_to_chars(text: str, max_chars: int) -> str:
    """Truncate text to fit within max_chars, ending with a visible notice.

    The result is never longer than max_chars. When the budget cannot hold
    the notice itself, a bare prefix is returned.
    """
    if len(text) <= max_chars:
        return text
    if max_chars <= len(TRUNCATION_NOTICE):
        return text[:max(0, max_chars)]
    return text[:max_chars - len(TRUNCATION_NOTICE)] + TRUNCATION_NOTICE


def format_chars(chars: int) -> str:
    """Format a character count for display."""
    if chars < 1024:
        return f"{chars} chars"
    if chars < 1024 * 1024:
        return f"{chars / 1024:.1f}K chars"
    return f"{chars / (1024 * 1024):.1f}M chars"


# ============================================================================
# COMPRESSION
# ============================================================================

def _shrink_code_block(block: list[str]) -> list[str]:
    """Keep the head of a long fenced block, only when that actually saves space."""
    if len(block) <= MAX_CODE_BLOCK_LINES:
        return block
    kept = block[:KEPT_CODE_BLOCK_LINES]
    elided = block[KEPT_CODE_BLOCK_LINES:-1]
    # +1 per line for the newline joining it
    if sum(len(line) + 1 for line in elided) <= len(CODE_ELISION) + 1:
        return block
    return kept + [CODE_ELISION, block[-1]]


def _compress_line(line: str) -> str:
    line = line.rstrip()
    heading = _HEADING_RE.match(line)
    if heading:
        # "# Title" -> "*Title*": two marker chars either way, fewer for ##/###
        return f"*{heading.group(1)}*"
    return _BULLET_RE.sub(lambda m: f"{m.group(1)}• ", line, count=1)


def compress_markdown(text: str) -> str:
    """Shrink markdown for tools with tight character limits.

    - runs of blank lines collapse to one
    - #, ## and ### headings become inline emphasis
    - "-" and "*" bullets become "•"
    - trailing whitespace is dropped
    - fenced code blocks over 10 lines keep their first 8 lines
      plus an elision marker and the closing fence

    Text inside fenced code blocks is otherwise left untouched.
    """
    lines = text.split("\n")
    out: list[str] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if _FENCE_RE.match(line):
            end = i + 1
            while end < len(lines) and not _FENCE_RE.match(lines[end]):
                end += 1
            if end >= len(lines):
                # Unterminated fence: keep the remainder verbatim
                out.extend(lines[i:])
                break
            out.extend(_shrink_code_block(lines[i:end + 1]))
            i = end + 1
            continue

        line = _compress_line(line)
        if not line and out and not out[-1]:
            i += 1
            continue
        out.append(line)
        i += 1

    # Only whole blank lines are trimmed; stripping indentation off the first
    # line could turn it into a heading on the next pass.
    while out and not out[0].strip():
        out.pop(0)
    while out and not out[-1].strip():
        out.pop()
    return "\n".join(out)


# ============================================================================
# MARKDOWN BUILDERS
# ============================================================================

def md_section(heading: str, body: str, level: int = 2) -> str:
    """Build a markdown section with a heading and body."""
    return f"{'#' * level} {heading}\n\n{body.strip()}\n"


def md_list(items: list[str], ordered: bool = False) -> str:
    """Build a markdown list from items."""
    if ordered:
        return "\n".join(f"{n}. {item}" for n, item in enumerate(items, 1))
    return "\n".join(f"- {item}" for item in items)


def yaml_frontmatter(fields: dict) -> str:
    """Build a YAML frontmatter block from flat str/bool/list values."""
    lines = ["---"]
    for key, value in fields.items():
        if isinstance(value, (list, tuple)):
            lines.append(f"{key}:")
            lines.extend(f"  - {v}" for v in value)
        elif isinstance(value, bool):
            lines.append(f"{key}: {'true' if value else 'false'}")
        else:
            lines.append(f"{key}: {value}")
    lines.append("---")
    return "\n".join(lines)


def strip_frontmatter(text: str) -> str:
    """Drop a leading YAML frontmatter block, if any."""
    return re.sub(r"\A---\n.*?\n---\n*", "", text, count=1, flags=re.DOTALL)
