"""Minimal markdown-to-HTML rendering for chat answers.

Supports what the chat prompt asks the model to produce: pipe tables,
``#``-``###`` headings, ``**bold**``, ``-``/``*`` bullet lists, and
paragraphs. Angle brackets are escaped before any markup is added.
"""

from __future__ import annotations

import re

_TABLE_RE = re.compile(
    r"^\|(.+)\|\r?\n\|( *:?-+:? *\|)+(\r?\n((\|.*\|)\r?\n?)*)",
    re.MULTILINE,
)
_HEADING_RES = (
    (re.compile(r"^### (.*)$", re.MULTILINE), r"<h3>\1</h3>"),
    (re.compile(r"^## (.*)$", re.MULTILINE), r"<h2>\1</h2>"),
    (re.compile(r"^# (.*)$", re.MULTILINE), r"<h1>\1</h1>"),
)
_BOLD_RE = re.compile(r"\*\*(.*?)\*\*")
_BULLET_RE = re.compile(r"^[ \t]*[-*] (.*)$", re.MULTILINE)
_LIST_RUN_RE = re.compile(r"(?:<li>.*?</li>\n?)+")
_BLOCK_SPLIT_RE = re.compile(r"\n{2,}")


def _split_cells(row: str) -> list[str]:
    return [cell.strip() for cell in row.strip()[1:-1].split("|")]


def _render_table(match: re.Match[str]) -> str:
    rows = match.group(0).strip().splitlines()
    header_cells = _split_cells(rows[0])
    parts = ["<table><thead><tr>"]
    parts.extend(f"<th>{cell}</th>" for cell in header_cells)
    parts.append("</tr></thead><tbody>")
    for row in rows[2:]:
        if not row.strip():
            continue
        parts.append("<tr>")
        parts.extend(f"<td>{cell}</td>" for cell in _split_cells(row))
        parts.append("</tr>")
    parts.append("</tbody></table>")
    # Keep the table a separate block for paragraph splitting.
    return "".join(parts) + "\n\n"


def _wrap_list(match: re.Match[str]) -> str:
    items = match.group(0).replace("\n", "")
    return f"<ul>{items}</ul>\n"


def _render_block(block: str) -> str:
    stripped = block.strip()
    if not stripped:
        return ""
    if stripped.startswith("<"):
        return stripped
    return "<p>" + stripped.replace("\n", "<br />") + "</p>"


def render_markdown(markdown: str) -> str:
    """Render chat markdown to an HTML fragment."""
    if not markdown:
        return ""

    html = markdown.replace("\r\n", "\n").replace("<", "&lt;").replace(">", "&gt;")
    html = _TABLE_RE.sub(_render_table, html)
    for pattern, replacement in _HEADING_RES:
        html = pattern.sub(replacement, html)
    html = _BOLD_RE.sub(r"<strong>\1</strong>", html)
    html = _BULLET_RE.sub(r"<li>\1</li>", html)
    html = _LIST_RUN_RE.sub(_wrap_list, html)

    return "".join(_render_block(block) for block in _BLOCK_SPLIT_RE.split(html))
