"""Helpers for pulling structured payloads out of chat model replies."""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.syntax import Syntax

from crawlforge.errors import ResponseParsingError

if TYPE_CHECKING:
    from langchain_core.messages import BaseMessage

CODE_LINES_TO_SHOW = 12

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)
_BARE_OBJECT = re.compile(r"\{[\s\S]*\}")
_FENCED_CODE = re.compile(r"```\s*(?:python|py)?\s*\n([\s\S]*?)\n```", re.IGNORECASE)
_WRAPPING_FENCE = re.compile(r"^```\s*\n?([\s\S]*?)\n?```\s*$", re.IGNORECASE)


def message_text(message: BaseMessage) -> str:
    """Flatten a chat message into plain text, whether its content is a string or a list of blocks."""
    content = message.content
    if isinstance(content, str):
        return content

    parts: list[str] = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(str(block.get("text", "")))
    return "".join(parts)


def extract_json_block(text: str) -> dict[str, Any]:
    """Extract the JSON object from a model reply.

    A fenced ```json block wins; otherwise the span from the first ``{`` to the
    last ``}`` is parsed.

    Raises:
        ResponseParsingError: If no JSON object can be found or decoded.
    """
    match = _FENCED_JSON.search(text)
    if match:
        payload = match.group(1)
    else:
        bare = _BARE_OBJECT.search(text)
        if bare is None:
            raise ResponseParsingError("No JSON found in model response")
        payload = bare.group(0)

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ResponseParsingError(f"Model response contains malformed JSON: {e}") from e

    if not isinstance(data, dict):
        raise ResponseParsingError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def strip_markdown_code_fences(text: str) -> str:
    # Try to extract the first fenced code block; prefer ```python
    m = _FENCED_CODE.search(text)
    if m:
        return m.group(1).strip()
    # Fallback: remove any wrapping triple backticks without language
    m2 = _WRAPPING_FENCE.match(text.strip())
    if m2:
        return m2.group(1).strip()
    return text.strip()


def extract_code_block(text: str) -> str:
    """Return the code a model replied with, or raise if the reply is empty."""
    code = strip_markdown_code_fences(text)
    if not code:
        raise ResponseParsingError("Model response contains no code")
    return code


def code_preview(code: str, title: str, n: int = CODE_LINES_TO_SHOW) -> Panel:
    """Render the tail of a module as a syntax-highlighted panel."""
    lines = code.rstrip("\n").split("\n")
    tail = "\n".join(lines[-n:]) if code.strip() else "# (empty)"
    syntax = Syntax(tail, "python", theme="monokai", line_numbers=False, word_wrap=True, background_color="default")
    return Panel(
        syntax,
        title=f"{title} ({len(code)} chars, {len(lines)} lines) [dim]last {min(n, len(lines))} lines[/dim]",
        border_style="blue",
    )
