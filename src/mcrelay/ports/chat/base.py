"""
Chat capability the orchestrator depends on.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ChatSink(Protocol):
    """
    Minimal outbound chat interface.

    Any platform client can stand in for it:
    - send_text raises on failure; the orchestrator logs and continues
    - set_status is best effort (presence/activity line)
    """

    async def send_text(self, channel_id: int, text: str) -> None: ...

    async def set_status(self, text: str) -> None: ...


def summarize(text: str, max_chars: int = 2000, max_lines: int = 64) -> str:
    """
    Fit text for chat display.

    - Normalize newlines
    - Collapse multiple blank lines
    - Limit lines and characters
    """
    if not text:
        return ""

    t = text.replace("\r\n", "\n").replace("\r", "\n").replace("\t", "  ")
    lines = [ln.rstrip() for ln in t.split("\n")]

    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()

    kept = []
    empty_count = 0
    for ln in lines:
        if not ln.strip():
            empty_count += 1
            if empty_count <= 1:
                kept.append("")
        else:
            empty_count = 0
            kept.append(ln)

    kept = kept[:max_lines]
    out = "\n".join(kept).strip()

    if len(out) > max_chars:
        out = out[: max(0, max_chars - 1)] + "…"

    return out


def code_block(text: str, max_chars: int = 2000) -> str:
    """Wrap text in a fenced block, trimming from the front to stay under max_chars."""
    body = text.rstrip("\n").replace("```", "`\u200b``")
    room = max(0, max_chars - len("```\n\n```"))
    if len(body) > room:
        body = body[len(body) - room:]
    return f"```\n{body}\n```"
