"""Markdown rendering for question text, passages, code blocks and explanations.

Snapshots handed to the presentation layer carry HTML fragments next to the
raw text. Math stays as ``$...$`` source so the client's MathJax can typeset
it; code blocks become fenced code so the client's highlighter can style them.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt


@dataclass(slots=True)
class MarkdownMathRenderer:
    """Converts markdown-with-math into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str | None) -> str | None:
        """Render a markdown string into an HTML fragment, or None when empty."""
        sanitized = (markdown_text or "").strip()
        if not sanitized:
            return None
        return self._markdown.render(sanitized)

    def render_code_block(self, code: str | None, language: str = "") -> str | None:
        if not code or not code.strip():
            return None
        fence = "~~~" if "```" in code else "```"
        return self._markdown.render(f"{fence}{language}\n{code.rstrip()}\n{fence}\n")


renderer = MarkdownMathRenderer()
# Shared instance; MarkdownIt renders are read-only so reuse across sessions is safe.
