"""Markdown-flavoured article bodies parsed into typed blocks and inline span trees.

Inline syntax is resolved by a fixed sequence of substitution rules (image, link,
bold, italic, code). Each rule replaces its matches in a working string with an
opaque placeholder, so text produced by an earlier rule is never re-matched by a
later one. Containers (link labels, bold, italic) keep parsing their inner text
with the rules that follow them. Nothing is escaped until `render_spans`.
"""

from __future__ import annotations

import html
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

_PLACEHOLDER = "\x00{index}\x00"
_PLACEHOLDER_SPLIT = re.compile(r"\x00(\d+)\x00")
_REPLACEMENT_CHARACTER = "\ufffd"


@dataclass(frozen=True)
class TextSpan:
    text: str


@dataclass(frozen=True)
class StrongSpan:
    children: tuple[Span, ...]


@dataclass(frozen=True)
class EmphasisSpan:
    children: tuple[Span, ...]


@dataclass(frozen=True)
class CodeSpan:
    children: tuple[Span, ...]


@dataclass(frozen=True)
class LinkSpan:
    href: str
    children: tuple[Span, ...]


@dataclass(frozen=True)
class ImageSpan:
    src: str
    alt: str


Span = TextSpan | StrongSpan | EmphasisSpan | CodeSpan | LinkSpan | ImageSpan


@dataclass(frozen=True)
class HeadingBlock:
    level: int
    spans: tuple[Span, ...]


@dataclass(frozen=True)
class CodeBlock:
    text: str


@dataclass(frozen=True)
class QuoteBlock:
    spans: tuple[Span, ...]


@dataclass(frozen=True)
class ListBlock:
    items: tuple[tuple[Span, ...], ...]


@dataclass(frozen=True)
class ParagraphBlock:
    spans: tuple[Span, ...]


Block = HeadingBlock | CodeBlock | QuoteBlock | ListBlock | ParagraphBlock


@dataclass(frozen=True)
class _InlineRule:
    name: str
    pattern: re.Pattern[str]


_INLINE_RULES: tuple[_InlineRule, ...] = (
    _InlineRule("image", re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")),
    _InlineRule("link", re.compile(r"\[([^\]]+)\]\(([^)]+)\)")),
    _InlineRule("strong", re.compile(r"\*\*(.*?)\*\*")),
    # A single `*` on each side; neither delimiter may touch another `*`.
    _InlineRule(
        "emphasis",
        re.compile(r"(?<!\*)\*(?!\*)((?:[^*]|\*[^*])+?)(?<!\*)\*(?!\*)"),
    ),
    _InlineRule("code", re.compile(r"`(.*?)`")),
)


class _InlineParser:
    def __init__(self) -> None:
        self._nodes: list[Span] = []

    def parse(self, text: str) -> tuple[Span, ...]:
        return self._expand(self._substitute(text, _INLINE_RULES))

    def _substitute(self, text: str, rules: Sequence[_InlineRule]) -> str:
        for position, rule in enumerate(rules):
            remaining = rules[position + 1 :]
            text = rule.pattern.sub(self._replacer(rule.name, remaining), text)
        return text

    def _replacer(
        self,
        name: str,
        remaining: Sequence[_InlineRule],
    ) -> Callable[[re.Match[str]], str]:
        def replace(match: re.Match[str]) -> str:
            return self._stash(self._build(name, match, remaining))

        return replace

    def _build(self, name: str, match: re.Match[str], remaining: Sequence[_InlineRule]) -> Span:
        if name == "image":
            return ImageSpan(src=self._plain(match.group(2)), alt=self._plain(match.group(1)))
        if name == "link":
            return LinkSpan(
                href=self._plain(match.group(2)),
                children=self._expand(self._substitute(match.group(1), remaining)),
            )
        if name == "strong":
            return StrongSpan(children=self._expand(self._substitute(match.group(1), remaining)))
        if name == "emphasis":
            return EmphasisSpan(children=self._expand(self._substitute(match.group(1), remaining)))
        return CodeSpan(children=self._expand(match.group(1)))

    def _stash(self, node: Span) -> str:
        self._nodes.append(node)
        return _PLACEHOLDER.format(index=len(self._nodes) - 1)

    def _expand(self, text: str) -> tuple[Span, ...]:
        spans: list[Span] = []
        parts = _PLACEHOLDER_SPLIT.split(text)
        for position, part in enumerate(parts):
            if position % 2 == 1:
                spans.append(self._nodes[int(part)])
            elif part:
                spans.append(TextSpan(part))
        return tuple(spans)

    def _plain(self, text: str) -> str:
        return "".join(plain_text(span) for span in self._expand(text))


def parse_inline(line: str) -> list[Span]:
    """Parse one logical line into a flat list of top-level spans."""
    return list(_InlineParser().parse(line.replace("\x00", _REPLACEMENT_CHARACTER)))


def plain_text(span: Span) -> str:
    if isinstance(span, TextSpan):
        return span.text
    if isinstance(span, ImageSpan):
        return span.alt
    return "".join(plain_text(child) for child in span.children)


def render_spans(spans: Sequence[Span]) -> str:
    return "".join(_render_span(span) for span in spans)


def _render_span(span: Span) -> str:
    if isinstance(span, TextSpan):
        return html.escape(span.text, quote=False)
    if isinstance(span, ImageSpan):
        return (
            f'<img src="{_attribute(span.src)}" alt="{_attribute(span.alt)}" '
            'loading="lazy" decoding="async" class="article-image" />'
        )
    if isinstance(span, LinkSpan):
        return (
            f'<a href="{_attribute(span.href)}" target="_blank" rel="noopener noreferrer">'
            f"{render_spans(span.children)}</a>"
        )
    if isinstance(span, StrongSpan):
        return f"<strong>{render_spans(span.children)}</strong>"
    if isinstance(span, EmphasisSpan):
        return f"<em>{render_spans(span.children)}</em>"
    return f"<code>{render_spans(span.children)}</code>"


def _attribute(value: str) -> str:
    return html.escape(value, quote=True)


_HEADING_MARKERS: tuple[tuple[str, int], ...] = (("### ", 3), ("## ", 2), ("# ", 1))
_FENCE = "```"
_QUOTE_MARKER = "> "
_BULLET_MARKERS: tuple[str, ...] = ("* ", "- ")
_BLOCK_MARKERS: tuple[str, ...] = (
    *(marker for marker, _ in _HEADING_MARKERS),
    _FENCE,
    _QUOTE_MARKER,
    *_BULLET_MARKERS,
)


def segment_blocks(body: str) -> list[Block]:
    lines = body.replace("\r\n", "\n").split("\n")
    blocks: list[Block] = []
    index = 0
    total = len(lines)

    while index < total:
        line = lines[index]
        if not line.strip():
            index += 1
            continue

        heading = _heading_level(line)
        if heading is not None:
            level, marker = heading
            blocks.append(HeadingBlock(level=level, spans=_spans(line[len(marker) :])))
            index += 1
            continue

        if line.startswith(_FENCE):
            index += 1
            code_lines: list[str] = []
            while index < total and not lines[index].startswith(_FENCE):
                code_lines.append(lines[index])
                index += 1
            # Skip the closing fence; an unterminated fence runs to end of input.
            index += 1
            blocks.append(CodeBlock(text="\n".join(code_lines)))
            continue

        if line.startswith(_QUOTE_MARKER):
            quote_lines: list[str] = []
            while index < total and lines[index].startswith(_QUOTE_MARKER):
                quote_lines.append(lines[index][len(_QUOTE_MARKER) :])
                index += 1
            blocks.append(QuoteBlock(spans=_spans(" ".join(quote_lines))))
            continue

        if line.startswith(_BULLET_MARKERS):
            items: list[tuple[Span, ...]] = []
            while index < total and lines[index].startswith(_BULLET_MARKERS):
                items.append(_spans(lines[index][2:].lstrip()))
                index += 1
            blocks.append(ListBlock(items=tuple(items)))
            continue

        paragraph_lines = [line]
        index += 1
        while (
            index < total
            and lines[index].strip()
            and not lines[index].startswith(_BLOCK_MARKERS)
        ):
            paragraph_lines.append(lines[index])
            index += 1
        blocks.append(ParagraphBlock(spans=_spans(" ".join(paragraph_lines))))

    return blocks


def _heading_level(line: str) -> tuple[int, str] | None:
    for marker, level in _HEADING_MARKERS:
        if line.startswith(marker):
            return level, marker
    return None


def _spans(text: str) -> tuple[Span, ...]:
    return tuple(parse_inline(text))
