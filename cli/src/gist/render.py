"""Terminal rendering of articles, built on the reader's block parser."""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from backend.app.models.blog_contracts import Article, Comment
from backend.app.reader.markdown import (
    CodeBlock,
    CodeSpan,
    EmphasisSpan,
    HeadingBlock,
    ImageSpan,
    LinkSpan,
    ListBlock,
    QuoteBlock,
    StrongSpan,
    TextSpan,
    segment_blocks,
)

HEADING_STYLES = {1: "bold underline", 2: "bold cyan", 3: "bold"}


def spans_to_text(spans, style: str = "") -> Text:
    text = Text(style=style)
    for span in spans:
        if isinstance(span, TextSpan):
            text.append(span.text)
        elif isinstance(span, StrongSpan):
            text.append_text(spans_to_text(span.children, "bold"))
        elif isinstance(span, EmphasisSpan):
            text.append_text(spans_to_text(span.children, "italic"))
        elif isinstance(span, CodeSpan):
            text.append_text(spans_to_text(span.children, "magenta"))
        elif isinstance(span, LinkSpan):
            label = spans_to_text(span.children, f"link {span.href} underline")
            text.append_text(label)
        elif isinstance(span, ImageSpan):
            text.append(f"[image: {span.alt or span.src}]", style="dim")
    return text


def print_article(console: Console, article: Article):
    """Print the full article body block by block."""
    console.print(Text(article.topic, style="dim"))
    console.print(Text(article.title, style="bold"))
    console.print(Text(article.summary, style="italic"))
    console.print(Text(f"By {article.author.name} - {article.created_at[:10]}", style="dim"))
    console.print()

    for block in segment_blocks(article.content):
        if isinstance(block, HeadingBlock):
            console.print(spans_to_text(block.spans, HEADING_STYLES[block.level]))
        elif isinstance(block, CodeBlock):
            console.print(Panel(Text(block.text), border_style="dim"))
        elif isinstance(block, QuoteBlock):
            console.print(Text("> ").append_text(spans_to_text(block.spans, "italic")))
        elif isinstance(block, ListBlock):
            for item in block.items:
                console.print(Text("  - ").append_text(spans_to_text(item)))
        else:
            console.print(spans_to_text(block.spans))
        console.print()

    if article.sources:
        console.print("[bold]Sources[/bold]")
        for source in article.sources:
            console.print(f"  - {escape(source.title or source.uri)} ({escape(source.uri)})")


def print_comments(console: Console, comments: list[Comment]):
    if not comments:
        console.print("[dim]No comments yet.[/dim]")
        return
    console.print(f"[bold]Comments ({len(comments)})[/bold]")
    for comment in comments:
        console.print(f"  [cyan]{escape(comment.author)}[/cyan]: {escape(comment.text)}")
