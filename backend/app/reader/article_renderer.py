from __future__ import annotations

import html
from collections.abc import Sequence

from backend.app.models.blog_contracts import Article, Comment
from backend.app.reader.markdown import (
    Block,
    CodeBlock,
    HeadingBlock,
    ListBlock,
    ParagraphBlock,
    QuoteBlock,
    render_spans,
    segment_blocks,
)


def render_block(block: Block) -> str:
    if isinstance(block, HeadingBlock):
        return f"<h{block.level}>{render_spans(block.spans)}</h{block.level}>"
    if isinstance(block, CodeBlock):
        return f"<pre><code>{html.escape(block.text, quote=False)}</code></pre>"
    if isinstance(block, QuoteBlock):
        return f"<blockquote>{render_spans(block.spans)}</blockquote>"
    if isinstance(block, ListBlock):
        items = "".join(f"<li>{render_spans(item)}</li>" for item in block.items)
        return f"<ul>{items}</ul>"
    return f"<p>{render_spans(block.spans)}</p>"


def render_blocks(blocks: Sequence[Block]) -> str:
    return "\n".join(render_block(block) for block in blocks)


def render_markdown(body: str) -> str:
    return render_blocks(segment_blocks(body))


def render_article(
    article: Article,
    *,
    comments: Sequence[Comment] = (),
    related: Sequence[Article] = (),
) -> str:
    """Render a standalone HTML document for one article.

    `comments` should already be filtered to the publicly visible ones.
    """
    title = html.escape(article.title)
    parts: list[str] = [
        "<!DOCTYPE html>",
        '<html lang="en">',
        "<head>",
        '<meta charset="utf-8" />',
        f"<title>{title} | Global Gist Blog</title>",
        "</head>",
        "<body>",
        '<article class="article">',
        "<header>",
        f'<p class="article-topic">{html.escape(article.topic)}</p>',
        f"<h1>{title}</h1>",
        f'<p class="article-summary">{html.escape(article.summary)}</p>',
        (
            f'<p class="article-byline">By {html.escape(article.author.name)}'
            f' <time datetime="{html.escape(article.created_at)}">'
            f"{html.escape(article.created_at[:10])}</time></p>"
        ),
        "</header>",
        _figure(article),
        f'<div class="article-body">\n{render_markdown(article.content)}\n</div>',
    ]
    if article.youtube_video_id:
        video_id = html.escape(article.youtube_video_id)
        parts.append(
            f'<iframe class="article-video" src="https://www.youtube.com/embed/{video_id}"'
            f' title="{title}" allowfullscreen></iframe>'
        )
    if article.sources:
        items = "".join(
            f'<li><a href="{html.escape(source.uri)}" target="_blank"'
            f' rel="noopener noreferrer">{html.escape(source.title or source.uri)}</a></li>'
            for source in article.sources
        )
        parts.append(f'<section class="article-sources"><h2>Sources</h2><ol>{items}</ol></section>')
    parts.append(
        '<aside class="article-author">'
        f"<h2>{html.escape(article.author.name)}</h2>"
        f"<p>{html.escape(article.author.bio)}</p>"
        "</aside>"
    )
    parts.append("</article>")
    if related:
        items = "".join(
            f'<li><a href="/read/{html.escape(post.id)}">{html.escape(post.title)}</a></li>'
            for post in related
        )
        parts.append(f'<section class="related"><h2>Related</h2><ul>{items}</ul></section>')
    parts.append(_comments_section(comments))
    parts.extend(["</body>", "</html>"])
    return "\n".join(part for part in parts if part)


def render_not_found(post_id: str) -> str:
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head><meta charset=\"utf-8\" /><title>Not found | Global Gist Blog</title></head>\n"
        f"<body><p>No article with id {html.escape(post_id)}.</p></body>\n"
        "</html>"
    )


def _figure(article: Article) -> str:
    alt = html.escape(article.image_description or article.title)
    caption = (
        f"<figcaption>{html.escape(article.image_description)}</figcaption>"
        if article.image_description
        else ""
    )
    return (
        f'<figure><img src="{html.escape(article.image_url)}" alt="{alt}"'
        f' class="article-hero" />{caption}</figure>'
    )


def _comments_section(comments: Sequence[Comment]) -> str:
    if not comments:
        return '<section class="comments"><h2>Comments</h2><p>No comments yet.</p></section>'
    items = "".join(
        f"<li><strong>{html.escape(comment.author)}</strong>"
        f"<p>{html.escape(comment.text)}</p></li>"
        for comment in comments
    )
    heading = f"<h2>Comments ({len(comments)})</h2>"
    return f'<section class="comments">{heading}<ul>{items}</ul></section>'
