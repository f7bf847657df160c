"""Admin commands: post management and comment moderation."""

from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from backend.app.models.blog_contracts import BLOG_TOPICS, COMMENT_STATUSES
from backend.app.reader.admin import AdminConsole, PostForm, PostFormError
from backend.app.reader.gateway import FetchError

from .. import session
from ..config import Config

console = Console()


def _fail(message: str):
    console.print(f"[red]Error: {escape(message)}[/red]")
    raise SystemExit(1)


@click.command()
@click.option("--status", "-s", type=click.Choice(COMMENT_STATUSES), default="pending",
              show_default=True, help="Which comments to list.")
@click.option("--approve", "approve_ids", multiple=True, help="Approve a comment by id.")
@click.option("--reject", "reject_ids", multiple=True, help="Reject a comment by id.")
def moderate(status: str, approve_ids, reject_ids):
    """List comments by status and approve or reject them."""
    config = Config.load()
    library = session.build_library(config)

    async def _moderate():
        async with session.build_gateway(config) as gateway:
            board = AdminConsole(gateway, library)
            await board.refresh()
            missing = []
            for comment_id in approve_ids:
                if await board.moderate(comment_id, "approved") is None:
                    missing.append(comment_id)
            for comment_id in reject_ids:
                if await board.moderate(comment_id, "rejected") is None:
                    missing.append(comment_id)
            return board, missing

    try:
        board, missing = session.run(_moderate())
    except FetchError as e:
        _fail(e.message)

    for comment_id in missing:
        console.print(f"[yellow]Comment not found:[/yellow] {escape(comment_id)}")

    counts = board.tab_counts()
    console.print(
        f"pending {counts['pending']} | approved {counts['approved']} | "
        f"rejected {counts['rejected']}\n"
    )

    comments = board.comments_tab(status)
    if not comments:
        console.print(f"[dim]No {status} comments[/dim]")
        return

    table = Table(title=f"{status.capitalize()} comments")
    table.add_column("id", style="cyan")
    table.add_column("post")
    table.add_column("author")
    table.add_column("text")
    for comment in comments:
        table.add_row(comment.id, comment.post_id, comment.author, comment.text)
    console.print(table)


@click.command(name="auto-approve")
@click.argument("setting", required=False, type=click.Choice(["on", "off"]))
def auto_approve(setting):
    """Show or change whether new comments are published immediately."""
    config = Config.load()
    library = session.build_library(config)

    if setting is not None:
        library.set_auto_approve(setting == "on")

    state = "on" if library.auto_approve() else "off"
    console.print(f"Auto-approve comments: [bold]{state}[/bold]")


@click.group()
def admin():
    """Manage posts."""
    pass


@admin.command()
def stats():
    """Show post and comment totals."""
    config = Config.load()
    library = session.build_library(config)

    async def _stats():
        async with session.build_gateway(config) as gateway:
            board = AdminConsole(gateway, library)
            await board.refresh()
            return board.stats()

    try:
        totals = session.run(_stats())
    except FetchError as e:
        _fail(e.message)

    console.print(f"Total posts:      {totals.total_posts}")
    console.print(f"Total comments:   {totals.total_comments}")
    console.print(f"Pending comments: {totals.pending_comments}")


@admin.command()
@click.option("--title", required=True)
@click.option("--summary", required=True)
@click.option("--content-file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              required=True, help="Markdown file with the article body.")
@click.option("--topic", type=click.Choice(BLOG_TOPICS), default=BLOG_TOPICS[0], show_default=True)
@click.option("--image-url", default="", help="Defaults to a generated placeholder image.")
@click.option("--youtube", default="", help="YouTube video id or URL.")
def create(title, summary, content_file: Path, topic, image_url, youtube):
    """Publish a new article."""
    config = Config.load()
    library = session.build_library(config)
    form = PostForm(
        title=title,
        summary=summary,
        content=content_file.read_text(),
        topic=topic,
        image_url=image_url,
        youtube=youtube,
    )

    async def _create():
        async with session.build_gateway(config) as gateway:
            return await AdminConsole(gateway, library).save_post(form)

    try:
        article = session.run(_create())
    except PostFormError as e:
        _fail(str(e))
    except FetchError as e:
        _fail(e.message)

    console.print(f"[green]Published:[/green] {escape(article.title)}")
    console.print(f"  id: [cyan]{article.id}[/cyan]")


@admin.command()
@click.argument("post_id")
@click.option("--title", help="Defaults to the current title.")
@click.option("--summary", help="Defaults to the current summary.")
@click.option("--content-file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Markdown file replacing the article body.")
@click.option("--topic", type=click.Choice(BLOG_TOPICS), help="Defaults to the current topic.")
@click.option("--image-url", help="Defaults to the current image.")
@click.option("--youtube", help="YouTube video id or URL; pass an empty value to clear it.")
def edit(post_id: str, title, summary, content_file: Optional[Path], topic, image_url, youtube):
    """Edit an existing article, keeping its id and publication date."""
    config = Config.load()
    library = session.build_library(config)

    async def _edit():
        async with session.build_gateway(config) as gateway:
            article = await gateway.get_post_by_id(post_id)
            if article is None:
                return None
            form = PostForm(
                title=article.title if title is None else title,
                summary=article.summary if summary is None else summary,
                content=article.content if content_file is None else content_file.read_text(),
                topic=topic or article.topic,
                image_url=article.image_url if image_url is None else image_url,
                youtube=(article.youtube_video_id or "") if youtube is None else youtube,
            )
            return await AdminConsole(gateway, library).save_post(form, existing=article)

    try:
        article = session.run(_edit())
    except PostFormError as e:
        _fail(str(e))
    except FetchError as e:
        _fail(e.message)

    if article is None:
        _fail(f"Article not found: {post_id}")

    console.print(f"[green]Updated:[/green] {escape(article.title)}")
    console.print(f"  id: [cyan]{article.id}[/cyan]")


@admin.command()
@click.argument("post_id")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
def delete(post_id: str, yes: bool):
    """Delete an article."""
    if not yes and not click.confirm(f"Delete {post_id}?"):
        console.print("[yellow]Cancelled[/yellow]")
        return

    config = Config.load()
    library = session.build_library(config)

    async def _delete():
        async with session.build_gateway(config) as gateway:
            if await gateway.get_post_by_id(post_id) is None:
                return False
            return await AdminConsole(gateway, library).delete_post(post_id)

    try:
        deleted = session.run(_delete())
    except FetchError as e:
        _fail(e.message)

    if deleted:
        console.print(f"[green]Deleted:[/green] {escape(post_id)}")
    else:
        _fail(f"Article not found: {post_id}")
