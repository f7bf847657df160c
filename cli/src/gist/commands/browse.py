"""Reading commands for the gist CLI."""

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from backend.app.models.blog_contracts import BLOG_TOPICS
from backend.app.reader.comments import with_comment_counts
from backend.app.reader.controller import TopicPaginationController
from backend.app.reader.gateway import FetchError
from backend.app.reader.reading_view import CommentFormError, ReadingView

from .. import session
from ..config import Config
from ..render import print_article, print_comments

console = Console()


def _print_posts(state):
    """Print the current listing, marking the featured subset."""
    if state.error:
        console.print(f"[red]{escape(state.error)}[/red]")
    if not state.posts:
        if not state.error:
            console.print(f"[yellow]No articles found for {escape(state.current_topic)}[/yellow]")
        return

    featured_ids = {post.id for post in state.featured_posts}
    table = Table(title=state.current_topic)
    table.add_column("")
    table.add_column("id", style="cyan")
    table.add_column("title")
    table.add_column("published", style="dim")
    for post in state.posts:
        marker = "*" if post.id in featured_ids else ""
        table.add_row(marker, post.id, post.title, post.created_at[:10])
    console.print(table)
    if state.has_more_posts:
        console.print(f"[dim]Page {state.current_page}; more articles available.[/dim]")


@click.command()
def topics():
    """List the browsable topics."""
    for topic in BLOG_TOPICS:
        console.print(f"  - {topic}")


@click.command()
@click.argument("topic", required=False)
@click.option("--pages", default=1, show_default=True, type=click.IntRange(min=1),
              help="Number of pages to load.")
@click.option("--offline", is_flag=True,
              help="Fall back to bundled sample articles if the API is unreachable.")
def browse(topic, pages, offline):
    """Browse articles for a topic."""
    config = Config.load()
    chosen = topic or BLOG_TOPICS[0]

    async def _browse():
        async with session.build_gateway(config, offline=offline) as gateway:
            controller = TopicPaginationController(gateway, initial_topic=chosen)
            await controller.select_topic(chosen)
            for _ in range(pages - 1):
                if controller.state.error or not controller.state.has_more_posts:
                    break
                await controller.load_more()
            return controller.state

    state = session.run(_browse())
    _print_posts(state)
    if state.error:
        raise SystemExit(1)


@click.command()
@click.argument("query")
def search(query: str):
    """Generate and show an article about QUERY."""
    config = Config.load()

    async def _search():
        async with session.build_gateway(config) as gateway:
            controller = TopicPaginationController(gateway)
            await controller.search(query)
            return controller.state

    console.print(f"Searching for: [cyan]{escape(query)}[/cyan]\n")
    state = session.run(_search())
    _print_posts(state)
    if state.error:
        raise SystemExit(1)


@click.command()
@click.argument("post_id")
@click.option("--related/--no-related", default=True, help="Generate related articles.")
def read(post_id: str, related: bool):
    """Read an article with its comments."""
    config = Config.load()
    library = session.build_library(config)

    async def _read():
        async with session.build_gateway(config) as gateway:
            article = await gateway.get_post_by_id(post_id)
            if article is None:
                return None
            view = ReadingView(gateway, article, library)
            if related:
                await view.load()
            else:
                await view.load_comments()
                await view.load_video()
            return view

    try:
        view = session.run(_read())
    except FetchError as e:
        console.print(f"[red]Error: {escape(e.message)}[/red]")
        raise SystemExit(1)

    if view is None:
        console.print(f"[red]Article not found: {escape(post_id)}[/red]")
        raise SystemExit(1)

    state = view.state
    print_article(console, state.article)
    if state.video_id:
        console.print(f"Video: https://www.youtube.com/watch?v={state.video_id}\n")
    if related:
        if state.related_error:
            console.print(f"[yellow]{state.related_error}[/yellow]")
        elif state.related_posts:
            console.print("[bold]Related articles[/bold]")
            for post in state.related_posts:
                console.print(f"  - [cyan]{post.id}[/cyan] {escape(post.title)}")
        console.print()
    if state.comments_error:
        console.print(f"[yellow]{state.comments_error}[/yellow]")
    else:
        print_comments(console, state.comments)
    if view.is_saved:
        console.print("\n[green]Saved for later[/green]")


@click.command()
@click.argument("post_id")
def save(post_id: str):
    """Save an article for later, or remove it if already saved."""
    config = Config.load()
    library = session.build_library(config)

    async def _fetch():
        async with session.build_gateway(config) as gateway:
            return await gateway.get_post_by_id(post_id)

    try:
        article = session.run(_fetch())
    except FetchError as e:
        console.print(f"[red]Error: {escape(e.message)}[/red]")
        raise SystemExit(1)
    if article is None:
        console.print(f"[red]Article not found: {escape(post_id)}[/red]")
        raise SystemExit(1)

    if library.toggle_saved(article):
        console.print(f"[green]Saved:[/green] {escape(article.title)}")
    else:
        console.print(f"[yellow]Removed from saved:[/yellow] {escape(article.title)}")


@click.command()
def saved():
    """List saved articles with their approved comment counts."""
    config = Config.load()
    library = session.build_library(config)
    posts = with_comment_counts(library.saved_posts(), library.cached_comments())

    if not posts:
        console.print("[yellow]No saved articles[/yellow]")
        return

    table = Table(title="Saved for later")
    table.add_column("id", style="cyan")
    table.add_column("title")
    table.add_column("comments", justify="right")
    for post in posts:
        table.add_row(post.id, post.title, str(post.comment_count or 0))
    console.print(table)


@click.command()
@click.argument("post_id")
@click.option("--author", required=True, help="Name shown with the comment.")
@click.option("--text", "text", required=True, help="Comment text.")
def comment(post_id: str, author: str, text: str):
    """Comment on an article."""
    config = Config.load()
    library = session.build_library(config)

    async def _comment():
        async with session.build_gateway(config) as gateway:
            article = await gateway.get_post_by_id(post_id)
            if article is None:
                return None
            return await ReadingView(gateway, article, library).add_comment(author, text)

    try:
        status = session.run(_comment())
    except CommentFormError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise SystemExit(1)
    except FetchError as e:
        console.print(f"[red]Error: {escape(e.message)}[/red]")
        raise SystemExit(1)

    if status is None:
        console.print(f"[red]Article not found: {escape(post_id)}[/red]")
        raise SystemExit(1)
    if status == "approved":
        console.print("[green]Comment published.[/green]")
    else:
        console.print("[yellow]Comment submitted and awaiting moderation.[/yellow]")
