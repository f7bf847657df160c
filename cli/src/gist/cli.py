"""Main CLI entry point for Global Gist."""

import click
from .commands import admin, browse


@click.group()
@click.version_option(version="0.1.0")
def main():
    """Global Gist - read, save and moderate articles from the terminal."""
    pass


# Reading commands
main.add_command(browse.topics)
main.add_command(browse.browse)
main.add_command(browse.search)
main.add_command(browse.read)
main.add_command(browse.save)
main.add_command(browse.saved)
main.add_command(browse.comment)

# Admin commands
main.add_command(admin.moderate)
main.add_command(admin.auto_approve)
main.add_command(admin.admin)


if __name__ == "__main__":
    main()
