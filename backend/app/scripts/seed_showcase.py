from __future__ import annotations

import argparse

from backend.app.config import load_settings
from backend.app.logging_config import configure_application_logging
from backend.app.repositories.common import utc_now_iso
from backend.app.repositories.database import Database
from backend.app.repositories.post_repository import PostRepository
from backend.app.services.showcase import SHOWCASE_ARTICLE_ID, showcase_article


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Insert the showcase article into the Global Gist database.",
    )
    parser.add_argument(
        "--replace",
        action="store_true",
        help="Overwrite the stored showcase article with the bundled version.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = load_settings(validate_secrets=False)
    configure_application_logging(settings)
    database = Database(settings.db_path)
    database.initialize()
    repository = PostRepository(database)

    article = showcase_article(created_at=utc_now_iso())
    if repository.ensure_post(article):
        print(f"Inserted showcase article {SHOWCASE_ARTICLE_ID} into {settings.db_path}")
        return 0
    if args.replace:
        repository.update_post(article)
        print(f"Replaced showcase article {SHOWCASE_ARTICLE_ID}")
        return 0
    print(f"Showcase article {SHOWCASE_ARTICLE_ID} already present; nothing to do.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
