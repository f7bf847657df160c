from __future__ import annotations

import argparse
import os
import sys

from pydantic import ValidationError

from backend.app.config import AppSettings, load_settings, missing_required_secrets

RECOMMENDED_ENV_VARS: tuple[str, ...] = (
    "GLOBAL_GIST_DATA_DIR",
    "GLOBAL_GIST_GEMINI_MODEL",
)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Check that the Global Gist API environment is complete.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Only print problems.",
    )
    return parser.parse_args(argv)


def _print_summary(settings: AppSettings) -> None:
    print("Resolved settings:")
    print(f"  - database: {settings.db_path}")
    print(f"  - logs: {settings.log_dir}")
    print(f"  - model: {settings.gemini_model}")
    unset = [name for name in RECOMMENDED_ENV_VARS if not os.environ.get(name)]
    if unset:
        print("\nRecommended settings using defaults:")
        for env_name in unset:
            print(f"  - {env_name}")


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        settings = load_settings(validate_secrets=False)
    except ValidationError as exc:
        print(f"Invalid configuration:\n{exc}", file=sys.stderr)
        return 1

    missing = missing_required_secrets(settings)
    if missing:
        print("Missing required environment variables:", file=sys.stderr)
        for name in missing:
            print(f"  - {name}", file=sys.stderr)
        print(
            "\nAdd them to your shell or a `.env` file and run this check again.",
            file=sys.stderr,
        )
        return 1

    if not args.quiet:
        print("All required environment variables are present.")
        _print_summary(settings)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
