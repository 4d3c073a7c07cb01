"""Pre-flight check for BrandPilot deployment configuration.

Loads ``AppSettings`` from an env file so missing Twitter or OpenAI credentials
surface before the API starts answering with 5xx errors, applies the stricter
rules that only matter in production, and optionally records or verifies a
checksum of the env file to catch unexpected edits.

Example usages::

    python -m scripts.check_env check --env-file deploy/.env

    python -m scripts.check_env record --env-file deploy/.env \
        --hash-file deploy/.env.sha256

    python -m scripts.check_env verify --env-file deploy/.env \
        --hash-file deploy/.env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from pathlib import Path
from typing import Callable, List

from pydantic import ValidationError

from brandpilot.core.config import AppSettings, _load_env_file

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5

PRODUCTION_ENVIRONMENTS = {"production", "prod"}


class ConfigurationProblem(Exception):
    """Settings loaded but violate a deployment rule."""

    def __init__(self, problems: List[str]) -> None:
        super().__init__("; ".join(problems))
        self.problems = problems


def _compute_hash(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def production_problems(settings: AppSettings) -> List[str]:
    """Rules that are advisory in development but required in production."""
    if settings.environment.lower() not in PRODUCTION_ENVIRONMENTS:
        return []

    problems: List[str] = []
    if not settings.security.token_encryption_secret:
        problems.append(
            "TOKEN_ENCRYPTION_SECRET must be set; tokens would otherwise be "
            "encrypted with the Twitter client secret."
        )
    if not str(settings.twitter.redirect_uri).startswith("https://"):
        problems.append("TWITTER_REDIRECT_URI must use https.")
    if settings.frontend_base_url.startswith("http://localhost"):
        problems.append("FRONTEND_BASE_URL still points at localhost.")
    return problems


def load_settings(env_file: Path) -> AppSettings:
    """Populate the environment from ``env_file`` and build validated settings."""
    _load_env_file(str(env_file))
    settings = AppSettings()  # type: ignore[call-arg]
    problems = production_problems(settings)
    if problems:
        raise ConfigurationProblem(problems)
    return settings


def summarize(settings: AppSettings) -> str:
    secret_source = (
        "TOKEN_ENCRYPTION_SECRET"
        if settings.security.token_encryption_secret
        else "TWITTER_CLIENT_SECRET (fallback)"
    )
    return "\n".join(
        [
            f"environment:        {settings.environment}",
            f"database:           {settings.database_path}",
            f"twitter redirect:   {settings.twitter.redirect_uri}",
            f"twitter scopes:     {settings.twitter.scopes}",
            f"openai model:       {settings.openai.model_name}",
            f"content generator:  {settings.content_generator.url}",
            f"rate limit:         {settings.rate_limit.quota} per "
            f"{settings.rate_limit.window_seconds}s ({settings.rate_limit.backend})",
            f"token encryption:   {secret_source}",
        ]
    )


def _record_checksum(env_file: Path, hash_file: Path) -> int:
    checksum = _compute_hash(env_file)
    hash_file.write_text(f"{checksum}\n", encoding="utf-8")
    print(f"Recorded checksum to {hash_file} ({checksum})")
    return EXIT_OK


def _verify_checksum(env_file: Path, hash_file: Path) -> int:
    if not hash_file.exists():
        print(
            f"Checksum baseline {hash_file} not found; run 'record' first.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    expected = hash_file.read_text(encoding="utf-8").strip()
    actual = _compute_hash(env_file)
    if expected == actual:
        print("Environment checksum OK.")
        return EXIT_OK

    print(
        f"Environment file {env_file} changed since the baseline was recorded.\n"
        f"  expected: {expected}\n"
        f"  actual:   {actual}",
        file=sys.stderr,
    )
    return EXIT_CHECKSUM_ERROR


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate BrandPilot settings and detect env file drift."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text, needs_hash in (
        ("check", "Validate settings and print a summary.", False),
        ("record", "Validate settings and store the checksum baseline.", True),
        ("verify", "Validate settings and compare against the baseline.", True),
    ):
        subparser = subparsers.add_parser(name, help=help_text)
        subparser.add_argument(
            "--env-file",
            default=".env",
            type=Path,
            help="Path to the environment file (default: .env).",
        )
        if needs_hash:
            subparser.add_argument(
                "--hash-file",
                required=True,
                type=Path,
                help="Checksum baseline location.",
            )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.exists():
        print(f"Environment file {env_file} does not exist.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    try:
        settings = load_settings(env_file)
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR
    except ConfigurationProblem as exc:
        print("Production configuration problems:", file=sys.stderr)
        for problem in exc.problems:
            print(f"  - {problem}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR
    except OSError as exc:
        print(f"Could not read environment: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    handlers: dict[str, Callable[[], int]] = {
        "check": lambda: print(summarize(settings)) or EXIT_OK,
        "record": lambda: _record_checksum(env_file, args.hash_file),
        "verify": lambda: _verify_checksum(env_file, args.hash_file),
    }
    return handlers[args.command]()


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
