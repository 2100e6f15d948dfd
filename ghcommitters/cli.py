"""CLI entry point: ``gh-committers --user HANDLE``."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional, TextIO

from ghcommitters.account import resolve_account
from ghcommitters.client import GraphQLClient, build_session
from ghcommitters.config import SearchConfig, load_config
from ghcommitters.errors import CommitterSearchError, ConfigError
from ghcommitters.logging_config import configure_logging
from ghcommitters.pacing import Deadline, FixedDelay
from ghcommitters.traversal import TraversalEngine

logger = logging.getLogger("ghcommitters.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gh-committers",
        description="List every committer identity a GitHub account has pushed commits as",
    )
    parser.add_argument("--user", "-u", default="", help="(REQUIRED) Username of the target GitHub account")
    parser.add_argument("--source", action="store_true", help="Print commit URLs alongside discovered identities")
    parser.add_argument("--all", action="store_true", dest="show_all", help="Print all commits (will repeat duplicate identities)")
    parser.add_argument("--token", default="", help="GitHub API bearer token (can also be set from the GH_TOKEN env variable)")
    parser.add_argument(
        "--default-branch-only",
        action="store_true",
        help="Only walk each repository's default branch instead of every branch",
    )
    parser.add_argument("--delay", type=float, default=None, help="Seconds to wait between pages (default: 0.5)")
    parser.add_argument("--timeout", type=float, default=None, help="Give up after this many seconds")
    parser.add_argument("--log-level", default=None, help="Log level for stderr output (default: INFO)")
    return parser


def run_search(config: SearchConfig, out: TextIO) -> int:
    """Resolve the account, walk its history and print identities as found."""
    session = build_session(config.github.token)
    try:
        account = resolve_account(
            session,
            config.handle,
            api_base_url=config.github.api_base_url,
            timeout=config.github.request_timeout_s,
        )
        client = GraphQLClient(
            session,
            config.github.graphql_endpoint,
            timeout=config.github.request_timeout_s,
            max_rate_limit_waits=config.github.max_rate_limit_waits,
        )
        engine = TraversalEngine(
            client,
            account,
            settings=config.traversal,
            pacer=FixedDelay(config.traversal.page_delay_s),
            deadline=Deadline(config.traversal.timeout_s),
        )
        for line in engine.iter_identities(
            show_all=config.show_all, include_source=config.print_source
        ):
            print(line, file=out, flush=True)
    finally:
        session.close()
    return 0


def main(argv: Optional[list[str]] = None, out: Optional[TextIO] = None) -> int:
    out = out or sys.stdout
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level or "INFO")

    if not args.user:
        parser.print_help(file=out)
        return 0

    try:
        config = load_config(
            args.user,
            token=args.token,
            print_source=args.source,
            show_all=args.show_all,
            default_branch_only=args.default_branch_only,
            page_delay_s=args.delay,
            timeout_s=args.timeout,
            log_level=args.log_level,
        )
    except ConfigError as exc:
        print(exc.message, file=sys.stderr)
        return exc.exit_code

    configure_logging(config.log_level)

    try:
        return run_search(config, out)
    except CommitterSearchError as exc:
        logger.error("%s", exc.message, extra={"account": config.handle})
        return exc.exit_code
    except BrokenPipeError:
        # stdout reader went away, e.g. piped into head
        if out is sys.stdout:
            devnull = os.open(os.devnull, os.O_WRONLY)
            os.dup2(devnull, sys.stdout.fileno())
        return 0
    except KeyboardInterrupt:
        logger.warning("Interrupted", extra={"account": config.handle})
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
