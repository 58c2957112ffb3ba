#!/usr/bin/env python3
"""
invalidate_cdn.py — Create a CloudFront invalidation with safe defaults.

Defaults to /index.html only. Hashed assets are dropped from the request
because their URL already changed. /* asks for confirmation unless --yes.

Usage:
    uv run python scripts/invalidate_cdn.py E1234567890ABC
    uv run python scripts/invalidate_cdn.py E1234567890ABC /about.html /contact.html
    uv run python scripts/invalidate_cdn.py E1234567890ABC "/*" --yes

Environment:
    AWS_REGION  required
    WAIT=true   same as --wait
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Callable

from botocore.exceptions import ClientError

from static_publish.cdn import CloudFrontCdn
from static_publish.exceptions import PublishError, UnconfirmedWildcardError
from static_publish.invalidation import select_invalidation
from static_publish.models import DEFAULT_ENTRY_FILENAME, WILDCARD_PATH, InvalidationPolicy

logger = logging.getLogger("invalidate_cdn")
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

DEFAULT_PATHS = [f"/{DEFAULT_ENTRY_FILENAME}"]


def require_aws_region() -> str:
    """Read AWS_REGION from environment and fail fast if missing."""
    region = os.environ.get("AWS_REGION", "").strip()
    if not region:
        raise RuntimeError("AWS_REGION must be set")
    return region


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a CloudFront cache invalidation")
    parser.add_argument("distribution_id", help="CloudFront distribution ID")
    parser.add_argument(
        "paths",
        nargs="*",
        help="Paths to invalidate (default /index.html; /* invalidates everything)",
    )
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Confirm /* invalidation without prompting",
    )
    parser.add_argument(
        "--max-paths",
        type=positive_int,
        default=None,
        help="Warn when more than this many paths would be invalidated",
    )
    parser.add_argument(
        "--wait",
        action="store_true",
        help="Wait for the invalidation to complete (1-5 minutes)",
    )
    args = parser.parse_args(argv)
    # Accept a single space-separated argument, as the shell script did.
    args.paths = [p for raw in args.paths for p in raw.split()] or list(DEFAULT_PATHS)
    return args


def confirm_wildcard(prompt: Callable[[str], str] = input) -> bool:
    print("WARNING: Invalidating all paths (/*) is expensive and usually unnecessary.")
    print("Consider invalidating only /index.html, or hashed file names instead.")
    try:
        reply = prompt("Continue with /* invalidation? (y/N) ")
    except EOFError:
        return False
    return reply.strip().lower().startswith("y")


def run(args: argparse.Namespace, prompt: Callable[[str], str] = input) -> int:
    require_aws_region()
    wants_wildcard = WILDCARD_PATH in args.paths
    confirmed = args.yes or (wants_wildcard and confirm_wildcard(prompt))
    if wants_wildcard and not confirmed:
        print("Cancelled.")
        return 0

    # Explicit paths are honoured as given (minus hashed assets); the default
    # request is the entry point alone.
    policy = InvalidationPolicy(
        entry_only=args.paths == DEFAULT_PATHS,
        explicit_wildcard_confirmed=confirmed,
        max_discrete_paths=args.max_paths,
    )
    request = select_invalidation(args.paths, policy)
    for warning in request.warnings:
        logger.warning("%s", warning)
    if request.is_empty:
        print("Nothing to invalidate: every path given is a hashed asset.")
        return 0

    print(f"Distribution: {args.distribution_id}")
    print(f"Paths: {' '.join(request.paths)}")
    cdn = CloudFrontCdn()
    status = cdn.create_invalidation(args.distribution_id, request.paths)
    print("Invalidation created!")
    print(f"  ID: {status.invalidation_id}")
    print(f"  Status: {status.state.value}")

    if args.wait or os.environ.get("WAIT", "").strip().lower() == "true":
        logger.info("Waiting for invalidation to complete...")
        status = cdn.wait_for_completion(args.distribution_id, status.invalidation_id)
        print(f"Invalidation complete: {status.invalidation_id}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""
    args = parse_args(argv)
    try:
        return run(args)
    except UnconfirmedWildcardError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    except (PublishError, ClientError, RuntimeError) as exc:
        logger.error("invalidate_cdn failed: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
