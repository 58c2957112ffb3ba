#!/usr/bin/env python3
"""
deploy_site.py — Publish a static site build to S3 with tiered cache headers.

Upload order (entry point always last):
    [1/5] hashed assets      max-age=31536000, immutable
    [2/5] images and media   max-age=604800
    [3/5] other static files max-age=86400
    [4/5] other HTML         max-age=300
    [5/5] index.html         no-cache, no-store, must-revalidate

Stale objects (in the bucket, not in the build) are deleted after all
uploads. With --distribution-id the changed entry point is invalidated.

Usage:
    uv run python scripts/deploy_site.py <bucket> [build_dir]
    uv run python scripts/deploy_site.py mysite-prod dist --distribution-id E1234567890ABC

Environment:
    AWS_REGION    required
    DRY_RUN=true  same as --dry-run
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from botocore.exceptions import ClientError

from static_publish.exceptions import PublishError
from static_publish.models import DEFAULT_CONFIG, InvalidationPolicy, PlannerConfig, PublishResult
from static_publish.publisher import Publisher
from static_publish.storage import S3Storage

logger = logging.getLogger("deploy_site")
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

DEFAULT_BUILD_DIR = "dist"


def require_aws_region() -> str:
    """Read AWS_REGION from environment and fail fast if missing."""
    region = os.environ.get("AWS_REGION", "").strip()
    if not region:
        raise RuntimeError("AWS_REGION must be set")
    return region


def env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() == "true"


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Deploy a static site build to S3 with proper cache headers"
    )
    parser.add_argument("bucket", help="Target S3 bucket name")
    parser.add_argument(
        "build_dir",
        nargs="?",
        default=DEFAULT_BUILD_DIR,
        help="Build output directory (default dist)",
    )
    parser.add_argument("--prefix", default="", help="Key prefix inside the bucket")
    parser.add_argument(
        "--entry-filename",
        default=DEFAULT_CONFIG.entry_filename,
        help="Site entry file at the build root (default index.html)",
    )
    parser.add_argument(
        "--distribution-id",
        default=None,
        help="CloudFront distribution to invalidate after upload",
    )
    parser.add_argument(
        "--invalidate-all-html",
        action="store_true",
        help="Invalidate every changed non-hashed file, not only the entry point",
    )
    parser.add_argument(
        "--max-invalidation-paths",
        type=positive_int,
        default=None,
        help="Warn when an invalidation would exceed this many paths",
    )
    parser.add_argument(
        "--no-delete",
        action="store_true",
        help="Keep objects that are no longer in the build",
    )
    parser.add_argument("--dry-run", action="store_true", help="Show actions without uploading")
    parser.add_argument(
        "--wait",
        action="store_true",
        help="Wait for the CloudFront invalidation to complete",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> PlannerConfig:
    """Map CLI flags onto the planner configuration."""
    policy = InvalidationPolicy(
        entry_only=not args.invalidate_all_html,
        max_discrete_paths=args.max_invalidation_paths,
    )
    return DEFAULT_CONFIG.with_overrides(
        entry_filename=args.entry_filename,
        invalidation_policy=policy,
    )


def print_summary(result: PublishResult, bucket: str) -> None:
    mode = "DRY RUN " if result.dry_run else ""
    print(f"{mode}Deployment complete: s3://{bucket}")
    print(f"  uploaded={len(result.uploaded)}")
    print(f"  unchanged={len(result.skipped)}")
    print(f"  deleted={len(result.deleted)}")
    if result.invalidation is not None:
        paths = " ".join(result.invalidation.paths) or "(none)"
        print(f"  invalidated={paths}")
        for warning in result.invalidation.warnings:
            logger.warning("%s", warning)
    if result.invalidation_status is not None:
        print(f"  invalidation_id={result.invalidation_status.invalidation_id}")
        print(f"  invalidation_status={result.invalidation_status.state.value}")


def run(args: argparse.Namespace) -> int:
    region = require_aws_region()
    config = build_config(args)
    dry_run = args.dry_run or env_flag("DRY_RUN")
    if dry_run:
        logger.info("DRY RUN MODE - no files will be uploaded")

    storage = S3Storage(args.bucket, prefix=args.prefix, region=region)
    publisher = Publisher(storage, config=config)
    result = publisher.publish(
        args.build_dir,
        delete=not args.no_delete,
        dry_run=dry_run,
        distribution_id=args.distribution_id,
        wait=args.wait,
    )
    print_summary(result, args.bucket)
    if args.distribution_id is None:
        print("Next: run scripts/invalidate_cdn.py to clear the CloudFront cache")
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""
    args = parse_args(argv)
    try:
        return run(args)
    except (PublishError, ClientError, RuntimeError) as exc:
        logger.error("deploy_site failed: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
