"""
static_publish.planner — Turn a classified manifest into a PublicationPlan.

Ordering guarantee: batches are emitted in ascending CacheTier order, so the
entry point is always uploaded last. By the time fresh HTML becomes visible,
every hashed asset it can reference is already in the bucket.

Deletions are computed only from a supplied remote listing. Without one the
plan never deletes anything. Remote keys are used verbatim (apart from a
leading "/"): rewriting them would target objects that do not exist.
"""

from __future__ import annotations

from collections.abc import Iterable

from aws_lambda_powertools import Logger

from static_publish.classifier import classify
from static_publish.exceptions import (
    DuplicateAssetError,
    EmptyManifestError,
    MisclassifiedAssetError,
    MissingEntryPointError,
)
from static_publish.models import (
    DEFAULT_CONFIG,
    AssetRecord,
    CacheTier,
    PlannerConfig,
    PublicationPlan,
    UploadBatch,
)

logger = Logger(service="static-publish")


def _strip_leading_slash(key: str) -> str:
    return key[1:] if key.startswith("/") else key


def partition_by_tier(manifest: Iterable[AssetRecord]) -> dict[CacheTier, tuple[AssetRecord, ...]]:
    """Group records by tier; each group sorted by path, tiers in upload order."""
    buckets: dict[CacheTier, list[AssetRecord]] = {tier: [] for tier in CacheTier}
    for record in manifest:
        buckets[record.tier].append(record)
    return {
        tier: tuple(sorted(records, key=lambda r: r.path))
        for tier, records in sorted(buckets.items())
        if records
    }


def plan(
    manifest: Iterable[AssetRecord],
    previous_remote_listing: Iterable[str] | None = None,
    config: PlannerConfig = DEFAULT_CONFIG,
) -> PublicationPlan:
    records = list(manifest)
    if not records:
        raise EmptyManifestError()

    seen: set[str] = set()
    for record in records:
        if record.path in seen:
            raise DuplicateAssetError(path=record.path)
        seen.add(record.path)
        expected = classify(record.path, config)
        if expected is not record.tier:
            raise MisclassifiedAssetError(path=record.path, tier=record.tier, expected=expected)

    groups = partition_by_tier(records)
    if CacheTier.ENTRY_POINT not in groups:
        raise MissingEntryPointError(entry_filename=config.entry_filename)

    batches = tuple(
        UploadBatch(tier=tier, records=group, cache_control=config.cache_control_for(tier))
        for tier, group in groups.items()
    )

    deletions: frozenset[str] = frozenset()
    if previous_remote_listing is not None:
        remote = {_strip_leading_slash(key) for key in previous_remote_listing}
        deletions = frozenset(remote - seen)

    logger.info(
        "Publication plan computed",
        files=len(records),
        batches={batch.tier.name: len(batch.records) for batch in batches},
        deletions=len(deletions),
    )
    return PublicationPlan(upload_batches=batches, deletions=deletions)
