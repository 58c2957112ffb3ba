"""
static_publish.publisher — Execute a PublicationPlan against S3 and CloudFront.

Order of a run:
    1. snapshot the build directory and the bucket
    2. plan (classify, order, compute deletions)
    3. upload batch by batch, entry point last; unchanged objects are skipped
    4. delete stale objects, only after every upload succeeded
    5. select and submit the invalidation, optionally waiting for it

Any PublishError stops the run where it happened; nothing is retried here.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from aws_lambda_powertools import Logger

from static_publish.cdn import CloudFrontCdn
from static_publish.exceptions import StorageError
from static_publish.invalidation import select_invalidation
from static_publish.manifest import build_manifest
from static_publish.models import (
    DEFAULT_CONFIG,
    AssetRecord,
    InvalidationPolicy,
    InvalidationRequest,
    InvalidationStatus,
    PlannerConfig,
    PublicationPlan,
    PublishResult,
    RemoteObject,
)
from static_publish.planner import plan as build_plan
from static_publish.storage import MAX_SINGLE_PUT_BYTES, S3Storage

logger = Logger(service="static-publish")


@dataclass(frozen=True)
class ChangeSet:
    upload: tuple[AssetRecord, ...]
    unchanged: tuple[AssetRecord, ...]
    deletions: tuple[str, ...]

    @property
    def changed_paths(self) -> tuple[str, ...]:
        return tuple(r.path for r in self.upload) + self.deletions


def is_unchanged(record: AssetRecord, remote: RemoteObject | None) -> bool:
    """True when the remote object already holds the same bytes."""
    if remote is None or record.content_hash is None:
        return False
    return remote.md5 == record.content_hash and remote.size == record.size_bytes


def detect_changes(plan: PublicationPlan, remote: dict[str, RemoteObject]) -> ChangeSet:
    upload: list[AssetRecord] = []
    unchanged: list[AssetRecord] = []
    for batch in plan.upload_batches:
        for record in batch.records:
            if is_unchanged(record, remote.get(record.path)):
                unchanged.append(record)
            else:
                upload.append(record)
    return ChangeSet(
        upload=tuple(upload),
        unchanged=tuple(unchanged),
        deletions=tuple(sorted(plan.deletions)),
    )


class Publisher:
    def __init__(
        self,
        storage: S3Storage,
        *,
        cdn: CloudFrontCdn | None = None,
        config: PlannerConfig = DEFAULT_CONFIG,
    ) -> None:
        self._storage = storage
        self._cdn = cdn
        self._config = config

    def publish(
        self,
        build_dir: str | Path,
        *,
        delete: bool = True,
        dry_run: bool = False,
        distribution_id: str | None = None,
        policy: InvalidationPolicy | None = None,
        wait: bool = False,
    ) -> PublishResult:
        root = Path(build_dir)
        manifest = build_manifest(root, self._config)
        remote = self._storage.list_remote_objects()
        publication_plan = build_plan(
            manifest, set(remote) if delete else None, self._config
        )
        changes = detect_changes(publication_plan, remote)

        logger.info(
            "Publishing site",
            bucket=self._storage.bucket,
            prefix=self._storage.prefix,
            build_dir=str(root),
            upload=len(changes.upload),
            unchanged=len(changes.unchanged),
            deletions=len(changes.deletions),
            dry_run=dry_run,
        )

        uploaded = self._upload(root, publication_plan, changes, dry_run=dry_run)
        deleted = self._delete(changes.deletions, dry_run=dry_run)

        invalidation: InvalidationRequest | None = None
        status: InvalidationStatus | None = None
        if distribution_id:
            invalidation = select_invalidation(
                changes.changed_paths, policy, config=self._config
            )
            status = self._invalidate(
                distribution_id, invalidation, dry_run=dry_run, wait=wait
            )

        return PublishResult(
            plan=publication_plan,
            uploaded=uploaded,
            skipped=tuple(r.path for r in changes.unchanged),
            deleted=deleted,
            invalidation=invalidation,
            invalidation_status=status,
            dry_run=dry_run,
        )

    def _upload(
        self,
        root: Path,
        publication_plan: PublicationPlan,
        changes: ChangeSet,
        *,
        dry_run: bool,
    ) -> tuple[str, ...]:
        pending = {record.path for record in changes.upload}
        for record in changes.upload:
            if record.size_bytes > MAX_SINGLE_PUT_BYTES:
                raise StorageError(
                    bucket=self._storage.bucket,
                    key=self._storage.key_for(record.path),
                    message=f"{record.size_bytes} bytes exceeds the single PUT limit "
                    f"of {MAX_SINGLE_PUT_BYTES} bytes",
                )
        uploaded: list[str] = []
        total = len(publication_plan.upload_batches)
        for position, batch in enumerate(publication_plan.upload_batches, start=1):
            records = [r for r in batch.records if r.path in pending]
            logger.info(
                f"[{position}/{total}] Uploading {batch.tier.name.lower()} files",
                tier=batch.tier.name,
                cache_control=batch.cache_control,
                files=len(records),
            )
            for record in records:
                if dry_run:
                    logger.info(
                        "(dryrun) upload",
                        key=self._storage.key_for(record.path),
                        cache_control=batch.cache_control,
                    )
                else:
                    body = (root / record.path).read_bytes()
                    self._storage.put_object(record.path, body, batch.cache_control)
                uploaded.append(record.path)
        return tuple(uploaded)

    def _delete(self, deletions: tuple[str, ...], *, dry_run: bool) -> tuple[str, ...]:
        if not deletions:
            return ()
        if dry_run:
            for path in deletions:
                logger.info("(dryrun) delete", key=self._storage.listed_key_for(path))
            return deletions
        self._storage.delete_objects(deletions)
        logger.info("Deleted stale objects", count=len(deletions))
        return deletions

    def _invalidate(
        self,
        distribution_id: str,
        request: InvalidationRequest,
        *,
        dry_run: bool,
        wait: bool,
    ) -> InvalidationStatus | None:
        if request.is_empty:
            logger.info("No invalidation needed", distribution_id=distribution_id)
            return None
        if dry_run:
            logger.info(
                "(dryrun) invalidate", distribution_id=distribution_id, paths=list(request.paths)
            )
            return None
        cdn = self._require_cdn()
        status = cdn.create_invalidation(distribution_id, request.paths)
        if wait:
            status = cdn.wait_for_completion(distribution_id, status.invalidation_id)
        return status

    def _require_cdn(self) -> Any:
        if self._cdn is None:
            self._cdn = CloudFrontCdn()
        return self._cdn
