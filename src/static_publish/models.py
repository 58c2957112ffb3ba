"""
static_publish.models — Value objects for the publication planner.

Everything here is a frozen dataclass or an enum. Records are built once per
publication run from a snapshot of the build directory and never mutated.

Upload order (lowest uploads first):
    IMMUTABLE < MEDIA < GENERIC_STATIC < SECONDARY_HTML < ENTRY_POINT
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from types import MappingProxyType
from typing import Any

# ---------------------------------------------------------------------------
# Cache tiers — value is the upload position
# ---------------------------------------------------------------------------


class CacheTier(IntEnum):
    IMMUTABLE = 1
    MEDIA = 2
    GENERIC_STATIC = 3
    SECONDARY_HTML = 4
    ENTRY_POINT = 5


class EntryPrecedence(StrEnum):
    """Resolution when a path is both hashed-looking and the entry file."""

    ENTRY_POINT = "entry_point"
    HASHED_ASSET = "hashed_asset"
    STRICT = "strict"


class InvalidationState(StrEnum):
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

ONE_YEAR_SECONDS: int = 365 * 24 * 60 * 60
ONE_WEEK_SECONDS: int = 7 * 24 * 60 * 60
ONE_DAY_SECONDS: int = 24 * 60 * 60
FIVE_MINUTES_SECONDS: int = 5 * 60

DEFAULT_ENTRY_FILENAME = "index.html"
WILDCARD_PATH = "/*"

DEFAULT_HASH_PATTERN_GLOBS: tuple[str, ...] = ("*.*.js", "*.*.css", "*.*.woff", "*.*.woff2")
DEFAULT_MEDIA_EXTENSIONS: frozenset[str] = frozenset(
    {"png", "jpg", "jpeg", "gif", "svg", "webp", "ico", "mp4", "webm"}
)
DEFAULT_CACHE_DIRECTIVES: Mapping[CacheTier, str] = MappingProxyType(
    {
        CacheTier.IMMUTABLE: f"max-age={ONE_YEAR_SECONDS}, immutable",
        CacheTier.MEDIA: f"max-age={ONE_WEEK_SECONDS}",
        CacheTier.GENERIC_STATIC: f"max-age={ONE_DAY_SECONDS}",
        CacheTier.SECONDARY_HTML: f"max-age={FIVE_MINUTES_SECONDS}",
        CacheTier.ENTRY_POINT: "no-cache, no-store, must-revalidate",
    }
)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InvalidationPolicy:
    """Cost policy for CDN invalidation.

    entry_only:                 invalidate only the entry point (default).
    explicit_wildcard_confirmed: operator has approved a /* invalidation.
    max_discrete_paths:         advisory ceiling; exceeding it adds a CostWarning.
    """

    entry_only: bool = True
    explicit_wildcard_confirmed: bool = False
    max_discrete_paths: int | None = None

    def __post_init__(self) -> None:
        if self.max_discrete_paths is not None and self.max_discrete_paths < 1:
            raise ValueError("max_discrete_paths must be a positive integer when set")


@dataclass(frozen=True)
class PlannerConfig:
    entry_filename: str = DEFAULT_ENTRY_FILENAME
    hash_pattern_globs: tuple[str, ...] = DEFAULT_HASH_PATTERN_GLOBS
    media_extensions: frozenset[str] = DEFAULT_MEDIA_EXTENSIONS
    cache_directives: Mapping[CacheTier, str] = field(
        default_factory=lambda: DEFAULT_CACHE_DIRECTIVES
    )
    invalidation_policy: InvalidationPolicy = field(default_factory=InvalidationPolicy)
    entry_precedence: EntryPrecedence = EntryPrecedence.ENTRY_POINT

    def __post_init__(self) -> None:
        if not self.entry_filename or "/" in self.entry_filename:
            raise ValueError(f"entry_filename must be a bare file name: {self.entry_filename!r}")
        # Accept ".PNG" and "PNG" alike; stored lower-case without the dot.
        normalised = frozenset(ext.lower().lstrip(".") for ext in self.media_extensions)
        object.__setattr__(self, "media_extensions", normalised)
        object.__setattr__(self, "hash_pattern_globs", tuple(self.hash_pattern_globs))
        directives = dict(DEFAULT_CACHE_DIRECTIVES)
        directives.update({CacheTier(k): v for k, v in self.cache_directives.items()})
        object.__setattr__(self, "cache_directives", MappingProxyType(directives))

    def cache_control_for(self, tier: CacheTier) -> str:
        return self.cache_directives[tier]

    def with_overrides(self, **overrides: Any) -> PlannerConfig:
        return dataclasses.replace(self, **overrides)


DEFAULT_CONFIG = PlannerConfig()


# ---------------------------------------------------------------------------
# Manifest and plan
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AssetRecord:
    """One file known to the planner.

    tier is a pure function of path; build records with classifier.make_record.
    content_hash is MD5 hex so it compares directly against S3 ETags.
    """

    path: str
    tier: CacheTier
    size_bytes: int = 0
    content_hash: str | None = None


@dataclass(frozen=True)
class UploadBatch:
    tier: CacheTier
    records: tuple[AssetRecord, ...]
    cache_control: str

    @property
    def paths(self) -> tuple[str, ...]:
        return tuple(record.path for record in self.records)


@dataclass(frozen=True)
class PublicationPlan:
    """Planner output. upload_batches is strictly ascending by tier."""

    upload_batches: tuple[UploadBatch, ...]
    deletions: frozenset[str] = frozenset()

    @property
    def entry_point(self) -> AssetRecord | None:
        for batch in self.upload_batches:
            if batch.tier is CacheTier.ENTRY_POINT:
                return batch.records[0]
        return None

    @property
    def upload_paths(self) -> tuple[str, ...]:
        return tuple(path for batch in self.upload_batches for path in batch.paths)

    @property
    def total_bytes(self) -> int:
        return sum(r.size_bytes for batch in self.upload_batches for r in batch.records)


# ---------------------------------------------------------------------------
# Invalidation
# ---------------------------------------------------------------------------


class CostWarning(UserWarning):
    """Advisory: the invalidation is larger than the configured ceiling.

    Returned on InvalidationRequest.warnings; never raised by the selector.
    """

    def __init__(self, *, path_count: int, max_discrete_paths: int) -> None:
        self.path_count = path_count
        self.max_discrete_paths = max_discrete_paths
        super().__init__(
            f"Invalidation covers {path_count} paths, above the configured "
            f"maximum of {max_discrete_paths}; CloudFront bills per path"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CostWarning):
            return NotImplemented
        return (self.path_count, self.max_discrete_paths) == (
            other.path_count,
            other.max_discrete_paths,
        )

    def __hash__(self) -> int:
        return hash((self.path_count, self.max_discrete_paths))


@dataclass(frozen=True)
class InvalidationRequest:
    paths: tuple[str, ...]
    is_wildcard: bool = False
    warnings: tuple[CostWarning, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.paths


@dataclass(frozen=True)
class InvalidationStatus:
    invalidation_id: str
    state: InvalidationState
    paths: tuple[str, ...] = ()
    create_time: str | None = None  # ISO 8601 UTC

    @property
    def is_complete(self) -> bool:
        return self.state is InvalidationState.COMPLETED


# ---------------------------------------------------------------------------
# Storage listing and publish result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RemoteObject:
    key: str
    size: int
    etag: str | None = None

    @property
    def md5(self) -> str | None:
        """ETag as MD5 hex, or None for multipart uploads (ETag has a -N suffix)."""
        if not self.etag:
            return None
        value = self.etag.strip('"')
        return None if "-" in value else value.lower()


@dataclass(frozen=True)
class PublishResult:
    plan: PublicationPlan
    uploaded: tuple[str, ...]
    skipped: tuple[str, ...]
    deleted: tuple[str, ...]
    invalidation: InvalidationRequest | None = None
    invalidation_status: InvalidationStatus | None = None
    dry_run: bool = False
