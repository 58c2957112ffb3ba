"""
static_publish.exceptions — Planner and collaborator errors.

Any PublishError halts a publication run. CostWarning (see models) is advisory
and is returned, never raised.
"""

from __future__ import annotations

from static_publish.models import CacheTier


class PublishError(RuntimeError):
    """Base class for publication errors."""


class EmptyManifestError(PublishError):
    """Raised when the manifest has no files; usually the wrong build directory."""

    def __init__(self, message: str = "Manifest is empty; nothing to publish") -> None:
        super().__init__(message)


class MissingEntryPointError(PublishError):
    """Raised when no manifest record classifies as the entry point."""

    def __init__(self, *, entry_filename: str) -> None:
        self.entry_filename = entry_filename
        super().__init__(f"No {entry_filename!r} at the publication root")


class DuplicateAssetError(PublishError):
    def __init__(self, *, path: str) -> None:
        self.path = path
        super().__init__(f"Manifest lists {path!r} more than once")


class MisclassifiedAssetError(PublishError):
    """Raised when a record's tier disagrees with the planner configuration.

    Happens when records were classified under a different PlannerConfig, or
    were built by hand with an arbitrary tier.
    """

    def __init__(self, *, path: str, tier: CacheTier, expected: CacheTier) -> None:
        self.path = path
        self.tier = tier
        self.expected = expected
        super().__init__(
            f"{path!r} is marked {tier.name} but classifies as {expected.name} "
            "under the current configuration"
        )


class UnconfirmedWildcardError(PublishError):
    """Raised when /* invalidation is requested without explicit confirmation."""

    def __init__(self) -> None:
        super().__init__(
            "Wildcard (/*) invalidation requires explicit_wildcard_confirmed=True"
        )


class AmbiguousClassificationError(PublishError):
    """Raised under EntryPrecedence.STRICT when a path matches both the hash and entry rules."""

    def __init__(self, *, path: str, pattern: str) -> None:
        self.path = path
        self.pattern = pattern
        super().__init__(
            f"{path!r} is the entry file but also matches hashed-asset pattern {pattern!r}"
        )


class InvalidPathError(PublishError, ValueError):
    def __init__(self, *, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid asset path {path!r}: {reason}")


class BuildDirectoryError(PublishError):
    def __init__(self, *, build_dir: str) -> None:
        self.build_dir = build_dir
        super().__init__(f"Build directory {build_dir!r} does not exist")


class StorageError(PublishError):
    """Raised when an S3 call fails. Wraps botocore ClientError."""

    def __init__(self, *, bucket: str, key: str | None, message: str) -> None:
        self.bucket = bucket
        self.key = key
        target = f"s3://{bucket}/{key}" if key else f"s3://{bucket}"
        super().__init__(f"{target}: {message}")


class CdnError(PublishError):
    """Raised when a CloudFront call fails. Wraps botocore ClientError."""

    def __init__(self, *, distribution_id: str, message: str) -> None:
        self.distribution_id = distribution_id
        super().__init__(f"Distribution {distribution_id}: {message}")
