"""
static_publish.classifier — Assign a cache tier to every manifest path.

Rules, first match wins:
    1. final segment matches a hashed-asset glob   -> IMMUTABLE
    2. media extension (case-insensitive)          -> MEDIA
    3. path is exactly the entry filename          -> ENTRY_POINT
    4. any other .html                             -> SECONDARY_HTML
    5. anything else                               -> GENERIC_STATIC

Rule 1 and rule 3 can both match a root file such as a hashed "index" page
when the globs are widened. PlannerConfig.entry_precedence decides the
outcome; the default keeps the entry point uncached.
"""

from __future__ import annotations

from fnmatch import fnmatchcase

from static_publish.exceptions import AmbiguousClassificationError, InvalidPathError
from static_publish.models import (
    DEFAULT_CONFIG,
    AssetRecord,
    CacheTier,
    EntryPrecedence,
    PlannerConfig,
)


def normalize_path(path: str) -> str:
    """Return a forward-slash path relative to the publication root.

    Backslashes become slashes, leading "/" and "./" are dropped and empty or
    "." segments collapse. ".." is rejected: nothing may escape the root.
    """
    segments: list[str] = []
    for segment in path.replace("\\", "/").split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            raise InvalidPathError(path=path, reason="parent directory segments are not allowed")
        segments.append(segment)
    if not segments:
        raise InvalidPathError(path=path, reason="path is empty")
    return "/".join(segments)


def cdn_path(path: str) -> str:
    """Manifest path -> CDN path ("index.html" -> "/index.html")."""
    return "/" + normalize_path(path)


def _matching_hash_glob(filename: str, config: PlannerConfig) -> str | None:
    for pattern in config.hash_pattern_globs:
        if fnmatchcase(filename, pattern):
            return pattern
    return None


def _extension(filename: str) -> str:
    _, dot, ext = filename.rpartition(".")
    return ext.lower() if dot else ""


def classify(path: str, config: PlannerConfig = DEFAULT_CONFIG) -> CacheTier:
    normalised = normalize_path(path)
    filename = normalised.rsplit("/", 1)[-1]
    is_entry = normalised == config.entry_filename

    hash_glob = _matching_hash_glob(filename, config)
    if hash_glob is not None:
        if not is_entry or config.entry_precedence is EntryPrecedence.HASHED_ASSET:
            return CacheTier.IMMUTABLE
        if config.entry_precedence is EntryPrecedence.STRICT:
            raise AmbiguousClassificationError(path=normalised, pattern=hash_glob)
        return CacheTier.ENTRY_POINT

    if _extension(filename) in config.media_extensions:
        return CacheTier.MEDIA
    if is_entry:
        return CacheTier.ENTRY_POINT
    if _extension(filename) == "html":
        return CacheTier.SECONDARY_HTML
    return CacheTier.GENERIC_STATIC


def make_record(
    path: str,
    *,
    size_bytes: int = 0,
    content_hash: str | None = None,
    config: PlannerConfig = DEFAULT_CONFIG,
) -> AssetRecord:
    """Normalise path and classify it once into an immutable AssetRecord."""
    normalised = normalize_path(path)
    return AssetRecord(
        path=normalised,
        tier=classify(normalised, config),
        size_bytes=size_bytes,
        content_hash=content_hash,
    )
