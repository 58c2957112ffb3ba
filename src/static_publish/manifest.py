"""
static_publish.manifest — Snapshot a build directory as AssetRecords.

Paths are made relative to the build directory and normalised here; the
walker itself never decides tiers or cache headers.
"""

from __future__ import annotations

import hashlib
import os
from pathlib import Path

from static_publish.classifier import make_record
from static_publish.exceptions import BuildDirectoryError
from static_publish.models import DEFAULT_CONFIG, AssetRecord, PlannerConfig

_CHUNK_SIZE = 1024 * 1024


def file_md5(path: Path) -> str:
    """MD5 hex of a file; matches the ETag S3 assigns to single-part uploads."""
    digest = hashlib.md5(usedforsecurity=False)
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def iter_build_files(build_dir: Path) -> list[Path]:
    """Regular files under build_dir, sorted, without following directory symlinks."""
    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(build_dir, followlinks=False):
        dirnames.sort()
        for name in sorted(filenames):
            candidate = Path(dirpath) / name
            if candidate.is_file():
                files.append(candidate)
    return files


def build_manifest(
    build_dir: str | Path,
    config: PlannerConfig = DEFAULT_CONFIG,
    *,
    include_hashes: bool = True,
) -> list[AssetRecord]:
    root = Path(build_dir)
    if not root.is_dir():
        raise BuildDirectoryError(build_dir=str(build_dir))

    records: list[AssetRecord] = []
    for file_path in iter_build_files(root):
        relative = file_path.relative_to(root).as_posix()
        records.append(
            make_record(
                relative,
                size_bytes=file_path.stat().st_size,
                content_hash=file_md5(file_path) if include_hashes else None,
                config=config,
            )
        )
    return records
