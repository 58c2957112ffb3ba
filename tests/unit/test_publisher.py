"""
tests/unit/test_publisher.py — End-to-end publication runs.

Upload ordering is checked with a recording fake storage; change detection,
deletion and dry-run against moto S3. CloudFront is a MagicMock.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import boto3
import pytest
from moto import mock_aws
from static_publish.classifier import make_record
from static_publish.exceptions import MissingEntryPointError, StorageError
from static_publish.models import (
    InvalidationPolicy,
    InvalidationState,
    InvalidationStatus,
    PublicationPlan,
    RemoteObject,
)
from static_publish.planner import plan
from static_publish.publisher import Publisher, detect_changes, is_unchanged
from static_publish.storage import S3Storage

REGION = "eu-west-2"
BUCKET = "mysite-prod"
DISTRIBUTION_ID = "E1234567890ABC"


@pytest.fixture(autouse=True)
def aws_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AWS_REGION", REGION)
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")


@pytest.fixture
def site(tmp_path: Path) -> Path:
    root = tmp_path / "dist"
    (root / "assets").mkdir(parents=True)
    (root / "img").mkdir()
    (root / "index.html").write_text("<script src=/assets/app.3f9a1c.js>", encoding="utf-8")
    (root / "about.html").write_text("<h1>About</h1>", encoding="utf-8")
    (root / "assets" / "app.3f9a1c.js").write_text("console.log(1)", encoding="utf-8")
    (root / "img" / "logo.png").write_bytes(b"\x89PNG")
    (root / "robots.txt").write_text("User-agent: *", encoding="utf-8")
    return root


class RecordingStorage:
    """Stands in for S3Storage and records calls in order."""

    def __init__(self, remote: dict[str, RemoteObject] | None = None) -> None:
        self.bucket = BUCKET
        self.prefix = ""
        self.remote = remote or {}
        self.calls: list[tuple[str, str, str | None]] = []

    def key_for(self, path: str) -> str:
        return path

    def listed_key_for(self, path: str) -> str:
        return path

    def list_remote_objects(self) -> dict[str, RemoteObject]:
        return dict(self.remote)

    def put_object(self, path: str, body: bytes, cache_control: str) -> None:
        self.calls.append(("put", path, cache_control))

    def delete_objects(self, paths: Any) -> list[str]:
        for path in paths:
            self.calls.append(("delete", path, None))
        return list(paths)


def _make_bucket() -> Any:
    s3 = boto3.client("s3", region_name=REGION)
    s3.create_bucket(Bucket=BUCKET, CreateBucketConfiguration={"LocationConstraint": REGION})
    return s3


def _keys(s3: Any) -> list[str]:
    return sorted(o["Key"] for o in s3.list_objects_v2(Bucket=BUCKET).get("Contents", []))


def _cdn() -> MagicMock:
    cdn = MagicMock()
    cdn.create_invalidation.return_value = InvalidationStatus(
        invalidation_id="I1", state=InvalidationState.IN_PROGRESS
    )
    cdn.wait_for_completion.return_value = InvalidationStatus(
        invalidation_id="I1", state=InvalidationState.COMPLETED
    )
    return cdn


# ---------------------------------------------------------------------------
# Change detection
# ---------------------------------------------------------------------------


class TestChangeDetection:
    def test_matching_md5_and_size_is_unchanged(self) -> None:
        record = make_record("index.html", size_bytes=3, content_hash="abc")
        assert is_unchanged(record, RemoteObject(key="index.html", size=3, etag='"abc"'))

    def test_different_md5_is_changed(self) -> None:
        record = make_record("index.html", size_bytes=3, content_hash="abc")
        assert not is_unchanged(record, RemoteObject(key="index.html", size=3, etag='"def"'))

    def test_missing_remote_or_hash_is_changed(self) -> None:
        record = make_record("index.html", size_bytes=3)
        assert not is_unchanged(record, RemoteObject(key="index.html", size=3, etag='"abc"'))
        assert not is_unchanged(make_record("a.txt", content_hash="x"), None)

    def test_detect_changes_includes_deletions(self) -> None:
        manifest = [
            make_record("index.html", size_bytes=1, content_hash="aa"),
            make_record("about.html", size_bytes=1, content_hash="bb"),
        ]
        remote = {
            "index.html": RemoteObject("index.html", 1, '"aa"'),
            "old.html": RemoteObject("old.html", 1, '"cc"'),
        }
        changes = detect_changes(plan(manifest, set(remote)), remote)
        assert [r.path for r in changes.upload] == ["about.html"]
        assert [r.path for r in changes.unchanged] == ["index.html"]
        assert changes.changed_paths == ("about.html", "old.html")


# ---------------------------------------------------------------------------
# Ordering with a recording storage
# ---------------------------------------------------------------------------


def test_uploads_follow_tier_order_and_delete_last(site: Path) -> None:
    storage = RecordingStorage(remote={"stale.js": RemoteObject("stale.js", 1, '"x"')})
    Publisher(storage).publish(site)  # type: ignore[arg-type]

    assert storage.calls == [
        ("put", "assets/app.3f9a1c.js", "max-age=31536000, immutable"),
        ("put", "img/logo.png", "max-age=604800"),
        ("put", "robots.txt", "max-age=86400"),
        ("put", "about.html", "max-age=300"),
        ("put", "index.html", "no-cache, no-store, must-revalidate"),
        ("delete", "stale.js", None),
    ]


def test_no_delete_keeps_stale_objects(site: Path) -> None:
    storage = RecordingStorage(remote={"stale.js": RemoteObject("stale.js", 1, '"x"')})
    result = Publisher(storage).publish(site, delete=False)  # type: ignore[arg-type]
    assert result.deleted == ()
    assert all(call[0] == "put" for call in storage.calls)


def test_missing_entry_point_uploads_nothing(site: Path) -> None:
    (site / "index.html").unlink()
    storage = RecordingStorage()
    with pytest.raises(MissingEntryPointError):
        Publisher(storage).publish(site)  # type: ignore[arg-type]
    assert storage.calls == []


def test_oversized_file_fails_before_any_upload(
    site: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr("static_publish.publisher.MAX_SINGLE_PUT_BYTES", 20)
    storage = RecordingStorage()
    with pytest.raises(StorageError, match="single PUT limit") as exc_info:
        Publisher(storage).publish(site)  # type: ignore[arg-type]
    assert exc_info.value.key == "index.html"
    assert storage.calls == []


def test_non_canonical_remote_key_deleted_and_invalidated_verbatim(site: Path) -> None:
    storage = RecordingStorage(
        remote={"legacy/../old.txt": RemoteObject("legacy/../old.txt", 1, '"x"')}
    )
    cdn = _cdn()
    result = Publisher(storage, cdn=cdn).publish(  # type: ignore[arg-type]
        site, distribution_id=DISTRIBUTION_ID, policy=InvalidationPolicy(entry_only=False)
    )

    assert result.deleted == ("legacy/../old.txt",)
    assert storage.calls[-1] == ("delete", "legacy/../old.txt", None)
    _, paths = cdn.create_invalidation.call_args.args
    assert "/legacy/../old.txt" in paths


# ---------------------------------------------------------------------------
# moto S3 runs
# ---------------------------------------------------------------------------


@mock_aws
def test_first_publish_uploads_everything(site: Path) -> None:
    s3 = _make_bucket()
    result = Publisher(S3Storage(BUCKET)).publish(site)

    assert isinstance(result.plan, PublicationPlan)
    assert result.uploaded[-1] == "index.html"
    assert result.skipped == ()
    assert _keys(s3) == [
        "about.html",
        "assets/app.3f9a1c.js",
        "img/logo.png",
        "index.html",
        "robots.txt",
    ]
    head = s3.head_object(Bucket=BUCKET, Key="index.html")
    assert head["CacheControl"] == "no-cache, no-store, must-revalidate"


@mock_aws
def test_second_publish_skips_unchanged_and_deletes_stale(site: Path) -> None:
    s3 = _make_bucket()
    s3.put_object(Bucket=BUCKET, Key="assets/app.0000.js", Body=b"old")
    publisher = Publisher(S3Storage(BUCKET))
    publisher.publish(site)

    (site / "about.html").write_text("<h1>About us</h1>", encoding="utf-8")
    result = publisher.publish(site)

    assert result.uploaded == ("about.html",)
    assert "index.html" in result.skipped
    assert result.deleted == ()
    assert "assets/app.0000.js" not in _keys(s3)


@mock_aws
def test_dry_run_changes_nothing(site: Path) -> None:
    s3 = _make_bucket()
    s3.put_object(Bucket=BUCKET, Key="stale.html", Body=b"old")
    cdn = _cdn()

    result = Publisher(S3Storage(BUCKET), cdn=cdn).publish(
        site, dry_run=True, distribution_id=DISTRIBUTION_ID
    )

    assert result.dry_run is True
    assert result.deleted == ("stale.html",)
    assert len(result.uploaded) == 5
    assert _keys(s3) == ["stale.html"]
    assert result.invalidation is not None
    assert result.invalidation.paths == ("/index.html",)
    cdn.create_invalidation.assert_not_called()


# ---------------------------------------------------------------------------
# Invalidation
# ---------------------------------------------------------------------------


@mock_aws
def test_changed_entry_point_is_invalidated(site: Path) -> None:
    _make_bucket()
    cdn = _cdn()
    result = Publisher(S3Storage(BUCKET), cdn=cdn).publish(
        site, distribution_id=DISTRIBUTION_ID, wait=True
    )

    cdn.create_invalidation.assert_called_once_with(DISTRIBUTION_ID, ("/index.html",))
    cdn.wait_for_completion.assert_called_once_with(DISTRIBUTION_ID, "I1")
    assert result.invalidation_status is not None
    assert result.invalidation_status.is_complete


@mock_aws
def test_unchanged_entry_point_skips_invalidation(site: Path) -> None:
    _make_bucket()
    cdn = _cdn()
    publisher = Publisher(S3Storage(BUCKET), cdn=cdn)
    publisher.publish(site)

    (site / "about.html").write_text("changed", encoding="utf-8")
    result = publisher.publish(site, distribution_id=DISTRIBUTION_ID)

    assert result.invalidation is not None
    assert result.invalidation.is_empty
    assert result.invalidation_status is None
    cdn.create_invalidation.assert_not_called()


@mock_aws
def test_all_changed_policy_invalidates_deleted_and_html(site: Path) -> None:
    s3 = _make_bucket()
    s3.put_object(Bucket=BUCKET, Key="old.html", Body=b"old")
    cdn = _cdn()
    Publisher(S3Storage(BUCKET), cdn=cdn).publish(
        site,
        distribution_id=DISTRIBUTION_ID,
        policy=InvalidationPolicy(entry_only=False),
    )

    _, paths = cdn.create_invalidation.call_args.args
    assert paths[0] == "/index.html"
    assert "/old.html" in paths
    assert "/about.html" in paths
    assert "/assets/app.3f9a1c.js" not in paths
