"""
static_publish.invalidation — Choose the cheapest CDN invalidation.

Hashed assets are never invalidated: a content change already gives them a
new URL. By default only the entry point is invalidated. A /* invalidation
needs explicit operator confirmation on the policy.
"""

from __future__ import annotations

from collections.abc import Iterable

from aws_lambda_powertools import Logger

from static_publish.classifier import cdn_path, classify
from static_publish.exceptions import InvalidPathError, UnconfirmedWildcardError
from static_publish.models import (
    DEFAULT_CONFIG,
    WILDCARD_PATH,
    CacheTier,
    CostWarning,
    InvalidationPolicy,
    InvalidationRequest,
    PlannerConfig,
)

logger = Logger(service="static-publish")


def _cdn_target(raw: str, config: PlannerConfig) -> tuple[str, CacheTier | None]:
    """CDN path to submit and its tier, if the path names a single file.

    Paths starting with "/" are CloudFront paths and are submitted as given;
    "/" and "/docs/" are distinct cache keys. Manifest-relative paths get a
    leading "/". Paths with no file form ("/") have no tier.
    """
    if raw.startswith("/"):
        path = raw
    else:
        try:
            path = cdn_path(raw)
        except InvalidPathError:
            path = "/" + raw
    try:
        return path, classify(path, config)
    except InvalidPathError:
        return path, None


def select_invalidation(
    changed_paths: Iterable[str],
    policy: InvalidationPolicy | None = None,
    *,
    wildcard: bool = False,
    config: PlannerConfig = DEFAULT_CONFIG,
) -> InvalidationRequest:
    """Return the paths to submit for invalidation.

    Args:
        changed_paths: manifest or CDN paths that changed or were deleted.
            A literal "/*" is treated as a wildcard request.
        policy: defaults to config.invalidation_policy.
        wildcard: caller asks for /*; requires explicit_wildcard_confirmed.

    Raises:
        UnconfirmedWildcardError: wildcard requested without confirmation.
    """
    policy = policy or config.invalidation_policy
    candidates = list(changed_paths)
    if WILDCARD_PATH in candidates:
        wildcard = True

    if wildcard:
        if not policy.explicit_wildcard_confirmed:
            raise UnconfirmedWildcardError()
        logger.warning("Wildcard invalidation confirmed", paths=[WILDCARD_PATH])
        return InvalidationRequest(paths=(WILDCARD_PATH,), is_wildcard=True)

    entry: list[str] = []
    others: set[str] = set()
    for raw in candidates:
        path, tier = _cdn_target(raw, config)
        if tier is CacheTier.ENTRY_POINT:
            if path not in entry:
                entry.append(path)
        elif not policy.entry_only and tier is not CacheTier.IMMUTABLE:
            others.add(path)

    paths = tuple(entry) + tuple(sorted(others))

    warnings: tuple[CostWarning, ...] = ()
    limit = policy.max_discrete_paths
    if limit is not None and len(paths) > limit:
        warning = CostWarning(path_count=len(paths), max_discrete_paths=limit)
        logger.warning(str(warning), path_count=len(paths), max_discrete_paths=limit)
        warnings = (warning,)

    logger.info(
        "Invalidation selected",
        candidates=len(candidates),
        selected=len(paths),
        entry_only=policy.entry_only,
    )
    return InvalidationRequest(paths=paths, warnings=warnings)
