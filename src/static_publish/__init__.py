"""
static_publish — Cache-aware static site publication to S3 and CloudFront.

The planner core (classifier, planner, invalidation) is pure and performs no
I/O. storage, cdn and publisher wrap boto3 and execute what the core decides.
"""

from static_publish.classifier import classify, make_record, normalize_path
from static_publish.exceptions import (
    AmbiguousClassificationError,
    EmptyManifestError,
    MisclassifiedAssetError,
    MissingEntryPointError,
    PublishError,
    UnconfirmedWildcardError,
)
from static_publish.invalidation import select_invalidation
from static_publish.models import (
    AssetRecord,
    CacheTier,
    CostWarning,
    EntryPrecedence,
    InvalidationPolicy,
    InvalidationRequest,
    PlannerConfig,
    PublicationPlan,
)
from static_publish.planner import plan

__all__ = [
    "AmbiguousClassificationError",
    "AssetRecord",
    "CacheTier",
    "CostWarning",
    "EmptyManifestError",
    "EntryPrecedence",
    "InvalidationPolicy",
    "InvalidationRequest",
    "MisclassifiedAssetError",
    "MissingEntryPointError",
    "PlannerConfig",
    "PublicationPlan",
    "PublishError",
    "UnconfirmedWildcardError",
    "classify",
    "make_record",
    "normalize_path",
    "plan",
    "select_invalidation",
]
