"""
static_publish.cdn — CloudFront invalidation calls.

Only submits and tracks invalidations; which paths to invalidate is decided
by static_publish.invalidation.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import boto3
from aws_lambda_powertools import Logger
from botocore.exceptions import ClientError, WaiterError

from static_publish.exceptions import CdnError
from static_publish.models import InvalidationState, InvalidationStatus

logger = Logger(service="static-publish")

DEFAULT_WAIT_DELAY_SECONDS = 20
DEFAULT_WAIT_MAX_ATTEMPTS = 30


def _iso8601(value: Any) -> str | None:
    if isinstance(value, datetime):
        return value.astimezone(UTC).isoformat(timespec="seconds").replace("+00:00", "Z")
    return str(value) if value else None


def _parse_state(raw: str) -> InvalidationState:
    if raw.replace("_", "").lower() == "completed":
        return InvalidationState.COMPLETED
    return InvalidationState.IN_PROGRESS


def _to_status(invalidation: dict[str, Any]) -> InvalidationStatus:
    batch = invalidation.get("InvalidationBatch", {})
    items = batch.get("Paths", {}).get("Items", [])
    return InvalidationStatus(
        invalidation_id=invalidation["Id"],
        state=_parse_state(str(invalidation.get("Status", ""))),
        paths=tuple(items),
        create_time=_iso8601(invalidation.get("CreateTime")),
    )


class CloudFrontCdn:
    def __init__(self, *, cloudfront_client: Any = None) -> None:
        # CloudFront is a global service; the region only picks the endpoint.
        self._cloudfront: Any = cloudfront_client or boto3.client(
            "cloudfront", region_name=os.environ.get("AWS_REGION", "us-east-1")
        )

    def create_invalidation(
        self, distribution_id: str, paths: Sequence[str]
    ) -> InvalidationStatus:
        if not paths:
            raise CdnError(distribution_id=distribution_id, message="no paths to invalidate")
        try:
            response = self._cloudfront.create_invalidation(
                DistributionId=distribution_id,
                InvalidationBatch={
                    "Paths": {"Quantity": len(paths), "Items": list(paths)},
                    "CallerReference": f"static-publish-{uuid4()}",
                },
            )
        except ClientError as exc:
            raise CdnError(distribution_id=distribution_id, message=str(exc)) from exc
        status = _to_status(response["Invalidation"])
        logger.info(
            "Invalidation created",
            distribution_id=distribution_id,
            invalidation_id=status.invalidation_id,
            status=status.state.value,
            paths=list(paths),
        )
        return status

    def get_invalidation_status(
        self, distribution_id: str, invalidation_id: str
    ) -> InvalidationStatus:
        try:
            response = self._cloudfront.get_invalidation(
                DistributionId=distribution_id, Id=invalidation_id
            )
        except ClientError as exc:
            raise CdnError(distribution_id=distribution_id, message=str(exc)) from exc
        return _to_status(response["Invalidation"])

    def wait_for_completion(
        self,
        distribution_id: str,
        invalidation_id: str,
        *,
        delay: int = DEFAULT_WAIT_DELAY_SECONDS,
        max_attempts: int = DEFAULT_WAIT_MAX_ATTEMPTS,
    ) -> InvalidationStatus:
        waiter = self._cloudfront.get_waiter("invalidation_completed")
        try:
            waiter.wait(
                DistributionId=distribution_id,
                Id=invalidation_id,
                WaiterConfig={"Delay": delay, "MaxAttempts": max_attempts},
            )
        except WaiterError as exc:
            raise CdnError(
                distribution_id=distribution_id,
                message=f"invalidation {invalidation_id} did not complete: {exc}",
            ) from exc
        return self.get_invalidation_status(distribution_id, invalidation_id)
