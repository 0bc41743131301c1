"""Storage and count quota validation for feature gating."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

from ..entitlements import (
    BYTES_PER_MEGABYTE,
    EntitlementEvaluator,
    QuotaKey,
    Tier,
    TierLike,
    get_entitlement_evaluator,
)

logger = logging.getLogger(__name__)


class ValidationOutcome(str, Enum):
    """Tag describing which ceiling, if any, an artifact breached."""

    VALID = "valid"
    ARTIFACT_TOO_LARGE = "artifact_too_large"
    AGGREGATE_BUDGET_EXCEEDED = "aggregate_budget_exceeded"


def megabytes_to_bytes(megabytes: float) -> int:
    """Convert a human-entered megabyte figure to bytes (1 MB = 1024 * 1024 bytes)."""

    if megabytes < 0:
        raise ValueError("megabytes must be >= 0")
    return int(megabytes * BYTES_PER_MEGABYTE)


def bytes_to_megabytes(size_bytes: int) -> float:
    return size_bytes / BYTES_PER_MEGABYTE


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one artifact against a tier's storage ceilings.

    ``observed_bytes`` and ``limit_bytes`` describe the breached ceiling: the
    artifact size and per-file ceiling for ``ARTIFACT_TOO_LARGE``, the projected
    total and aggregate ceiling for ``AGGREGATE_BUDGET_EXCEEDED``. Both are
    ``None`` for valid artifacts.
    """

    outcome: ValidationOutcome
    tier: Tier
    artifact_bytes: int
    current_aggregate_bytes: int
    projected_aggregate_bytes: int
    max_file_size_bytes: int
    max_total_file_size_bytes: int
    observed_bytes: Optional[int] = None
    limit_bytes: Optional[int] = None

    @property
    def valid(self) -> bool:
        return self.outcome is ValidationOutcome.VALID

    @property
    def breached_quota(self) -> Optional[QuotaKey]:
        if self.outcome is ValidationOutcome.ARTIFACT_TOO_LARGE:
            return QuotaKey.MAX_FILE_SIZE_PER_FILE
        if self.outcome is ValidationOutcome.AGGREGATE_BUDGET_EXCEEDED:
            return QuotaKey.MAX_TOTAL_FILE_SIZE
        return None

    def to_dict(self) -> Dict[str, object]:
        """Serialize the result for logging or telemetry."""

        return {
            "outcome": self.outcome.value,
            "tier": self.tier.value,
            "artifact_bytes": self.artifact_bytes,
            "current_aggregate_bytes": self.current_aggregate_bytes,
            "projected_aggregate_bytes": self.projected_aggregate_bytes,
            "max_file_size_bytes": self.max_file_size_bytes,
            "max_total_file_size_bytes": self.max_total_file_size_bytes,
            "observed_bytes": self.observed_bytes,
            "limit_bytes": self.limit_bytes,
        }


@dataclass(frozen=True)
class BatchValidationResult:
    """Per-item results of an incremental batch validation."""

    tier: Tier
    starting_aggregate_bytes: int
    final_aggregate_bytes: int
    results: Tuple[ValidationResult, ...]

    @property
    def accepted_indexes(self) -> Tuple[int, ...]:
        return tuple(i for i, result in enumerate(self.results) if result.valid)

    @property
    def rejected_indexes(self) -> Tuple[int, ...]:
        return tuple(i for i, result in enumerate(self.results) if not result.valid)

    @property
    def accepted_bytes(self) -> int:
        return self.final_aggregate_bytes - self.starting_aggregate_bytes

    @property
    def all_valid(self) -> bool:
        return not self.rejected_indexes


@dataclass(frozen=True)
class CountQuotaResult:
    """Outcome of checking a count quota such as links or products."""

    tier: Tier
    quota: QuotaKey
    limit: int
    current_count: int
    requested: int

    @property
    def projected_count(self) -> int:
        return self.current_count + self.requested

    @property
    def allowed(self) -> bool:
        return self.projected_count <= self.limit

    @property
    def remaining(self) -> int:
        return max(self.limit - self.current_count, 0)


def _require_non_negative(name: str, value: int) -> None:
    if value < 0:
        raise ValueError(f"{name} must be >= 0")


def validate_artifact(
    tier: TierLike,
    artifact_bytes: int,
    current_aggregate_bytes: int = 0,
    *,
    evaluator: Optional[EntitlementEvaluator] = None,
) -> ValidationResult:
    """Check one artifact against the tier's per-file and aggregate ceilings.

    The per-file ceiling is checked first, so an artifact breaching both is
    reported as ``ARTIFACT_TOO_LARGE``. Sizes equal to a ceiling are accepted.
    """

    _require_non_negative("artifact_bytes", artifact_bytes)
    _require_non_negative("current_aggregate_bytes", current_aggregate_bytes)

    evaluator = evaluator or get_entitlement_evaluator()
    definition = evaluator.definition_for(tier)
    limits = definition.limits
    projected = current_aggregate_bytes + artifact_bytes

    outcome = ValidationOutcome.VALID
    observed: Optional[int] = None
    limit: Optional[int] = None
    if artifact_bytes > limits.max_file_size_bytes:
        outcome = ValidationOutcome.ARTIFACT_TOO_LARGE
        observed, limit = artifact_bytes, limits.max_file_size_bytes
    elif projected > limits.max_total_file_size_bytes:
        outcome = ValidationOutcome.AGGREGATE_BUDGET_EXCEEDED
        observed, limit = projected, limits.max_total_file_size_bytes

    result = ValidationResult(
        outcome=outcome,
        tier=definition.key,
        artifact_bytes=artifact_bytes,
        current_aggregate_bytes=current_aggregate_bytes,
        projected_aggregate_bytes=projected,
        max_file_size_bytes=limits.max_file_size_bytes,
        max_total_file_size_bytes=limits.max_total_file_size_bytes,
        observed_bytes=observed,
        limit_bytes=limit,
    )
    logger.debug("Artifact validation %s", result.to_dict())
    return result


def validate_batch(
    tier: TierLike,
    artifact_sizes: Iterable[int],
    starting_aggregate_bytes: int = 0,
    *,
    evaluator: Optional[EntitlementEvaluator] = None,
) -> BatchValidationResult:
    """Validate artifacts in the given order against a running aggregate.

    Accepted artifacts are added to the aggregate before the next one is
    checked; rejected artifacts are left out of it. The accept/reject partition
    therefore depends on the order of ``artifact_sizes``.
    """

    _require_non_negative("starting_aggregate_bytes", starting_aggregate_bytes)

    evaluator = evaluator or get_entitlement_evaluator()
    registry = evaluator.registry
    resolved = evaluator.resolve_tier(tier, registry=registry)
    pinned = EntitlementEvaluator(registry, warn_on_unknown_tier=False)

    running = starting_aggregate_bytes
    results = []
    for size in artifact_sizes:
        result = validate_artifact(resolved, size, running, evaluator=pinned)
        if result.valid:
            running = result.projected_aggregate_bytes
        results.append(result)

    return BatchValidationResult(
        tier=resolved,
        starting_aggregate_bytes=starting_aggregate_bytes,
        final_aggregate_bytes=running,
        results=tuple(results),
    )


def check_count_quota(
    tier: TierLike,
    quota: QuotaKey,
    current_count: int,
    requested: int = 1,
    *,
    evaluator: Optional[EntitlementEvaluator] = None,
) -> CountQuotaResult:
    """Check whether ``requested`` more items fit under a count quota."""

    quota = QuotaKey(quota)
    if quota.is_storage:
        raise ValueError(f"{quota.value} is a storage quota; use validate_artifact")
    _require_non_negative("current_count", current_count)
    _require_non_negative("requested", requested)

    evaluator = evaluator or get_entitlement_evaluator()
    definition = evaluator.definition_for(tier)
    return CountQuotaResult(
        tier=definition.key,
        quota=quota,
        limit=definition.limits.quota(quota),
        current_count=current_count,
        requested=requested,
    )
