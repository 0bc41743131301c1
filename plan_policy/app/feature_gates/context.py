"""Caller-facing decision shapes and the per-tier gating facade."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from ..entitlements import (
    Capability,
    EntitlementEvaluator,
    QuotaKey,
    Tier,
    TierLike,
    UnknownTierError,
    get_entitlement_evaluator,
)
from .exceptions import FeatureGateError, GateErrorCode
from .quota import (
    BatchValidationResult,
    CountQuotaResult,
    ValidationOutcome,
    ValidationResult,
    bytes_to_megabytes,
    check_count_quota,
    validate_artifact,
    validate_batch,
)


def _label(evaluator: EntitlementEvaluator, tier: Optional[Tier]) -> Optional[str]:
    if tier is None:
        return None
    return evaluator.registry.definition_for(tier).display_name


@dataclass(frozen=True)
class CapabilityLockDecision:
    """Whether a lock overlay should be shown, and which tier lifts it."""

    allowed: bool
    current_tier: Tier
    required_tier: Optional[Tier]
    required_tier_label: Optional[str]
    capability: Optional[Capability] = None

    @property
    def reason(self) -> Optional[GateErrorCode]:
        return None if self.allowed else GateErrorCode.CAPABILITY_DENIED

    def to_error(self) -> Optional[FeatureGateError]:
        if self.allowed:
            return None
        if self.required_tier_label:
            message = f"This feature is available from the {self.required_tier_label} plan."
        else:
            message = "This feature is not available on any plan."
        detail = {"requiredPlan": self.required_tier.value if self.required_tier else None}
        if self.capability is not None:
            detail["capability"] = self.capability.value
        return FeatureGateError(
            code=GateErrorCode.CAPABILITY_DENIED,
            message=message,
            current_tier=self.current_tier,
            upgrade_tier=self.required_tier,
            detail=detail,
        )


@dataclass(frozen=True)
class QuotaDecision:
    """A storage validation result plus the figures needed to phrase it."""

    result: ValidationResult
    tier_label: str
    upgrade_tier: Optional[Tier] = None
    upgrade_tier_label: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.result.valid

    @property
    def max_file_size_mb(self) -> float:
        return bytes_to_megabytes(self.result.max_file_size_bytes)

    @property
    def max_total_file_size_mb(self) -> float:
        return bytes_to_megabytes(self.result.max_total_file_size_bytes)

    @property
    def reason(self) -> Optional[GateErrorCode]:
        if self.result.outcome is ValidationOutcome.ARTIFACT_TOO_LARGE:
            return GateErrorCode.ARTIFACT_TOO_LARGE
        if self.result.outcome is ValidationOutcome.AGGREGATE_BUDGET_EXCEEDED:
            return GateErrorCode.AGGREGATE_BUDGET_EXCEEDED
        return None

    def to_error(self) -> Optional[FeatureGateError]:
        code = self.reason
        if code is None:
            return None
        if code is GateErrorCode.ARTIFACT_TOO_LARGE:
            message = (
                f"File too large. Maximum {self.max_file_size_mb:g}MB per file"
                f" on the {self.tier_label} plan."
            )
        else:
            message = (
                f"Total size limit reached. Maximum {self.max_total_file_size_mb:g}MB"
                f" per product on the {self.tier_label} plan."
            )
        return FeatureGateError(
            code=code,
            message=message,
            current_tier=self.result.tier,
            upgrade_tier=self.upgrade_tier,
            detail={
                "observedBytes": self.result.observed_bytes,
                "limitBytes": self.result.limit_bytes,
            },
        )


@dataclass(frozen=True)
class BatchQuotaDecision:
    """Per-item quota decisions for an incrementally validated batch."""

    batch: BatchValidationResult
    decisions: Tuple[QuotaDecision, ...]

    @property
    def accepted_indexes(self) -> Tuple[int, ...]:
        return self.batch.accepted_indexes

    @property
    def rejected(self) -> Tuple[QuotaDecision, ...]:
        return tuple(d for d in self.decisions if not d.allowed)


@dataclass(frozen=True)
class CountQuotaDecision:
    """A count quota check plus the tier that would accommodate the request."""

    result: CountQuotaResult
    tier_label: str
    upgrade_tier: Optional[Tier] = None
    upgrade_tier_label: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.result.allowed

    @property
    def reason(self) -> Optional[GateErrorCode]:
        return None if self.allowed else GateErrorCode.COUNT_QUOTA_EXCEEDED

    def to_error(self) -> Optional[FeatureGateError]:
        if self.allowed:
            return None
        return FeatureGateError(
            code=GateErrorCode.COUNT_QUOTA_EXCEEDED,
            message=(
                f"Limit of {self.result.limit} reached for {self.result.quota.value}"
                f" on the {self.tier_label} plan."
            ),
            current_tier=self.result.tier,
            upgrade_tier=self.upgrade_tier,
            detail={
                "quota": self.result.quota.value,
                "limit": self.result.limit,
                "currentCount": self.result.current_count,
            },
        )


class EntitlementContext:
    """Facade exposing gating decisions for one caller-supplied tier."""

    def __init__(self, tier: TierLike, evaluator: Optional[EntitlementEvaluator] = None) -> None:
        self._evaluator = evaluator or get_entitlement_evaluator()
        self.tier = self._evaluator.resolve_tier(tier)

    @property
    def tier_label(self) -> str:
        return self._evaluator.definition_for(self.tier).display_name

    def has(self, capability: Capability) -> bool:
        return self._evaluator.has_capability(self.tier, capability)

    def limit(self, quota: QuotaKey) -> int:
        return self._evaluator.numeric_limit(self.tier, quota)

    def lock(self, required_tier: TierLike) -> CapabilityLockDecision:
        """Decision for an overlay that requires at least ``required_tier``."""

        allowed = self._evaluator.meets_requirement(self.tier, required_tier)
        try:
            required: Optional[Tier] = Tier.parse(required_tier)
        except UnknownTierError:
            required = None
        return CapabilityLockDecision(
            allowed=allowed,
            current_tier=self.tier,
            required_tier=required,
            required_tier_label=_label(self._evaluator, required),
        )

    def lock_capability(self, capability: Capability) -> CapabilityLockDecision:
        """Decision for an overlay guarding ``capability``."""

        required = self._evaluator.minimum_tier_for(capability)
        return CapabilityLockDecision(
            allowed=self.has(capability),
            current_tier=self.tier,
            required_tier=required,
            required_tier_label=_label(self._evaluator, required),
            capability=Capability(capability),
        )

    def validate_upload(self, artifact_bytes: int, current_aggregate_bytes: int = 0) -> QuotaDecision:
        result = validate_artifact(
            self.tier, artifact_bytes, current_aggregate_bytes, evaluator=self._evaluator
        )
        return self._quota_decision(result)

    def validate_uploads(
        self, artifact_sizes: Iterable[int], starting_aggregate_bytes: int = 0
    ) -> BatchQuotaDecision:
        batch = validate_batch(
            self.tier, artifact_sizes, starting_aggregate_bytes, evaluator=self._evaluator
        )
        return BatchQuotaDecision(
            batch=batch,
            decisions=tuple(self._quota_decision(result) for result in batch.results),
        )

    def check_count(self, quota: QuotaKey, current_count: int, requested: int = 1) -> CountQuotaDecision:
        result = check_count_quota(
            self.tier, quota, current_count, requested, evaluator=self._evaluator
        )
        upgrade = None
        if not result.allowed:
            upgrade = self._evaluator.upgrade_target_for_quota(
                self.tier, result.quota, result.projected_count
            )
        return CountQuotaDecision(
            result=result,
            tier_label=self.tier_label,
            upgrade_tier=upgrade,
            upgrade_tier_label=_label(self._evaluator, upgrade),
        )

    def _quota_decision(self, result: ValidationResult) -> QuotaDecision:
        upgrade = None
        quota = result.breached_quota
        if quota is not None and result.observed_bytes is not None:
            upgrade = self._evaluator.upgrade_target_for_quota(self.tier, quota, result.observed_bytes)
        return QuotaDecision(
            result=result,
            tier_label=self.tier_label,
            upgrade_tier=upgrade,
            upgrade_tier_label=_label(self._evaluator, upgrade),
        )
