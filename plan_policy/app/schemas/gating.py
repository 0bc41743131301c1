"""Response schemas for rendering tier catalogs and gating decisions."""
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..entitlements import Tier, TierDefinition, TierRegistry, get_registry
from ..feature_gates import (
    BatchQuotaDecision,
    CapabilityLockDecision,
    QuotaDecision,
    ValidationOutcome,
)


class TierSummaryResponse(BaseModel):
    tier: Tier
    display_name: str = Field(alias="displayName")
    price_label: Optional[str] = Field(alias="priceLabel", default=None)
    ordinal: int
    capabilities: List[str]
    max_products: int = Field(alias="maxProducts")
    max_links: int = Field(alias="maxLinks")
    max_images_per_post: int = Field(alias="maxImagesPerPost")
    max_subscription_plans: int = Field(alias="maxSubscriptionPlans")
    max_file_size_mb: float = Field(alias="maxFileSizePerFile")
    max_total_file_size_mb: float = Field(alias="maxTotalFileSize")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_definition(cls, definition: TierDefinition) -> "TierSummaryResponse":
        limits = definition.limits
        return cls(
            tier=definition.key,
            display_name=definition.display_name,
            price_label=definition.price_label,
            ordinal=definition.key.ordinal,
            capabilities=sorted(c.value for c in limits.capabilities),
            max_products=limits.max_products,
            max_links=limits.max_links,
            max_images_per_post=limits.max_images_per_post,
            max_subscription_plans=limits.max_subscription_plans,
            max_file_size_mb=limits.max_file_size_mb,
            max_total_file_size_mb=limits.max_total_file_size_mb,
        )


class TierCatalogResponse(BaseModel):
    tiers: List[TierSummaryResponse]

    @classmethod
    def from_registry(cls, registry: Optional[TierRegistry] = None) -> "TierCatalogResponse":
        active = registry or get_registry()
        return cls(tiers=[TierSummaryResponse.from_definition(d) for d in active.definitions()])


class CapabilityLockResponse(BaseModel):
    allowed: bool
    current_tier: Tier = Field(alias="currentPlan")
    required_tier: Optional[Tier] = Field(alias="requiredPlan", default=None)
    required_tier_label: Optional[str] = Field(alias="requiredPlanLabel", default=None)
    capability: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_decision(cls, decision: CapabilityLockDecision) -> "CapabilityLockResponse":
        return cls(
            allowed=decision.allowed,
            current_tier=decision.current_tier,
            required_tier=decision.required_tier,
            required_tier_label=decision.required_tier_label,
            capability=decision.capability.value if decision.capability else None,
        )


class QuotaValidationResponse(BaseModel):
    outcome: ValidationOutcome
    allowed: bool
    tier: Tier = Field(alias="currentPlan")
    tier_label: str = Field(alias="currentPlanLabel")
    artifact_bytes: int = Field(alias="artifactBytes")
    projected_aggregate_bytes: int = Field(alias="projectedAggregateBytes")
    observed_bytes: Optional[int] = Field(alias="observedBytes", default=None)
    limit_bytes: Optional[int] = Field(alias="limitBytes", default=None)
    max_file_size_mb: float = Field(alias="maxFileSizePerFile")
    max_total_file_size_mb: float = Field(alias="maxTotalFileSize")
    upgrade_tier: Optional[Tier] = Field(alias="nextPlan", default=None)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_decision(cls, decision: QuotaDecision) -> "QuotaValidationResponse":
        result = decision.result
        return cls(
            outcome=result.outcome,
            allowed=decision.allowed,
            tier=result.tier,
            tier_label=decision.tier_label,
            artifact_bytes=result.artifact_bytes,
            projected_aggregate_bytes=result.projected_aggregate_bytes,
            observed_bytes=result.observed_bytes,
            limit_bytes=result.limit_bytes,
            max_file_size_mb=decision.max_file_size_mb,
            max_total_file_size_mb=decision.max_total_file_size_mb,
            upgrade_tier=decision.upgrade_tier,
        )


class BatchValidationResponse(BaseModel):
    accepted_indexes: List[int] = Field(alias="acceptedIndexes")
    rejected_indexes: List[int] = Field(alias="rejectedIndexes")
    final_aggregate_bytes: int = Field(alias="finalAggregateBytes")
    items: List[QuotaValidationResponse]
    outcome_counts: Dict[ValidationOutcome, int] = Field(alias="outcomeCounts")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_decision(cls, decision: BatchQuotaDecision) -> "BatchValidationResponse":
        counts: Dict[ValidationOutcome, int] = {}
        for item in decision.decisions:
            counts[item.result.outcome] = counts.get(item.result.outcome, 0) + 1
        return cls(
            accepted_indexes=list(decision.batch.accepted_indexes),
            rejected_indexes=list(decision.batch.rejected_indexes),
            final_aggregate_bytes=decision.batch.final_aggregate_bytes,
            items=[QuotaValidationResponse.from_decision(item) for item in decision.decisions],
            outcome_counts=counts,
        )
