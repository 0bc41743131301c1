"""Entitlement evaluation on top of the published tier registry."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Union

from .catalog import TierRegistry, get_registry
from .models import Capability, LimitSet, QuotaKey, Tier, TierDefinition, UnknownTierError

logger = logging.getLogger(__name__)

TierLike = Union[Tier, str, None]


class PlanChange(str, Enum):
    """Direction of a move between two tiers."""

    UPGRADE = "upgrade"
    DOWNGRADE = "downgrade"
    UNCHANGED = "unchanged"


class EntitlementEvaluator:
    """Answers capability, quota and tier-ordering questions for a tier.

    Unrecognized tier identifiers never raise out of the evaluator: they are
    replaced by the registry's most restrictive tier, so a bad session value
    degrades to no extra privileges.
    """

    def __init__(
        self,
        registry: Optional[TierRegistry] = None,
        *,
        warn_on_unknown_tier: bool = True,
    ) -> None:
        self._registry = registry
        self._warn_on_unknown_tier = warn_on_unknown_tier

    @property
    def registry(self) -> TierRegistry:
        if self._registry is not None:
            return self._registry
        return get_registry()

    @property
    def warn_on_unknown_tier(self) -> bool:
        return self._warn_on_unknown_tier

    def resolve_tier(self, tier: TierLike, *, registry: Optional[TierRegistry] = None) -> Tier:
        """Return ``tier`` as a :class:`Tier`, failing safe on unknown values."""

        active = registry or self.registry
        try:
            return active.definition_for(tier).key
        except UnknownTierError:
            fallback = active.most_restrictive()
            if self._warn_on_unknown_tier:
                logger.warning(
                    "Unknown tier %r; applying %s limits", tier, fallback.value
                )
            return fallback

    def definition_for(self, tier: TierLike) -> TierDefinition:
        active = self.registry
        return active.definition_for(self.resolve_tier(tier, registry=active))

    def limits_for(self, tier: TierLike) -> LimitSet:
        return self.definition_for(tier).limits

    def has_capability(self, tier: TierLike, capability: Capability) -> bool:
        return self.limits_for(tier).has(capability)

    def numeric_limit(self, tier: TierLike, quota_key: QuotaKey) -> int:
        return self.limits_for(tier).quota(quota_key)

    def meets_requirement(self, current_tier: TierLike, required_tier: TierLike) -> bool:
        """Return whether ``current_tier`` is at least as capable as ``required_tier``."""

        active = self.registry
        try:
            required = Tier.parse(required_tier)
        except UnknownTierError:
            logger.warning("Unknown required tier %r; denying access", required_tier)
            return False
        current = self.resolve_tier(current_tier, registry=active)
        return active.ordinal(current) >= active.ordinal(required)

    def minimum_tier_for(self, capability: Capability) -> Optional[Tier]:
        return self.registry.minimum_tier_for(capability)

    def next_tier(self, tier: TierLike) -> Optional[Tier]:
        active = self.registry
        return active.next_tier(self.resolve_tier(tier, registry=active))

    def upgrade_target_for_capability(self, tier: TierLike, capability: Capability) -> Optional[Tier]:
        """Return the lowest tier above ``tier`` granting ``capability``."""

        active = self.registry
        current = self.resolve_tier(tier, registry=active)
        candidate = active.minimum_tier_for(capability)
        if candidate is None or active.ordinal(candidate) <= active.ordinal(current):
            return None
        return candidate

    def upgrade_target_for_quota(
        self, tier: TierLike, quota_key: QuotaKey, required: int
    ) -> Optional[Tier]:
        """Return the lowest tier above ``tier`` whose quota accommodates ``required``."""

        active = self.registry
        current = self.resolve_tier(tier, registry=active)
        candidate = active.minimum_tier_for_quota(quota_key, required)
        if candidate is None or active.ordinal(candidate) <= active.ordinal(current):
            return None
        return candidate

    def plan_change(self, current_tier: TierLike, target_tier: TierLike) -> PlanChange:
        """Classify a move from ``current_tier`` to ``target_tier``."""

        active = self.registry
        target = Tier.parse(target_tier)
        current = self.resolve_tier(current_tier, registry=active)
        delta = active.ordinal(target) - active.ordinal(current)
        if delta > 0:
            return PlanChange.UPGRADE
        if delta < 0:
            return PlanChange.DOWNGRADE
        return PlanChange.UNCHANGED


_evaluator: EntitlementEvaluator = EntitlementEvaluator()


def configure_entitlement_evaluator(evaluator: EntitlementEvaluator) -> None:
    """Register the process-wide evaluator used by the feature gates."""

    global _evaluator

    _evaluator = evaluator


def get_entitlement_evaluator() -> EntitlementEvaluator:
    """Return the process-wide evaluator; it reads whichever registry is published."""

    return _evaluator
