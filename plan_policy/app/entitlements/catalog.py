"""Static tier catalog and the registry that serves it."""
from __future__ import annotations

import logging
from threading import RLock
from typing import Dict, Iterable, Mapping, Optional, Tuple

from .models import (
    Capability,
    LimitSet,
    QuotaKey,
    Tier,
    TierDefinition,
)

logger = logging.getLogger(__name__)


class RegistryValidationError(ValueError):
    """Raised when a tier table violates the registry invariants."""


FREE_CAPABILITIES = frozenset(
    {
        Capability.UPLOAD_POST_IMAGES,
        Capability.TWO_FACTOR_AUTH,
    }
)

STARTER_CAPABILITIES = FREE_CAPABILITIES | {
    Capability.UPLOAD_PRODUCT_IMAGES,
    Capability.UPLOAD_BACKGROUND_IMAGE,
    Capability.CUSTOMIZE_COLORS,
    Capability.CUSTOMIZE_LIKES_COLOR,
    Capability.CUSTOMIZE_BUTTON_COLORS,
    Capability.POST_WITHOUT_LINK,
    Capability.RECEIVE_DONATIONS,
    Capability.ANALYTICS,
    Capability.PRIORITY_SUPPORT,
}

PRO_CAPABILITIES = STARTER_CAPABILITIES | {
    Capability.ENABLE_SHOP,
    Capability.CHANGE_BACKGROUND_MODE,
    Capability.TOGGLE_BACKGROUND_OVERLAY,
    Capability.SHOP_ANALYTICS,
    Capability.VERIFIED_BADGE,
}

PRO_PLUS_CAPABILITIES = PRO_CAPABILITIES | {Capability.CREATE_CATEGORIES}

TIER_CATALOG: Dict[Tier, TierDefinition] = {
    Tier.FREE: TierDefinition(
        key=Tier.FREE,
        display_name="FREE",
        price_label="R$ 0,00",
        limits=LimitSet.from_megabytes(
            capabilities=FREE_CAPABILITIES,
            max_products=1,
            max_links=3,
            max_images_per_post=1,
            max_subscription_plans=1,
            max_file_size_mb=100,
            max_total_file_size_mb=300,
        ),
    ),
    Tier.STARTER: TierDefinition(
        key=Tier.STARTER,
        display_name="STARTER",
        price_label="R$ 4,99",
        limits=LimitSet.from_megabytes(
            capabilities=STARTER_CAPABILITIES,
            max_products=3,
            max_links=10,
            max_images_per_post=4,
            max_subscription_plans=2,
            max_file_size_mb=500,
            max_total_file_size_mb=1000,
        ),
    ),
    Tier.PRO: TierDefinition(
        key=Tier.PRO,
        display_name="PRO",
        price_label="R$ 29,99",
        limits=LimitSet.from_megabytes(
            capabilities=PRO_CAPABILITIES,
            max_products=20,
            max_links=20,
            max_images_per_post=10,
            max_subscription_plans=3,
            max_file_size_mb=1000,
            max_total_file_size_mb=5000,
        ),
    ),
    Tier.PRO_PLUS: TierDefinition(
        key=Tier.PRO_PLUS,
        display_name="PRO+",
        price_label="R$ 49,90",
        limits=LimitSet.from_megabytes(
            capabilities=PRO_PLUS_CAPABILITIES,
            max_products=50,
            max_links=100,
            max_images_per_post=20,
            max_subscription_plans=10,
            max_file_size_mb=2000,
            max_total_file_size_mb=10000,
        ),
    ),
}


class TierRegistry:
    """Immutable, validated mapping of tiers to their definitions.

    The constructor is the startup self-check: a table that is incomplete,
    lets a per-file ceiling exceed the aggregate ceiling, shrinks a quota on a
    higher tier, or drops a capability on a higher tier is rejected with
    :class:`RegistryValidationError`.
    """

    def __init__(self, definitions: Mapping[Tier, TierDefinition]) -> None:
        ordered = tuple(self._ordered_definitions(definitions))
        self._validate(ordered)
        self._definitions: Tuple[TierDefinition, ...] = ordered
        self._by_tier: Dict[Tier, TierDefinition] = {d.key: d for d in ordered}

    @staticmethod
    def _ordered_definitions(definitions: Mapping[Tier, TierDefinition]) -> Iterable[TierDefinition]:
        missing = [tier.value for tier in Tier if tier not in definitions]
        if missing:
            raise RegistryValidationError(f"Tier table is missing tiers: {', '.join(missing)}")
        unexpected = [key for key in definitions if not isinstance(key, Tier)]
        if unexpected:
            raise RegistryValidationError(f"Tier table has unrecognized keys: {unexpected!r}")
        for tier in Tier:
            definition = definitions[tier]
            if definition.key is not tier:
                raise RegistryValidationError(
                    f"Definition registered under {tier.value} declares key {definition.key.value}"
                )
            yield definition

    @staticmethod
    def _validate(ordered: Tuple[TierDefinition, ...]) -> None:
        for definition in ordered:
            limits = definition.limits
            if limits.max_file_size_bytes > limits.max_total_file_size_bytes:
                raise RegistryValidationError(
                    f"{definition.key.value}: per-file ceiling {limits.max_file_size_bytes} exceeds"
                    f" aggregate ceiling {limits.max_total_file_size_bytes}"
                )

        for lower, higher in zip(ordered, ordered[1:]):
            for key, lower_value in lower.limits.quotas().items():
                higher_value = higher.limits.quota(key)
                if higher_value < lower_value:
                    raise RegistryValidationError(
                        f"{key.value} decreases from {lower.key.value} ({lower_value})"
                        f" to {higher.key.value} ({higher_value})"
                    )
            lost = lower.limits.capabilities - higher.limits.capabilities
            if lost:
                names = ", ".join(sorted(c.value for c in lost))
                raise RegistryValidationError(
                    f"{higher.key.value} lacks capabilities granted to {lower.key.value}: {names}"
                )

    def tiers(self) -> Tuple[Tier, ...]:
        return tuple(d.key for d in self._definitions)

    def definitions(self) -> Tuple[TierDefinition, ...]:
        return self._definitions

    def definition_for(self, tier: object) -> TierDefinition:
        """Return the definition for ``tier``, raising :class:`UnknownTierError`."""

        return self._by_tier[Tier.parse(tier)]

    def limits_for(self, tier: object) -> LimitSet:
        return self.definition_for(tier).limits

    def ordinal(self, tier: object) -> int:
        return self.tiers().index(Tier.parse(tier))

    def most_restrictive(self) -> Tier:
        return self._definitions[0].key

    def next_tier(self, tier: object) -> Optional[Tier]:
        """Return the tier immediately above ``tier``, if any."""

        position = self.ordinal(tier)
        if position + 1 >= len(self._definitions):
            return None
        return self._definitions[position + 1].key

    def minimum_tier_for(self, capability: Capability) -> Optional[Tier]:
        """Return the lowest tier granting ``capability``, or ``None`` if no tier does."""

        capability = Capability(capability)
        for definition in self._definitions:
            if capability in definition.limits.capabilities:
                return definition.key
        return None

    def minimum_tier_for_quota(self, key: QuotaKey, required: int) -> Optional[Tier]:
        """Return the lowest tier whose ``key`` quota is at least ``required``."""

        key = QuotaKey(key)
        for definition in self._definitions:
            if definition.limits.quota(key) >= required:
                return definition.key
        return None


_registry_lock = RLock()
_default_registry = TierRegistry(TIER_CATALOG)
_current_registry = _default_registry


def get_registry() -> TierRegistry:
    """Return the currently published registry snapshot."""

    with _registry_lock:
        return _current_registry


def publish_registry(registry: TierRegistry) -> TierRegistry:
    """Atomically replace the process-wide registry, returning the previous one."""

    global _current_registry

    if not isinstance(registry, TierRegistry):
        raise TypeError("registry must be a TierRegistry instance")
    with _registry_lock:
        previous = _current_registry
        _current_registry = registry
    logger.info("Published tier registry snapshot with tiers %s", [t.value for t in registry.tiers()])
    return previous


def reset_registry() -> None:
    """Restore the built-in tier catalog."""

    publish_registry(_default_registry)


def get_tier_definition(tier: object) -> TierDefinition:
    """Return a tier definition from the current registry, raising if unsupported."""

    return get_registry().definition_for(tier)
