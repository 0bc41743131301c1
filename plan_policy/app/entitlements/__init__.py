"""Tier catalog, registry and entitlement evaluation."""

from .catalog import (
    TIER_CATALOG,
    RegistryValidationError,
    TierRegistry,
    get_registry,
    get_tier_definition,
    publish_registry,
    reset_registry,
)
from .loader import load_registry_from_file, parse_limits_document, publish_registry_from_file
from .models import (
    BYTES_PER_MEGABYTE,
    Capability,
    LimitSet,
    QuotaKey,
    Tier,
    TierDefinition,
    UnknownTierError,
)
from .service import (
    EntitlementEvaluator,
    PlanChange,
    TierLike,
    configure_entitlement_evaluator,
    get_entitlement_evaluator,
)

__all__ = [
    "TIER_CATALOG",
    "BYTES_PER_MEGABYTE",
    "Capability",
    "EntitlementEvaluator",
    "LimitSet",
    "PlanChange",
    "QuotaKey",
    "RegistryValidationError",
    "Tier",
    "TierDefinition",
    "TierLike",
    "TierRegistry",
    "UnknownTierError",
    "configure_entitlement_evaluator",
    "get_entitlement_evaluator",
    "get_registry",
    "get_tier_definition",
    "load_registry_from_file",
    "parse_limits_document",
    "publish_registry",
    "publish_registry_from_file",
    "reset_registry",
]
