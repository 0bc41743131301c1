"""Domain models for subscription tiers, capabilities and limit sets."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional, Union

BYTES_PER_MEGABYTE = 1024 * 1024


class UnknownTierError(LookupError):
    """Raised when a tier identifier is not one of the recognized tiers."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Unknown tier: {value!r}")


class Tier(str, Enum):
    """Canonical subscription tiers, declared from least to most capable."""

    FREE = "FREE"
    STARTER = "STARTER"
    PRO = "PRO"
    PRO_PLUS = "PRO_PLUS"

    @property
    def ordinal(self) -> int:
        return _TIER_ORDER.index(self)

    @classmethod
    def parse(cls, value: object) -> "Tier":
        """Coerce user or session supplied input into a :class:`Tier`."""

        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise UnknownTierError(value)
        normalized = value.strip().upper().replace("-", "_").replace(" ", "_")
        normalized = _TIER_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError as exc:
            raise UnknownTierError(value) from exc


_TIER_ORDER = tuple(Tier)
_TIER_ALIASES = {"PRO+": "PRO_PLUS", "PROPLUS": "PRO_PLUS"}


class Capability(str, Enum):
    """Boolean capabilities unlocked by a tier."""

    CREATE_CATEGORIES = "shop.create_categories"
    UPLOAD_PRODUCT_IMAGES = "shop.upload_product_images"
    ENABLE_SHOP = "shop.enable"
    UPLOAD_BACKGROUND_IMAGE = "appearance.background_image"
    CHANGE_BACKGROUND_MODE = "appearance.background_mode"
    TOGGLE_BACKGROUND_OVERLAY = "appearance.background_overlay"
    CUSTOMIZE_COLORS = "appearance.colors"
    CUSTOMIZE_LIKES_COLOR = "appearance.likes_color"
    CUSTOMIZE_BUTTON_COLORS = "appearance.button_colors"
    UPLOAD_POST_IMAGES = "posts.upload_images"
    POST_WITHOUT_LINK = "posts.without_link"
    RECEIVE_DONATIONS = "monetization.donations"
    ANALYTICS = "analytics.profile"
    SHOP_ANALYTICS = "analytics.shop"
    PRIORITY_SUPPORT = "support.priority"
    VERIFIED_BADGE = "profile.verified_badge"
    TWO_FACTOR_AUTH = "security.two_factor"


class QuotaKey(str, Enum):
    """Numeric quotas attached to a tier."""

    MAX_PRODUCTS = "products.max"
    MAX_LINKS = "links.max"
    MAX_IMAGES_PER_POST = "posts.max_images"
    MAX_SUBSCRIPTION_PLANS = "subscription_plans.max"
    MAX_FILE_SIZE_PER_FILE = "storage.max_file_bytes"
    MAX_TOTAL_FILE_SIZE = "storage.max_total_bytes"

    @property
    def is_storage(self) -> bool:
        return self in {QuotaKey.MAX_FILE_SIZE_PER_FILE, QuotaKey.MAX_TOTAL_FILE_SIZE}


_QUOTA_FIELDS: Dict[QuotaKey, str] = {
    QuotaKey.MAX_PRODUCTS: "max_products",
    QuotaKey.MAX_LINKS: "max_links",
    QuotaKey.MAX_IMAGES_PER_POST: "max_images_per_post",
    QuotaKey.MAX_SUBSCRIPTION_PLANS: "max_subscription_plans",
    QuotaKey.MAX_FILE_SIZE_PER_FILE: "max_file_size_bytes",
    QuotaKey.MAX_TOTAL_FILE_SIZE: "max_total_file_size_bytes",
}


@dataclass(frozen=True)
class LimitSet:
    """Immutable capabilities and quotas granted by one tier."""

    capabilities: FrozenSet[Capability] = field(default_factory=frozenset)
    max_products: int = 0
    max_links: int = 0
    max_images_per_post: int = 0
    max_subscription_plans: int = 0
    max_file_size_bytes: int = 0
    max_total_file_size_bytes: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "capabilities", frozenset(Capability(c) for c in self.capabilities))
        for quota_field in _QUOTA_FIELDS.values():
            value = getattr(self, quota_field)
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"{quota_field} must be an integer, got {value!r}")
            if value < 0:
                raise ValueError(f"{quota_field} must be >= 0")

    @classmethod
    def from_megabytes(
        cls,
        *,
        capabilities: Iterable[Capability],
        max_file_size_mb: int,
        max_total_file_size_mb: int,
        **quotas: int,
    ) -> "LimitSet":
        """Build a limit set from storage quotas expressed in megabytes."""

        return cls(
            capabilities=frozenset(capabilities),
            max_file_size_bytes=max_file_size_mb * BYTES_PER_MEGABYTE,
            max_total_file_size_bytes=max_total_file_size_mb * BYTES_PER_MEGABYTE,
            **quotas,
        )

    @property
    def max_file_size_mb(self) -> float:
        return self.max_file_size_bytes / BYTES_PER_MEGABYTE

    @property
    def max_total_file_size_mb(self) -> float:
        return self.max_total_file_size_bytes / BYTES_PER_MEGABYTE

    def has(self, capability: Capability) -> bool:
        return Capability(capability) in self.capabilities

    def quota(self, key: QuotaKey) -> int:
        return getattr(self, _QUOTA_FIELDS[QuotaKey(key)])

    def quotas(self) -> Dict[QuotaKey, int]:
        return {key: getattr(self, name) for key, name in _QUOTA_FIELDS.items()}

    def with_quota(self, key: QuotaKey, value: int) -> "LimitSet":
        """Return a copy with one quota replaced."""

        return replace(self, **{_QUOTA_FIELDS[QuotaKey(key)]: value})

    def to_flags(self) -> Dict[str, Union[int, bool]]:
        """Serialize the limit set to flattened flag keys."""

        flags: Dict[str, Union[int, bool]] = {
            capability.value: capability in self.capabilities for capability in Capability
        }
        for key, value in self.quotas().items():
            flags[key.value] = value
        return flags


@dataclass(frozen=True)
class TierDefinition:
    """Describes a tier, its presentation labels and its limit set."""

    key: Tier
    display_name: str
    limits: LimitSet
    price_label: Optional[str] = None
