"""Load tier tables from JSON documents and publish them as registry snapshots."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .catalog import RegistryValidationError, TierRegistry, publish_registry
from .models import Capability, LimitSet, Tier, TierDefinition, UnknownTierError

logger = logging.getLogger(__name__)


class TierDocument(BaseModel):
    """One tier entry of a limits document; storage quotas are in megabytes."""

    display_name: Optional[str] = None
    price_label: Optional[str] = None
    capabilities: List[Capability] = Field(default_factory=list)
    max_products: int = Field(ge=0)
    max_links: int = Field(ge=0)
    max_images_per_post: int = Field(ge=0)
    max_subscription_plans: int = Field(ge=0)
    max_file_size_mb: int = Field(ge=0)
    max_total_file_size_mb: int = Field(ge=0)

    model_config = ConfigDict(extra="forbid", frozen=True)

    def to_definition(self, tier: Tier) -> TierDefinition:
        limits = LimitSet.from_megabytes(
            capabilities=self.capabilities,
            max_products=self.max_products,
            max_links=self.max_links,
            max_images_per_post=self.max_images_per_post,
            max_subscription_plans=self.max_subscription_plans,
            max_file_size_mb=self.max_file_size_mb,
            max_total_file_size_mb=self.max_total_file_size_mb,
        )
        return TierDefinition(
            key=tier,
            display_name=self.display_name or tier.value,
            price_label=self.price_label,
            limits=limits,
        )


class LimitsDocument(BaseModel):
    """Top-level shape of a limits document.

    Tier keys accept the same spellings as :meth:`Tier.parse`, so ``"free"``
    and ``"PRO+"`` name the same tiers as ``"FREE"`` and ``"PRO_PLUS"``.
    """

    tiers: Dict[Tier, TierDocument]

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("tiers", mode="before")
    @classmethod
    def _normalize_tier_keys(cls, value: object) -> object:
        if not isinstance(value, dict):
            return value
        normalized: Dict[object, object] = {}
        for key, entry in value.items():
            try:
                tier: object = Tier.parse(key)
            except UnknownTierError:
                # left for enum validation to report
                tier = key
            if tier in normalized:
                raise ValueError(f"tier {key!r} is listed more than once")
            normalized[tier] = entry
        return normalized

    def to_registry(self) -> TierRegistry:
        definitions = {tier: entry.to_definition(tier) for tier, entry in self.tiers.items()}
        return TierRegistry(definitions)


def parse_limits_document(raw: object) -> TierRegistry:
    """Validate a decoded limits document and build a registry from it."""

    if not isinstance(raw, dict):
        raise RegistryValidationError("limits document must contain a top-level object")
    try:
        document = LimitsDocument.model_validate(raw)
    except ValidationError as exc:
        raise RegistryValidationError(f"Invalid limits document: {exc}") from exc
    return document.to_registry()


def load_registry_from_file(path: Union[str, Path]) -> TierRegistry:
    """Read and validate the limits document stored at ``path``."""

    config_path = Path(path)
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
    except json.JSONDecodeError as exc:
        raise RegistryValidationError(f"{config_path} is not valid JSON: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise RegistryValidationError(f"{config_path} is not UTF-8 text: {exc}") from exc
    except OSError as exc:
        raise RegistryValidationError(f"Cannot read limits document {config_path}: {exc}") from exc
    return parse_limits_document(raw)


def publish_registry_from_file(path: Union[str, Path]) -> TierRegistry:
    """Load a limits document and publish it as the active registry snapshot.

    The current snapshot stays in place when the document fails validation, so
    a bad reconfiguration never leaves readers with a partially applied table.
    """

    try:
        registry = load_registry_from_file(path)
    except RegistryValidationError:
        logger.warning("Rejected limits document %s; keeping current tier registry", path)
        raise
    publish_registry(registry)
    return registry
