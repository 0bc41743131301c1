import logging
import pathlib
import sys
from dataclasses import replace
from typing import Dict

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from plan_policy.app.entitlements import (  # noqa: E402  pylint: disable=wrong-import-position
    TIER_CATALOG,
    EntitlementEvaluator,
    QuotaKey,
    Tier,
    TierDefinition,
    TierRegistry,
    configure_entitlement_evaluator,
    reset_registry,
)

MB = 1024 * 1024


@pytest.fixture(autouse=True)
def _restore_policy_state():
    yield
    reset_registry()
    configure_entitlement_evaluator(EntitlementEvaluator())
    logging.getLogger("plan_policy").setLevel(logging.NOTSET)


def build_definitions(**quota_overrides: Dict[QuotaKey, int]) -> Dict[Tier, TierDefinition]:
    """Copy the built-in catalog, replacing quotas per tier name."""

    definitions = dict(TIER_CATALOG)
    for tier_name, overrides in quota_overrides.items():
        tier = Tier(tier_name)
        limits = definitions[tier].limits
        for key, value in overrides.items():
            limits = limits.with_quota(key, value)
        definitions[tier] = replace(definitions[tier], limits=limits)
    return definitions


@pytest.fixture
def wide_starter_registry() -> TierRegistry:
    """STARTER with a per-file ceiling equal to its 1000MB aggregate ceiling."""

    return TierRegistry(
        build_definitions(STARTER={QuotaKey.MAX_FILE_SIZE_PER_FILE: 1000 * MB})
    )


@pytest.fixture
def make_registry():
    """Factory building a registry from the catalog with per-tier quota overrides."""

    def _factory(**quota_overrides: Dict[QuotaKey, int]) -> TierRegistry:
        return TierRegistry(build_definitions(**quota_overrides))

    return _factory
