"""Process start wiring for the policy engine."""
from __future__ import annotations

import logging
from typing import Mapping, Optional

from dotenv import load_dotenv

from .app.entitlements import (
    EntitlementEvaluator,
    configure_entitlement_evaluator,
    publish_registry_from_file,
    reset_registry,
)
from .policy_config import PolicyConfig, load_policy_config

logger = logging.getLogger("plan_policy")


def configure_policy_engine(env: Optional[Mapping[str, str]] = None) -> PolicyConfig:
    """Apply configuration to the process-wide registry and evaluator.

    With no explicit ``env`` the process environment is used, after loading a
    ``.env`` file if one is present. A configured limits file is validated in
    full before it replaces the built-in catalog.
    """

    if env is None:
        load_dotenv()
    config = load_policy_config(env)

    logger.setLevel(config.log_level_number)
    configure_entitlement_evaluator(
        EntitlementEvaluator(warn_on_unknown_tier=config.warn_on_unknown_tier)
    )

    if config.limits_file:
        publish_registry_from_file(config.limits_file)
    else:
        reset_registry()

    logger.info(
        "Policy engine configured limits_file=%s warn_on_unknown_tier=%s",
        config.limits_file,
        config.warn_on_unknown_tier,
    )
    return config
