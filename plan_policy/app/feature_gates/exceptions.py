"""Exceptions API layers raise when they choose to enforce a gating decision."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from fastapi import HTTPException, status

from ..entitlements import Tier


class GateErrorCode(str, Enum):
    """Machine-readable reasons attached to denied decisions."""

    CAPABILITY_DENIED = "capability_denied"
    ARTIFACT_TOO_LARGE = "artifact_too_large"
    AGGREGATE_BUDGET_EXCEEDED = "aggregate_budget_exceeded"
    COUNT_QUOTA_EXCEEDED = "count_quota_exceeded"


@dataclass(eq=False)
class FeatureGateError(Exception):
    """A denied decision converted into something an API handler can raise.

    The payload mirrors what upgrade prompts need: the caller's current tier,
    the tier that would lift the restriction and the limit numbers involved.
    """

    code: GateErrorCode
    message: str
    current_tier: Optional[Tier] = None
    upgrade_tier: Optional[Tier] = None
    detail: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        self.code = GateErrorCode(self.code)
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        if self.code is GateErrorCode.CAPABILITY_DENIED:
            return status.HTTP_403_FORBIDDEN
        return status.HTTP_409_CONFLICT


    @property
    def upgrade_required(self) -> bool:
        return self.upgrade_tier is not None

    @property
    def payload(self) -> Dict[str, Any]:
        """Upgrade-prompt body: error code, message, plan names, then ``detail`` keys."""

        body: Dict[str, Any] = {
            "error": self.code.value,
            "message": self.message,
            "upgradeRequired": self.upgrade_required,
        }
        plans = {"currentPlan": self.current_tier, "nextPlan": self.upgrade_tier}
        body.update({name: tier.value for name, tier in plans.items() if tier is not None})
        body.update(self.detail or {})
        return body

    def to_http_exception(self) -> HTTPException:
        """Map the denial onto FastAPI's ``HTTPException`` with the payload as detail."""

        return HTTPException(self.status_code, self.payload)
