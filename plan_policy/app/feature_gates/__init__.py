"""Quota validation and gating decisions consumed by upload forms and lock overlays."""
from .context import (
    BatchQuotaDecision,
    CapabilityLockDecision,
    CountQuotaDecision,
    EntitlementContext,
    QuotaDecision,
)
from .enforcement import enforce
from .exceptions import FeatureGateError, GateErrorCode
from .quota import (
    BatchValidationResult,
    CountQuotaResult,
    ValidationOutcome,
    ValidationResult,
    bytes_to_megabytes,
    check_count_quota,
    megabytes_to_bytes,
    validate_artifact,
    validate_batch,
)

__all__ = [
    "BatchQuotaDecision",
    "BatchValidationResult",
    "CapabilityLockDecision",
    "CountQuotaDecision",
    "CountQuotaResult",
    "EntitlementContext",
    "FeatureGateError",
    "GateErrorCode",
    "QuotaDecision",
    "ValidationOutcome",
    "ValidationResult",
    "bytes_to_megabytes",
    "check_count_quota",
    "enforce",
    "megabytes_to_bytes",
    "validate_artifact",
    "validate_batch",
]
