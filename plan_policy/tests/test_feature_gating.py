from __future__ import annotations

import pytest

from plan_policy.app.entitlements import Capability, QuotaKey, Tier
from plan_policy.app.feature_gates import (
    EntitlementContext,
    FeatureGateError,
    GateErrorCode,
    ValidationOutcome,
    enforce,
)

MB = 1024 * 1024


@pytest.fixture
def starter_context() -> EntitlementContext:
    return EntitlementContext(Tier.STARTER)


def test_context_helpers(starter_context: EntitlementContext) -> None:
    assert starter_context.tier is Tier.STARTER
    assert starter_context.tier_label == "STARTER"
    assert starter_context.has(Capability.CUSTOMIZE_COLORS) is True
    assert starter_context.has(Capability.ENABLE_SHOP) is False
    assert starter_context.limit(QuotaKey.MAX_LINKS) == 10


def test_unknown_tier_context_behaves_like_free() -> None:
    context = EntitlementContext("GOLD")

    assert context.tier is Tier.FREE
    assert context.has(Capability.UPLOAD_BACKGROUND_IMAGE) is False
    assert context.lock(Tier.STARTER).allowed is False


def test_lock_reports_required_tier_label(starter_context: EntitlementContext) -> None:
    decision = starter_context.lock(Tier.PRO_PLUS)

    assert decision.allowed is False
    assert decision.required_tier is Tier.PRO_PLUS
    assert decision.required_tier_label == "PRO+"
    assert decision.reason is GateErrorCode.CAPABILITY_DENIED


def test_lock_allows_lower_requirement(starter_context: EntitlementContext) -> None:
    decision = starter_context.lock("FREE")

    assert decision.allowed is True
    assert decision.reason is None
    assert decision.to_error() is None


def test_lock_with_unknown_requirement_denies(starter_context: EntitlementContext) -> None:
    decision = starter_context.lock("PLATINUM")

    assert decision.allowed is False
    assert decision.required_tier is None
    error = decision.to_error()
    assert error is not None
    assert error.payload["upgradeRequired"] is False


def test_lock_capability_derives_minimum_tier(starter_context: EntitlementContext) -> None:
    decision = starter_context.lock_capability(Capability.ENABLE_SHOP)

    assert decision.allowed is False
    assert decision.required_tier is Tier.PRO
    assert decision.capability is Capability.ENABLE_SHOP

    error = decision.to_error()
    assert isinstance(error, FeatureGateError)
    assert error.code is GateErrorCode.CAPABILITY_DENIED
    assert error.status_code == 403
    assert error.payload["currentPlan"] == "STARTER"
    assert error.payload["nextPlan"] == "PRO"
    assert error.payload["capability"] == "shop.enable"
    assert "PRO plan" in error.message


def test_validate_upload_too_large_suggests_upgrade(starter_context: EntitlementContext) -> None:
    decision = starter_context.validate_upload(700 * MB)

    assert decision.allowed is False
    assert decision.reason is GateErrorCode.ARTIFACT_TOO_LARGE
    assert decision.max_file_size_mb == 500
    assert decision.max_total_file_size_mb == 1000
    assert decision.upgrade_tier is Tier.PRO
    assert decision.upgrade_tier_label == "PRO"

    error = decision.to_error()
    assert error is not None
    assert error.status_code == 409
    assert "Maximum 500MB per file on the STARTER plan" in error.message
    assert error.payload["limitBytes"] == 500 * MB


def test_validate_upload_aggregate_exceeded(starter_context: EntitlementContext) -> None:
    decision = starter_context.validate_upload(150 * MB, 900 * MB)

    assert decision.result.outcome is ValidationOutcome.AGGREGATE_BUDGET_EXCEEDED
    assert decision.upgrade_tier is Tier.PRO
    error = decision.to_error()
    assert error is not None
    assert "Maximum 1000MB per product" in error.message
    assert error.payload["observedBytes"] == 1050 * MB


def test_validate_upload_on_top_tier_has_no_upgrade() -> None:
    decision = EntitlementContext(Tier.PRO_PLUS).validate_upload(2001 * MB)

    assert decision.allowed is False
    assert decision.upgrade_tier is None
    error = decision.to_error()
    assert error is not None
    assert error.payload["upgradeRequired"] is False
    assert "nextPlan" not in error.payload


def test_validate_uploads_partial_batch(starter_context: EntitlementContext) -> None:
    decision = starter_context.validate_uploads([400 * MB, 400 * MB, 400 * MB, 150 * MB])

    assert decision.accepted_indexes == (0, 1, 3)
    assert decision.batch.final_aggregate_bytes == 950 * MB
    assert [d.reason for d in decision.rejected] == [GateErrorCode.AGGREGATE_BUDGET_EXCEEDED]


def test_check_count_with_upgrade_path() -> None:
    context = EntitlementContext(Tier.FREE)

    allowed = context.check_count(QuotaKey.MAX_LINKS, 2)
    denied = context.check_count(QuotaKey.MAX_LINKS, 3)

    assert allowed.allowed is True
    assert allowed.to_error() is None
    assert denied.allowed is False
    assert denied.upgrade_tier is Tier.STARTER
    error = denied.to_error()
    assert error is not None
    assert error.code is GateErrorCode.COUNT_QUOTA_EXCEEDED
    assert error.payload["limit"] == 3
    assert error.payload["currentCount"] == 3


def test_enforce_returns_allowed_decision(starter_context: EntitlementContext) -> None:
    decision = starter_context.validate_upload(10 * MB)

    assert enforce(decision) is decision


def test_enforce_raises_feature_gate_error(starter_context: EntitlementContext) -> None:
    with pytest.raises(FeatureGateError) as exc:
        enforce(starter_context.lock_capability(Capability.VERIFIED_BADGE))

    assert exc.value.code is GateErrorCode.CAPABILITY_DENIED


def test_feature_gate_error_converts_to_http_exception() -> None:
    error = FeatureGateError(code="count_quota_exceeded", message="limit reached")
    http_exc = error.to_http_exception()

    assert http_exc.status_code == 409
    assert http_exc.detail["error"] == "count_quota_exceeded"
    assert http_exc.detail["upgradeRequired"] is False


def test_feature_gate_error_payload_lists_plans_and_detail() -> None:
    error = FeatureGateError(
        code=GateErrorCode.ARTIFACT_TOO_LARGE,
        message="too large",
        current_tier=Tier.FREE,
        upgrade_tier=Tier.STARTER,
        detail={"limitBytes": 100 * MB},
    )

    assert error.upgrade_required is True
    assert list(error.payload) == [
        "error",
        "message",
        "upgradeRequired",
        "currentPlan",
        "nextPlan",
        "limitBytes",
    ]
    assert error.to_http_exception().detail == error.payload
