"""Opt-in helpers for API and service layers that prefer raising on denial."""
from __future__ import annotations

from typing import Optional, Protocol, TypeVar

from .exceptions import FeatureGateError


class GatingDecision(Protocol):
    """Anything exposing ``allowed`` and a ``to_error`` conversion."""

    @property
    def allowed(self) -> bool:
        ...

    def to_error(self) -> Optional[FeatureGateError]:
        ...


DecisionT = TypeVar("DecisionT", bound=GatingDecision)


def enforce(decision: DecisionT) -> DecisionT:
    """Return ``decision`` unchanged when allowed, otherwise raise its error.

    The policy engine itself only returns decisions; this is the seam where a
    request handler turns a denial into a :class:`FeatureGateError`, which it
    can then map to an HTTP response with ``to_http_exception``.
    """

    error = decision.to_error()
    if error is not None:
        raise error
    return decision
