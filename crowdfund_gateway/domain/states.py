"""Status values and legal transitions for investments, performance reports and distributions"""

from typing import Dict, FrozenSet
from crowdfund_gateway.domain.exceptions import InvalidStateError

INVESTMENT_STATUSES = ("pending", "completed", "refunded", "failed")
PERFORMANCE_STATUSES = ("draft", "submitted", "verified", "approved")
DISTRIBUTION_STATUSES = ("pending", "approved", "paid", "failed", "cancelled")

# Investment: cancellation lands in "failed", refund is the only way out of "completed"
INVESTMENT_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "pending": frozenset({"completed", "failed"}),
    "completed": frozenset({"refunded"}),
    "refunded": frozenset(),
    "failed": frozenset(),
}

# Performance: strictly linear
PERFORMANCE_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "draft": frozenset({"submitted"}),
    "submitted": frozenset({"verified"}),
    "verified": frozenset({"approved"}),
    "approved": frozenset(),
}

DISTRIBUTION_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "pending": frozenset({"approved", "failed", "cancelled"}),
    "approved": frozenset({"paid", "failed"}),
    "paid": frozenset(),
    "failed": frozenset(),
    "cancelled": frozenset(),
}

# Investments that block a second investment in the same business
ACTIVE_INVESTMENT_STATUSES = ("pending", "completed")

# Performance records usable as a growth baseline or in annual summaries
REPORTED_PERFORMANCE_STATUSES = ("verified", "approved")


def can_transition(table: Dict[str, FrozenSet[str]], current: str, target: str) -> bool:
    return target in table.get(current, frozenset())


def ensure_transition(table: Dict[str, FrozenSet[str]], entity: str, current: str, target: str) -> None:
    """
    Raise InvalidStateError unless current -> target is legal.

    The message names the source states that would have allowed the move,
    e.g. "Only pending distributions can be approved (current status: paid)".
    """
    if can_transition(table, current, target):
        return
    sources = sorted(state for state, targets in table.items() if target in targets)
    allowed = " or ".join(sources) if sources else "no"
    raise InvalidStateError(
        f"Only {allowed} {entity}s can move to {target} (current status: {current})"
    )
