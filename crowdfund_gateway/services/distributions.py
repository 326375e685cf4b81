"""Distribution allocation engine and the distribution approval/payment state machine"""

import logging
import uuid
from typing import Callable, List, Optional, Union
from sqlalchemy.orm import Session
from crowdfund_gateway.domain.calculations import allocate
from crowdfund_gateway.domain.exceptions import ConflictError, NotFoundError
from crowdfund_gateway.domain.models import CallerContext
from crowdfund_gateway.domain.states import DISTRIBUTION_TRANSITIONS, ensure_transition
from crowdfund_gateway.domain.validation import raise_if_errors, validate_distribution_payment
from crowdfund_gateway.infrastructure.database.models import BusinessPerformance, Distribution
from crowdfund_gateway.infrastructure.database.repositories import (
    BusinessRepository,
    DistributionRepository,
    InvestmentRepository,
)
from crowdfund_gateway.infrastructure.observability.logging import log_event
from crowdfund_gateway.infrastructure.observability.metrics import (
    distribution_transition_counter,
    notification_failure_counter,
)
from crowdfund_gateway.services.common import require_admin, require_owner_or_admin, transaction
from crowdfund_gateway.utils.date_utils import utcnow
from crowdfund_gateway.utils.ids import parse_id

logger = logging.getLogger(__name__)

# notify(investor_id, distribution_id)
NotifyHook = Callable[[str, str], None]


class AllocationEngine:
    """Fans an approved performance report out into one pending distribution per completed investment"""

    def __init__(self, db: Session):
        self.db = db
        self.investments = InvestmentRepository(db)
        self.distributions = DistributionRepository(db)

    def fan_out(self, performance: BusinessPerformance, actor_id: str) -> List[Distribution]:
        """
        Stage the distribution batch inside the caller's transaction.

        Nothing is committed here: the caller commits the batch together with
        the performance approval or rolls both back. A performance that already
        has distributions is refused, and the (performance, investment) unique
        constraint backs that check at the database.
        """
        if self.distributions.count_for_performance(performance.id) > 0:
            raise ConflictError("Distributions already exist for this performance")

        investments = self.investments.get_completed_investments(performance.business_id)
        allocations = allocate(investments, performance.profit_cents, performance.loss_cents)
        if not allocations:
            return []

        now = utcnow()
        batch = [
            Distribution(
                business_id=performance.business_id,
                performance_id=performance.id,
                investor_id=allocation.investor_id,
                investment_id=allocation.investment_id,
                investment_amount_cents=allocation.investment_amount_cents,
                total_business_investment_cents=allocation.total_business_investment_cents,
                share_percentage=allocation.share_percentage,
                business_profit_cents=performance.profit_cents,
                business_loss_cents=performance.loss_cents,
                status="pending",
                year=performance.year,
                quarter=performance.quarter,
                distribution_date=now,
                created_by=actor_id,
                last_modified_by=actor_id,
                last_modified_at=now,
            )
            for allocation in allocations
        ]
        return self.distributions.create_distributions(batch)


class DistributionService:
    """Admin-driven distribution transitions: approve, pay, fail, cancel"""

    def __init__(self, db: Session, notify: Optional[NotifyHook] = None):
        self.db = db
        self.notify = notify
        self.businesses = BusinessRepository(db)
        self.distributions = DistributionRepository(db)

    def approve_distribution(
        self,
        ctx: CallerContext,
        distribution_id: Union[str, uuid.UUID],
        notes: Optional[str] = None,
    ) -> Distribution:
        require_admin(ctx)
        if notes and len(notes) > 500:
            raise_if_errors(["approval_notes: Approval notes cannot exceed 500 characters"])
        distribution_uuid = parse_id(distribution_id, "distribution_id")

        with transaction(self.db):
            distribution = self._get_for_update(distribution_uuid)
            ensure_transition(DISTRIBUTION_TRANSITIONS, "distribution", distribution.status, "approved")

            distribution.status = "approved"
            distribution.approved_by = ctx.id
            distribution.approved_at = utcnow()
            if notes:
                distribution.approval_notes = notes
            self._touch(distribution, ctx)

        self._record("approved", distribution, ctx)
        return distribution

    def mark_distribution_paid(
        self,
        ctx: CallerContext,
        distribution_id: Union[str, uuid.UUID],
        payment_method: str,
        transaction_id: Optional[str] = None,
    ) -> Distribution:
        """
        Record the payout of an approved distribution, then notify the investor.

        The notification hook runs after the commit; if it raises, the paid
        state stands and the failure is logged.
        """
        require_admin(ctx)
        raise_if_errors(validate_distribution_payment(payment_method, transaction_id))
        distribution_uuid = parse_id(distribution_id, "distribution_id")

        with transaction(self.db, "Payment transaction id already used"):
            distribution = self._get_for_update(distribution_uuid)
            ensure_transition(DISTRIBUTION_TRANSITIONS, "distribution", distribution.status, "paid")
            if transaction_id and self.distributions.payment_transaction_exists(transaction_id):
                raise ConflictError("Payment transaction id already used")

            distribution.status = "paid"
            distribution.payment_method = payment_method
            distribution.payment_transaction_id = transaction_id
            distribution.processed_at = utcnow()
            distribution.processed_by = ctx.id
            self._touch(distribution, ctx)

        self._record("paid", distribution, ctx)
        self._notify_investor(distribution)
        return distribution

    def mark_distribution_failed(
        self,
        ctx: CallerContext,
        distribution_id: Union[str, uuid.UUID],
        reason: str,
    ) -> Distribution:
        require_admin(ctx)
        if not reason or not reason.strip():
            raise_if_errors(["reason: Failure reason is required"])
        distribution_uuid = parse_id(distribution_id, "distribution_id")

        with transaction(self.db):
            distribution = self._get_for_update(distribution_uuid)
            ensure_transition(DISTRIBUTION_TRANSITIONS, "distribution", distribution.status, "failed")

            distribution.status = "failed"
            distribution.failure_reason = reason.strip()
            distribution.processed_by = ctx.id
            self._touch(distribution, ctx)

        self._record("failed", distribution, ctx)
        return distribution

    def cancel_distribution(
        self,
        ctx: CallerContext,
        distribution_id: Union[str, uuid.UUID],
        reason: Optional[str] = None,
    ) -> Distribution:
        require_admin(ctx)
        distribution_uuid = parse_id(distribution_id, "distribution_id")

        with transaction(self.db):
            distribution = self._get_for_update(distribution_uuid)
            ensure_transition(DISTRIBUTION_TRANSITIONS, "distribution", distribution.status, "cancelled")

            distribution.status = "cancelled"
            distribution.cancellation_reason = reason
            self._touch(distribution, ctx)

        self._record("cancelled", distribution, ctx)
        return distribution

    def get_distribution(self, ctx: CallerContext, distribution_id: Union[str, uuid.UUID]) -> Distribution:
        """Visible to the investor, the business owner and admins"""
        distribution = self.distributions.get_distribution(parse_id(distribution_id, "distribution_id"))
        if distribution is None:
            raise NotFoundError("Distribution not found")
        if distribution.investor_id != ctx.id:
            business = self.businesses.get_business(distribution.business_id)
            require_owner_or_admin(ctx, business.owner_id)
        return distribution

    def _get_for_update(self, distribution_id: uuid.UUID) -> Distribution:
        distribution = self.distributions.get_distribution_for_update(distribution_id)
        if distribution is None:
            raise NotFoundError("Distribution not found")
        return distribution

    def _touch(self, distribution: Distribution, ctx: CallerContext) -> None:
        distribution.last_modified_by = ctx.id
        distribution.last_modified_at = utcnow()

    def _record(self, status: str, distribution: Distribution, ctx: CallerContext) -> None:
        distribution_transition_counter.labels(status=status).inc()
        log_event(
            logger,
            f"distribution_{status}",
            distribution_id=distribution.id,
            investor_id=distribution.investor_id,
            modified_by=ctx.id,
        )

    def _notify_investor(self, distribution: Distribution) -> None:
        if self.notify is None:
            return
        try:
            self.notify(distribution.investor_id, str(distribution.id))
        except Exception as e:
            notification_failure_counter.inc()
            logger.warning(
                f"Investor notification failed: {e}",
                extra={"distribution_id": str(distribution.id), "investor_id": distribution.investor_id},
            )
            return

        with transaction(self.db):
            distribution.investor_notified = True
            distribution.notification_sent_at = utcnow()
