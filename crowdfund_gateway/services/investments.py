"""Investment lifecycle - creation, settlement, cancellation and refund"""

import logging
import uuid
from typing import Dict, Optional, Tuple, Union
from sqlalchemy.orm import Session
from crowdfund_gateway.config import settings
from crowdfund_gateway.domain.calculations import apply_funding_delta, share_percentage
from crowdfund_gateway.domain.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from crowdfund_gateway.domain.models import ROLE_INVESTOR, CallerContext, InvestmentTerms, Page
from crowdfund_gateway.domain.states import INVESTMENT_STATUSES, INVESTMENT_TRANSITIONS, ensure_transition
from crowdfund_gateway.domain.validation import raise_if_errors, validate_investment, validate_status_filter
from crowdfund_gateway.infrastructure.clients.payments import MockPaymentVerifier
from crowdfund_gateway.infrastructure.database.models import Business, Investment
from crowdfund_gateway.infrastructure.database.repositories import BusinessRepository, InvestmentRepository
from crowdfund_gateway.infrastructure.observability.logging import log_event
from crowdfund_gateway.infrastructure.observability.metrics import investment_counter, settled_amount_counter
from crowdfund_gateway.services.common import require_admin, require_owner_or_admin, require_role, transaction
from crowdfund_gateway.utils.date_utils import utcnow
from crowdfund_gateway.utils.ids import generate_transaction_id, parse_id

logger = logging.getLogger(__name__)

DUPLICATE_INVESTMENT = "You have already invested in this business"


class InvestmentService:
    """
    Drives Investment through pending -> completed | failed, completed -> refunded.

    Settlement and refund credit/debit the business aggregates in the same
    transaction as the status change, with the business row locked and its
    version column checked, so concurrent settlements serialize per business.
    """

    def __init__(self, db: Session, payment_verifier: Optional[MockPaymentVerifier] = None):
        self.db = db
        self.businesses = BusinessRepository(db)
        self.investments = InvestmentRepository(db)
        self.payment_verifier = payment_verifier or MockPaymentVerifier()

    def create_investment(
        self,
        ctx: CallerContext,
        business_id: Union[str, uuid.UUID],
        amount_cents: int,
        payment_method: str = "bank_transfer",
        payment_reference: Optional[str] = None,
        terms: Optional[InvestmentTerms] = None,
    ) -> Investment:
        require_role(ctx, ROLE_INVESTOR)
        raise_if_errors(
            validate_investment(
                amount_cents,
                payment_method,
                terms,
                settings.investment_min_cents,
                settings.investment_max_cents,
            )
        )
        business_uuid = parse_id(business_id, "business_id")
        terms = terms or InvestmentTerms()

        with transaction(self.db, DUPLICATE_INVESTMENT):
            business = self.businesses.get_business(business_uuid)
            if business is None:
                raise NotFoundError("Business not found")
            if business.status != "open":
                raise InvalidStateError("Business is not open for investment")
            if business.is_fully_funded:
                raise InvalidStateError("Business is already fully funded")
            if business.owner_id == ctx.id:
                raise ForbiddenError("You cannot invest in your own business")
            if self.investments.find_active_investment(ctx.id, business.id) is not None:
                raise ConflictError(DUPLICATE_INVESTMENT)

            investment = self.investments.create_investment(
                investor_id=ctx.id,
                business_id=business.id,
                amount_cents=amount_cents,
                status="pending",
                transaction_id=generate_transaction_id(),
                payment_method=payment_method,
                payment_status="pending",
                payment_reference=payment_reference,
                expected_return=terms.expected_return,
                investment_period_months=terms.investment_period_months,
                risk_level=terms.risk_level,
            )

        investment_counter.labels(outcome="created").inc()
        log_event(
            logger,
            "investment_created",
            investment_id=investment.id,
            business_id=business_uuid,
            investor_id=ctx.id,
            amount_cents=amount_cents,
        )
        return investment

    def settle_investment(
        self,
        ctx: CallerContext,
        investment_id: Union[str, uuid.UUID],
        payment_reference: Optional[str] = None,
        payment_method: Optional[str] = None,
    ) -> Investment:
        """
        Verify payment and complete a pending investment.

        A second call on the same investment fails with InvalidStateError, so the
        business is credited exactly once.
        """
        investment_uuid = parse_id(investment_id, "investment_id")

        with transaction(self.db):
            investment = self._get_for_update(investment_uuid)
            if investment.investor_id != ctx.id:
                raise ForbiddenError("Access denied")
            ensure_transition(INVESTMENT_TRANSITIONS, "investment", investment.status, "completed")

            method = payment_method or investment.payment_method
            raise_if_errors(
                validate_investment(
                    investment.amount_cents,
                    method,
                    None,
                    settings.investment_min_cents,
                    settings.investment_max_cents,
                )
            )

            verification = self.payment_verifier.verify(
                investment.transaction_id, investment.amount_cents, method, payment_reference
            )
            if not verification.success:
                raise ValidationError(
                    "Payment verification failed",
                    errors=["payment_reference: payment could not be verified"],
                )

            now = utcnow()
            investment.status = "completed"
            investment.payment_status = "completed"
            investment.payment_method = method
            investment.paid_at = now
            if payment_reference:
                investment.payment_reference = payment_reference
            if investment.invested_at is None:
                investment.invested_at = now

            business = self._lock_business(investment.business_id)
            self._apply_funding_delta(business, investment.amount_cents, 1)
            self.db.flush()

        investment_counter.labels(outcome="completed").inc()
        settled_amount_counter.inc(investment.amount_cents)
        log_event(
            logger,
            "investment_settled",
            investment_id=investment.id,
            business_id=investment.business_id,
            payment_id=verification.payment_id,
        )
        return investment

    def cancel_investment(self, ctx: CallerContext, investment_id: Union[str, uuid.UUID]) -> Investment:
        """Cancel a pending investment; nothing was credited so business totals stay put"""
        investment_uuid = parse_id(investment_id, "investment_id")

        with transaction(self.db):
            investment = self._get_for_update(investment_uuid)
            if investment.investor_id != ctx.id:
                raise ForbiddenError("Access denied")
            if investment.status != "pending":
                raise InvalidStateError("Only pending investments can be cancelled")
            ensure_transition(INVESTMENT_TRANSITIONS, "investment", investment.status, "failed")

            investment.status = "failed"
            investment.payment_status = "failed"
            investment.notes = "Cancelled by investor"

        investment_counter.labels(outcome="failed").inc()
        log_event(logger, "investment_cancelled", investment_id=investment.id, investor_id=ctx.id)
        return investment

    def refund_investment(
        self,
        ctx: CallerContext,
        investment_id: Union[str, uuid.UUID],
        reason: Optional[str] = None,
    ) -> Investment:
        """Refund a completed investment and take its amount back out of the business totals"""
        require_admin(ctx)
        investment_uuid = parse_id(investment_id, "investment_id")

        with transaction(self.db):
            investment = self._get_for_update(investment_uuid)
            ensure_transition(INVESTMENT_TRANSITIONS, "investment", investment.status, "refunded")

            investment.status = "refunded"
            investment.refund_amount_cents = investment.amount_cents
            investment.refund_reason = reason
            investment.refund_processed_at = utcnow()
            investment.refund_processed_by = ctx.id

            business = self._lock_business(investment.business_id)
            self._apply_funding_delta(business, -investment.amount_cents, -1)
            self.db.flush()

        investment_counter.labels(outcome="refunded").inc()
        log_event(
            logger,
            "investment_refunded",
            investment_id=investment.id,
            business_id=investment.business_id,
            processed_by=ctx.id,
        )
        return investment

    def get_investment(self, ctx: CallerContext, investment_id: Union[str, uuid.UUID]) -> Investment:
        """Visible to the investor, the business owner and admins"""
        investment = self.investments.get_investment(parse_id(investment_id, "investment_id"))
        if investment is None:
            raise NotFoundError("Investment not found")
        if investment.investor_id != ctx.id:
            require_owner_or_admin(ctx, investment.business.owner_id)
        return investment

    def list_investor_investments(
        self,
        ctx: CallerContext,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page:
        require_role(ctx, ROLE_INVESTOR)
        validate_status_filter(status, INVESTMENT_STATUSES)
        return self.investments.get_investments_by_investor(ctx.id, status=status, page=page, limit=limit)

    def list_business_investments(
        self,
        ctx: CallerContext,
        business_id: Union[str, uuid.UUID],
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[Page, int]:
        """Page of a business's investments plus its total completed investment"""
        validate_status_filter(status, INVESTMENT_STATUSES)
        business = self.businesses.get_business(parse_id(business_id, "business_id"))
        if business is None:
            raise NotFoundError("Business not found")
        require_owner_or_admin(ctx, business.owner_id)

        page_result = self.investments.get_investments_by_business(business.id, status=status, page=page, limit=limit)
        total = self.investments.get_total_completed_investment(business.id)
        return page_result, total

    def share_percentage(self, investment: Investment, totals: Optional[Dict[uuid.UUID, int]] = None) -> float:
        """
        Investment amount over all completed investment in its business, computed on demand.

        `totals` memoizes business totals across a listing.
        """
        if totals is not None and investment.business_id in totals:
            total = totals[investment.business_id]
        else:
            total = self.investments.get_total_completed_investment(investment.business_id)
            if totals is not None:
                totals[investment.business_id] = total
        return share_percentage(investment.amount_cents, total)

    def _get_for_update(self, investment_id: uuid.UUID) -> Investment:
        investment = self.investments.get_investment_for_update(investment_id)
        if investment is None:
            raise NotFoundError("Investment not found")
        return investment

    def _lock_business(self, business_id: uuid.UUID) -> Business:
        business = self.businesses.get_business_for_update(business_id)
        if business is None:
            raise NotFoundError("Business not found")
        return business

    def _apply_funding_delta(self, business: Business, amount_delta_cents: int, investor_delta: int) -> None:
        state = apply_funding_delta(
            business.raised_amount_cents,
            business.total_investors,
            business.funding_goal_cents,
            business.status,
            amount_delta_cents,
            investor_delta,
        )
        business.raised_amount_cents = state.raised_amount_cents
        business.total_investors = state.total_investors
        business.average_investment_cents = state.average_investment_cents
        business.funding_progress = state.funding_progress
        business.status = state.status
