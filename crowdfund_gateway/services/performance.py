"""Quarterly performance workflow - submit, verify, approve-and-distribute"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Union
from sqlalchemy.orm import Session
from crowdfund_gateway.config import settings
from crowdfund_gateway.domain.calculations import revenue_growth
from crowdfund_gateway.domain.exceptions import ConflictError, ForbiddenError, NotFoundError
from crowdfund_gateway.domain.models import AnnualPerformance, CallerContext, Page
from crowdfund_gateway.domain.states import PERFORMANCE_STATUSES, PERFORMANCE_TRANSITIONS, ensure_transition
from crowdfund_gateway.domain.validation import (
    is_reportable_period,
    raise_if_errors,
    validate_performance,
    validate_status_filter,
)
from crowdfund_gateway.infrastructure.database.models import Business, BusinessPerformance, Distribution
from crowdfund_gateway.infrastructure.database.repositories import BusinessRepository, PerformanceRepository
from crowdfund_gateway.infrastructure.observability.logging import log_event
from crowdfund_gateway.infrastructure.observability.metrics import performance_transition_counter, record_fan_out
from crowdfund_gateway.services.common import require_admin, require_owner_or_admin, transaction
from crowdfund_gateway.services.distributions import AllocationEngine
from crowdfund_gateway.utils.date_utils import previous_quarter, quarter_date_range, utcnow
from crowdfund_gateway.utils.ids import parse_id

logger = logging.getLogger(__name__)

DUPLICATE_PERIOD = "Performance for this period already exists"


@dataclass
class ApprovalResult:
    """Approved performance report and the distributions created with it"""

    performance: BusinessPerformance
    distributions: List[Distribution]

    @property
    def total_net_distribution_cents(self) -> int:
        return sum(d.net_distribution_cents for d in self.distributions)


class ApprovePerformanceAndDistribute:
    """
    Approve a verified performance report and create its distributions as one unit.

    Flow (single transaction):
    1. Lock the performance row and require status == verified
    2. Mark it approved with approver identity and timestamp
    3. Fan out one pending distribution per completed investment
    4. Commit both, or roll both back

    Retrying on an approved report fails with InvalidStateError before any
    distribution is touched, so a batch is created at most once.
    """

    def __init__(self, db: Session, engine: Optional[AllocationEngine] = None):
        self.db = db
        self.performances = PerformanceRepository(db)
        self.engine = engine or AllocationEngine(db)

    def execute(self, ctx: CallerContext, performance_id: Union[str, uuid.UUID]) -> ApprovalResult:
        require_admin(ctx)
        performance_uuid = parse_id(performance_id, "performance_id")

        with transaction(self.db, "Distributions already exist for this performance"):
            performance = self.performances.get_performance_for_update(performance_uuid)
            if performance is None:
                raise NotFoundError("Performance record not found")
            ensure_transition(PERFORMANCE_TRANSITIONS, "performance report", performance.status, "approved")

            performance.status = "approved"
            performance.approved_by = ctx.id
            performance.approved_at = utcnow()
            self.db.flush()

            distributions = self.engine.fan_out(performance, ctx.id)

        performance_transition_counter.labels(status="approved").inc()
        record_fan_out([d.distribution_type for d in distributions])
        log_event(
            logger,
            "performance_approved",
            performance_id=performance.id,
            business_id=performance.business_id,
            approved_by=ctx.id,
            distributions_created=len(distributions),
        )
        return ApprovalResult(performance=performance, distributions=distributions)


class PerformanceService:
    def __init__(self, db: Session, engine: Optional[AllocationEngine] = None):
        self.db = db
        self.businesses = BusinessRepository(db)
        self.performances = PerformanceRepository(db)
        self.approval = ApprovePerformanceAndDistribute(db, engine)

    def submit_performance(
        self,
        ctx: CallerContext,
        business_id: Union[str, uuid.UUID],
        year: int,
        quarter: int,
        revenue_cents: int,
        expenses_cents: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        breakdown: Optional[Dict[str, int]] = None,
        notes: Optional[str] = None,
    ) -> BusinessPerformance:
        """
        Submit a quarterly report on behalf of the business owner.

        Period dates default to the calendar bounds of the quarter. Revenue
        growth is measured against the preceding quarter's verified or
        approved report, if any.
        """
        today = date.today()
        # Out-of-range periods are left undated and reported by validation below
        if is_reportable_period(year, quarter, settings.performance_min_year, today) and (
            start_date is None or end_date is None
        ):
            default_start, default_end = quarter_date_range(year, quarter)
            start_date = start_date or default_start
            end_date = end_date or default_end

        raise_if_errors(
            validate_performance(
                year,
                quarter,
                start_date,
                end_date,
                revenue_cents,
                expenses_cents,
                breakdown,
                notes,
                settings.performance_min_year,
                today,
            )
        )
        business_uuid = parse_id(business_id, "business_id")

        with transaction(self.db, DUPLICATE_PERIOD):
            business = self._get_business(business_uuid)
            if business.owner_id != ctx.id:
                raise ForbiddenError("Access denied. Only business owner can submit performance")
            if self.performances.find_by_period(business.id, year, quarter) is not None:
                raise ConflictError(DUPLICATE_PERIOD)
            ensure_transition(PERFORMANCE_TRANSITIONS, "performance report", "draft", "submitted")

            previous = self.performances.find_reported_period(business.id, *previous_quarter(year, quarter))
            performance = self.performances.create_performance(
                business_id=business.id,
                year=year,
                quarter=quarter,
                start_date=start_date,
                end_date=end_date,
                revenue_cents=revenue_cents,
                expenses_cents=expenses_cents,
                revenue_growth=revenue_growth(revenue_cents, previous.revenue_cents if previous else None),
                status="submitted",
                submitted_by=ctx.id,
                notes=notes,
                **(breakdown or {}),
            )

        performance_transition_counter.labels(status="submitted").inc()
        log_event(
            logger,
            "performance_submitted",
            performance_id=performance.id,
            business_id=business_uuid,
            period=performance.period_label,
        )
        return performance

    def verify_performance(
        self,
        ctx: CallerContext,
        performance_id: Union[str, uuid.UUID],
        internal_notes: Optional[str] = None,
    ) -> BusinessPerformance:
        require_admin(ctx)
        if internal_notes and len(internal_notes) > 1000:
            raise_if_errors(["internal_notes: Internal notes cannot exceed 1000 characters"])
        performance_uuid = parse_id(performance_id, "performance_id")

        with transaction(self.db):
            performance = self.performances.get_performance_for_update(performance_uuid)
            if performance is None:
                raise NotFoundError("Performance record not found")
            ensure_transition(PERFORMANCE_TRANSITIONS, "performance report", performance.status, "verified")

            performance.status = "verified"
            performance.verified_by = ctx.id
            performance.verified_at = utcnow()
            if internal_notes:
                performance.internal_notes = internal_notes

        performance_transition_counter.labels(status="verified").inc()
        log_event(logger, "performance_verified", performance_id=performance.id, verified_by=ctx.id)
        return performance

    def approve_performance(self, ctx: CallerContext, performance_id: Union[str, uuid.UUID]) -> ApprovalResult:
        return self.approval.execute(ctx, performance_id)

    def get_performance(self, ctx: CallerContext, performance_id: Union[str, uuid.UUID]) -> BusinessPerformance:
        performance = self.performances.get_performance(parse_id(performance_id, "performance_id"))
        if performance is None:
            raise NotFoundError("Performance record not found")
        require_owner_or_admin(ctx, performance.business.owner_id)
        return performance

    def list_business_performance(
        self,
        ctx: CallerContext,
        business_id: Union[str, uuid.UUID],
        year: Optional[int] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page:
        validate_status_filter(status, PERFORMANCE_STATUSES)
        business = self._get_business(parse_id(business_id, "business_id"))
        require_owner_or_admin(ctx, business.owner_id)
        return self.performances.get_performance_by_business(business.id, year=year, status=status, page=page, limit=limit)

    def annual_performance(
        self,
        ctx: CallerContext,
        business_id: Union[str, uuid.UUID],
        year: int,
    ) -> AnnualPerformance:
        """Totals over the verified/approved quarters of one year"""
        business = self._get_business(parse_id(business_id, "business_id"))
        require_owner_or_admin(ctx, business.owner_id)

        quarters = self.performances.get_reported_quarters(business.id, year)
        if not quarters:
            raise NotFoundError("No performance data found for the specified year")

        total_revenue = sum(q.revenue_cents for q in quarters)
        total_expenses = sum(q.expenses_cents for q in quarters)
        total_profit = sum(q.profit_cents for q in quarters)
        total_loss = sum(q.loss_cents for q in quarters)

        return AnnualPerformance(
            year=year,
            quarters_reported=len(quarters),
            total_revenue_cents=total_revenue,
            total_expenses_cents=total_expenses,
            total_profit_cents=total_profit,
            total_loss_cents=total_loss,
            net_result_cents=total_profit - total_loss,
            average_quarterly_revenue_cents=total_revenue // len(quarters),
            average_quarterly_profit_cents=total_profit // len(quarters),
        )

    def _get_business(self, business_id: uuid.UUID) -> Business:
        business = self.businesses.get_business(business_id)
        if business is None:
            raise NotFoundError("Business not found")
        return business
