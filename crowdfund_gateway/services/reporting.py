"""Read-only distribution reports computed from the live distribution set"""

import uuid
from dataclasses import dataclass
from typing import Optional, Union
from sqlalchemy.orm import Session
from crowdfund_gateway.domain.exceptions import NotFoundError
from crowdfund_gateway.domain.models import (
    ROLE_INVESTOR,
    CallerContext,
    DistributionStats,
    DistributionTotals,
    InvestorDistributionSummary,
    Page,
)
from crowdfund_gateway.domain.states import DISTRIBUTION_STATUSES
from crowdfund_gateway.domain.validation import validate_status_filter
from crowdfund_gateway.infrastructure.database.repositories import BusinessRepository, DistributionRepository
from crowdfund_gateway.services.common import require_admin, require_owner_or_admin, require_role
from crowdfund_gateway.utils.ids import parse_id


@dataclass
class InvestorDistributionReport:
    page: Page
    summary: InvestorDistributionSummary


@dataclass
class BusinessDistributionReport:
    page: Page
    totals: DistributionTotals


class ReportingService:
    def __init__(self, db: Session):
        self.db = db
        self.businesses = BusinessRepository(db)
        self.distributions = DistributionRepository(db)

    def list_investor_distributions(
        self,
        ctx: CallerContext,
        status: Optional[str] = None,
        year: Optional[int] = None,
        quarter: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
    ) -> InvestorDistributionReport:
        """Caller's distributions, newest first, with a summary over all of them"""
        require_role(ctx, ROLE_INVESTOR)
        validate_status_filter(status, DISTRIBUTION_STATUSES)
        return InvestorDistributionReport(
            page=self.distributions.get_distributions(
                investor_id=ctx.id, status=status, year=year, quarter=quarter, page=page, limit=limit
            ),
            summary=self.distributions.get_investor_summary(ctx.id),
        )

    def list_business_distributions(
        self,
        ctx: CallerContext,
        business_id: Union[str, uuid.UUID],
        year: Optional[int] = None,
        quarter: Optional[int] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> BusinessDistributionReport:
        """A business's distributions, largest net first, with approved/paid totals for the period"""
        validate_status_filter(status, DISTRIBUTION_STATUSES)
        business = self.businesses.get_business(parse_id(business_id, "business_id"))
        if business is None:
            raise NotFoundError("Business not found")
        require_owner_or_admin(ctx, business.owner_id)

        return BusinessDistributionReport(
            page=self.distributions.get_distributions(
                business_id=business.id,
                status=status,
                year=year,
                quarter=quarter,
                order_by_net=True,
                page=page,
                limit=limit,
            ),
            totals=self.distributions.get_business_totals(business.id, year=year, quarter=quarter),
        )

    def list_all_distributions(
        self,
        ctx: CallerContext,
        status: Optional[str] = None,
        year: Optional[int] = None,
        quarter: Optional[int] = None,
        business_id: Optional[Union[str, uuid.UUID]] = None,
        investor_id: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page:
        require_admin(ctx)
        validate_status_filter(status, DISTRIBUTION_STATUSES)
        return self.distributions.get_distributions(
            investor_id=investor_id,
            business_id=parse_id(business_id, "business_id") if business_id else None,
            status=status,
            year=year,
            quarter=quarter,
            page=page,
            limit=limit,
        )

    def distribution_stats(
        self,
        ctx: CallerContext,
        year: Optional[int] = None,
        quarter: Optional[int] = None,
    ) -> DistributionStats:
        require_admin(ctx)
        return self.distributions.get_stats(year=year, quarter=quarter)
