"""Data access layer for crowdfunding entities"""

import math
import uuid
from typing import Iterable, List, Optional
from sqlalchemy import case, func
from sqlalchemy.orm import Query, Session
from crowdfund_gateway.infrastructure.database.models import Business, BusinessPerformance, Distribution, Investment
from crowdfund_gateway.domain.models import (
    DistributionStats,
    DistributionTotals,
    InvestorDistributionSummary,
    Page,
    StatusBreakdown,
)
from crowdfund_gateway.domain.states import ACTIVE_INVESTMENT_STATUSES, REPORTED_PERFORMANCE_STATUSES


def paginate(query: Query, page: int = 1, limit: int = 10) -> Page:
    """Apply offset/limit to a query and wrap the slice with page counters"""
    page = max(page, 1)
    limit = max(limit, 1)
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return Page(
        items=items,
        current_page=page,
        total_pages=math.ceil(total / limit),
        total=total,
    )


class BusinessRepository:
    """Repository for businesses"""

    def __init__(self, db: Session):
        self.db = db

    def create_business(self, **fields) -> Business:
        db_business = Business(**fields)
        self.db.add(db_business)
        self.db.flush()
        return db_business

    def get_business(self, business_id: uuid.UUID) -> Optional[Business]:
        return self.db.get(Business, business_id)

    def get_business_for_update(self, business_id: uuid.UUID) -> Optional[Business]:
        """Lock the business row for the rest of the transaction and reload its aggregates"""
        return (
            self.db.query(Business)
            .filter(Business.id == business_id)
            .with_for_update()
            .populate_existing()
            .first()
        )


class InvestmentRepository:
    """Repository for investments"""

    def __init__(self, db: Session):
        self.db = db

    def create_investment(self, **fields) -> Investment:
        db_investment = Investment(**fields)
        self.db.add(db_investment)
        self.db.flush()  # Get ID and hit unique constraints without committing
        return db_investment

    def get_investment(self, investment_id: uuid.UUID) -> Optional[Investment]:
        return self.db.get(Investment, investment_id)

    def get_investment_for_update(self, investment_id: uuid.UUID) -> Optional[Investment]:
        return (
            self.db.query(Investment)
            .filter(Investment.id == investment_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def find_active_investment(self, investor_id: str, business_id: uuid.UUID) -> Optional[Investment]:
        """Pending or completed investment of one investor in one business"""
        return (
            self.db.query(Investment)
            .filter(
                Investment.investor_id == investor_id,
                Investment.business_id == business_id,
                Investment.status.in_(ACTIVE_INVESTMENT_STATUSES),
            )
            .first()
        )

    def get_completed_investments(self, business_id: uuid.UUID) -> List[Investment]:
        """Completed investments of a business, largest first"""
        return (
            self.db.query(Investment)
            .filter(Investment.business_id == business_id, Investment.status == "completed")
            .order_by(Investment.amount_cents.desc(), Investment.created_at)
            .all()
        )

    def get_total_completed_investment(self, business_id: uuid.UUID) -> int:
        total = (
            self.db.query(func.coalesce(func.sum(Investment.amount_cents), 0))
            .filter(Investment.business_id == business_id, Investment.status == "completed")
            .scalar()
        )
        return int(total)

    def get_investments_by_investor(
        self, investor_id: str, status: Optional[str] = None, page: int = 1, limit: int = 10
    ) -> Page:
        query = self.db.query(Investment).filter(Investment.investor_id == investor_id)
        if status:
            query = query.filter(Investment.status == status)
        return paginate(query.order_by(Investment.created_at.desc()), page, limit)

    def get_investments_by_business(
        self, business_id: uuid.UUID, status: Optional[str] = None, page: int = 1, limit: int = 10
    ) -> Page:
        query = self.db.query(Investment).filter(Investment.business_id == business_id)
        if status:
            query = query.filter(Investment.status == status)
        return paginate(query.order_by(Investment.created_at.desc()), page, limit)


class PerformanceRepository:
    """Repository for quarterly performance reports"""

    def __init__(self, db: Session):
        self.db = db

    def create_performance(self, **fields) -> BusinessPerformance:
        db_performance = BusinessPerformance(**fields)
        self.db.add(db_performance)
        self.db.flush()
        return db_performance

    def get_performance(self, performance_id: uuid.UUID) -> Optional[BusinessPerformance]:
        return self.db.get(BusinessPerformance, performance_id)

    def get_performance_for_update(self, performance_id: uuid.UUID) -> Optional[BusinessPerformance]:
        return (
            self.db.query(BusinessPerformance)
            .filter(BusinessPerformance.id == performance_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def find_by_period(self, business_id: uuid.UUID, year: int, quarter: int) -> Optional[BusinessPerformance]:
        return (
            self.db.query(BusinessPerformance)
            .filter(
                BusinessPerformance.business_id == business_id,
                BusinessPerformance.year == year,
                BusinessPerformance.quarter == quarter,
            )
            .first()
        )

    def find_reported_period(self, business_id: uuid.UUID, year: int, quarter: int) -> Optional[BusinessPerformance]:
        """Verified or approved report for a period (growth baseline)"""
        return (
            self.db.query(BusinessPerformance)
            .filter(
                BusinessPerformance.business_id == business_id,
                BusinessPerformance.year == year,
                BusinessPerformance.quarter == quarter,
                BusinessPerformance.status.in_(REPORTED_PERFORMANCE_STATUSES),
            )
            .first()
        )

    def get_performance_by_business(
        self,
        business_id: uuid.UUID,
        year: Optional[int] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page:
        query = self.db.query(BusinessPerformance).filter(BusinessPerformance.business_id == business_id)
        if year:
            query = query.filter(BusinessPerformance.year == year)
        if status:
            query = query.filter(BusinessPerformance.status == status)
        query = query.order_by(BusinessPerformance.year.desc(), BusinessPerformance.quarter.desc())
        return paginate(query, page, limit)

    def get_reported_quarters(self, business_id: uuid.UUID, year: int) -> List[BusinessPerformance]:
        return (
            self.db.query(BusinessPerformance)
            .filter(
                BusinessPerformance.business_id == business_id,
                BusinessPerformance.year == year,
                BusinessPerformance.status.in_(REPORTED_PERFORMANCE_STATUSES),
            )
            .order_by(BusinessPerformance.quarter)
            .all()
        )


class DistributionRepository:
    """Repository for investor distributions"""

    def __init__(self, db: Session):
        self.db = db

    def create_distributions(self, distributions: Iterable[Distribution]) -> List[Distribution]:
        """Stage a batch; the caller's transaction decides whether it lands"""
        batch = list(distributions)
        self.db.add_all(batch)
        self.db.flush()
        return batch

    def get_distribution(self, distribution_id: uuid.UUID) -> Optional[Distribution]:
        return self.db.get(Distribution, distribution_id)

    def get_distribution_for_update(self, distribution_id: uuid.UUID) -> Optional[Distribution]:
        return (
            self.db.query(Distribution)
            .filter(Distribution.id == distribution_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def count_for_performance(self, performance_id: uuid.UUID) -> int:
        return self.db.query(Distribution).filter(Distribution.performance_id == performance_id).count()

    def payment_transaction_exists(self, transaction_id: str) -> bool:
        return (
            self.db.query(Distribution.id).filter(Distribution.payment_transaction_id == transaction_id).first()
            is not None
        )

    def _filtered(
        self,
        investor_id: Optional[str] = None,
        business_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        year: Optional[int] = None,
        quarter: Optional[int] = None,
    ) -> Query:
        query = self.db.query(Distribution)
        if investor_id:
            query = query.filter(Distribution.investor_id == investor_id)
        if business_id:
            query = query.filter(Distribution.business_id == business_id)
        if status:
            query = query.filter(Distribution.status == status)
        if year:
            query = query.filter(Distribution.year == year)
        if quarter:
            query = query.filter(Distribution.quarter == quarter)
        return query

    def get_distributions(
        self,
        investor_id: Optional[str] = None,
        business_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        year: Optional[int] = None,
        quarter: Optional[int] = None,
        order_by_net: bool = False,
        page: int = 1,
        limit: int = 10,
    ) -> Page:
        query = self._filtered(investor_id, business_id, status, year, quarter)
        if order_by_net:
            query = query.order_by(Distribution.net_distribution_cents.desc(), Distribution.created_at.desc())
        else:
            query = query.order_by(Distribution.created_at.desc())
        return paginate(query, page, limit)

    def get_investor_summary(self, investor_id: str) -> InvestorDistributionSummary:
        row = (
            self.db.query(
                func.count(Distribution.id),
                func.coalesce(func.sum(Distribution.profit_share_cents), 0),
                func.coalesce(func.sum(Distribution.loss_share_cents), 0),
                func.coalesce(func.sum(Distribution.net_distribution_cents), 0),
                func.coalesce(
                    func.sum(case((Distribution.status == "pending", Distribution.net_distribution_cents), else_=0)), 0
                ),
                func.coalesce(
                    func.sum(case((Distribution.status == "paid", Distribution.net_distribution_cents), else_=0)), 0
                ),
            )
            .filter(Distribution.investor_id == investor_id)
            .one()
        )
        return InvestorDistributionSummary(
            total_distributions=int(row[0]),
            total_profit_received_cents=int(row[1]),
            total_loss_incurred_cents=int(row[2]),
            total_net_received_cents=int(row[3]),
            pending_amount_cents=int(row[4]),
            paid_amount_cents=int(row[5]),
        )

    def get_business_totals(
        self, business_id: uuid.UUID, year: Optional[int] = None, quarter: Optional[int] = None
    ) -> DistributionTotals:
        """Approved and paid distributions of a business, optionally narrowed to a period"""
        query = self._filtered(business_id=business_id, year=year, quarter=quarter).filter(
            Distribution.status.in_(("approved", "paid"))
        )
        row = query.with_entities(
            func.coalesce(func.sum(Distribution.profit_share_cents), 0),
            func.coalesce(func.sum(Distribution.loss_share_cents), 0),
            func.coalesce(func.sum(Distribution.net_distribution_cents), 0),
            func.count(Distribution.id),
        ).one()
        return DistributionTotals(
            total_profit_distributed_cents=int(row[0]),
            total_loss_distributed_cents=int(row[1]),
            total_net_distributed_cents=int(row[2]),
            total_distributions=int(row[3]),
        )

    def get_status_breakdown(self, year: Optional[int] = None, quarter: Optional[int] = None) -> List[StatusBreakdown]:
        rows = (
            self._filtered(year=year, quarter=quarter)
            .with_entities(
                Distribution.status,
                func.count(Distribution.id),
                func.coalesce(func.sum(Distribution.net_distribution_cents), 0),
            )
            .group_by(Distribution.status)
            .order_by(Distribution.status)
            .all()
        )
        return [StatusBreakdown(status=status, count=int(count), total_amount_cents=int(total)) for status, count, total in rows]

    def get_stats(self, year: Optional[int] = None, quarter: Optional[int] = None) -> DistributionStats:
        row = (
            self._filtered(year=year, quarter=quarter)
            .with_entities(
                func.count(Distribution.id),
                func.coalesce(func.sum(Distribution.profit_share_cents), 0),
                func.coalesce(func.sum(Distribution.loss_share_cents), 0),
                func.coalesce(func.sum(Distribution.net_distribution_cents), 0),
            )
            .one()
        )
        breakdown = self.get_status_breakdown(year, quarter)
        counts = {item.status: item.count for item in breakdown}
        return DistributionStats(
            total_distributions=int(row[0]),
            total_profit_distributed_cents=int(row[1]),
            total_loss_distributed_cents=int(row[2]),
            total_net_distributed_cents=int(row[3]),
            pending_distributions=counts.get("pending", 0),
            approved_distributions=counts.get("approved", 0),
            paid_distributions=counts.get("paid", 0),
            failed_distributions=counts.get("failed", 0),
            cancelled_distributions=counts.get("cancelled", 0),
            status_breakdown=breakdown,
        )
