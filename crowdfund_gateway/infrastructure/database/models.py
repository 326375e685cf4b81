"""SQLAlchemy ORM models for businesses, investments, performance reports and distributions"""

import uuid
from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from crowdfund_gateway.domain.calculations import compute_distribution_amounts, compute_financials
from crowdfund_gateway.utils.date_utils import period_label, utcnow

Base = declarative_base()


class Business(Base):
    """Business seeking funding; funding aggregates are maintained by settlements"""

    __tablename__ = "business"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    sector = Column(Text, nullable=False, index=True)
    owner_id = Column(Text, nullable=False, index=True)
    funding_goal_cents = Column(BigInteger, nullable=False)
    raised_amount_cents = Column(BigInteger, nullable=False, default=0)
    status = Column(Text, nullable=False, default="open", index=True)  # open | funded | closed

    # Metrics recomputed on each settlement/refund
    total_investors = Column(Integer, nullable=False, default=0)
    average_investment_cents = Column(BigInteger, nullable=False, default=0)
    funding_progress = Column(Integer, nullable=False, default=0)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    investments = relationship("Investment", back_populates="business")
    performances = relationship("BusinessPerformance", back_populates="business")

    # Optimistic concurrency: every UPDATE checks and bumps the version
    __mapper_args__ = {"version_id_col": version}

    @property
    def remaining_funding_cents(self) -> int:
        return max(0, self.funding_goal_cents - (self.raised_amount_cents or 0))

    @property
    def is_fully_funded(self) -> bool:
        return (self.raised_amount_cents or 0) >= self.funding_goal_cents


class Investment(Base):
    """Single investor commitment into a business"""

    __tablename__ = "investment"
    __table_args__ = (
        # One pending/completed investment per (investor, business)
        Index(
            "uq_investment_active_pair",
            "investor_id",
            "business_id",
            unique=True,
            postgresql_where=text("status IN ('pending', 'completed')"),
            sqlite_where=text("status IN ('pending', 'completed')"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    investor_id = Column(Text, nullable=False, index=True)
    business_id = Column(UUID(as_uuid=True), ForeignKey("business.id", ondelete="RESTRICT"), nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    status = Column(Text, nullable=False, default="pending", index=True)  # pending | completed | refunded | failed

    # Payment
    transaction_id = Column(Text, nullable=True, unique=True)
    payment_method = Column(Text, nullable=False, default="bank_transfer")
    payment_status = Column(Text, nullable=False, default="pending")  # pending | completed | failed
    payment_reference = Column(Text, nullable=True, index=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    # Terms (informational)
    expected_return = Column(Float, nullable=True)
    investment_period_months = Column(Integer, nullable=True)
    risk_level = Column(Text, nullable=False, default="medium")

    # Tracking
    invested_at = Column(DateTime(timezone=True), nullable=True)
    last_updated = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    notes = Column(Text, nullable=True)

    # Refund (only when status == refunded)
    refund_amount_cents = Column(BigInteger, nullable=True)
    refund_reason = Column(Text, nullable=True)
    refund_processed_at = Column(DateTime(timezone=True), nullable=True)
    refund_processed_by = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    business = relationship("Business", back_populates="investments")
    distributions = relationship("Distribution", back_populates="investment")


class BusinessPerformance(Base):
    """Quarterly financial report for a business"""

    __tablename__ = "business_performance"
    __table_args__ = (UniqueConstraint("business_id", "year", "quarter", name="uq_performance_period"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(UUID(as_uuid=True), ForeignKey("business.id", ondelete="RESTRICT"), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    quarter = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    revenue_cents = Column(BigInteger, nullable=False)
    expenses_cents = Column(BigInteger, nullable=False)

    # Derived by compute_financials on every persist
    profit_cents = Column(BigInteger, nullable=False, default=0)
    loss_cents = Column(BigInteger, nullable=False, default=0)
    profit_margin = Column(Float, nullable=False, default=0.0)
    expense_ratio = Column(Float, nullable=False, default=0.0)
    return_on_investment = Column(Float, nullable=False, default=0.0)
    revenue_growth = Column(Float, nullable=False, default=0.0)

    # Breakdown (informational)
    operating_revenue_cents = Column(BigInteger, nullable=False, default=0)
    non_operating_revenue_cents = Column(BigInteger, nullable=False, default=0)
    operating_expenses_cents = Column(BigInteger, nullable=False, default=0)
    non_operating_expenses_cents = Column(BigInteger, nullable=False, default=0)
    taxes_cents = Column(BigInteger, nullable=False, default=0)
    depreciation_cents = Column(BigInteger, nullable=False, default=0)

    status = Column(Text, nullable=False, default="draft", index=True)  # draft | submitted | verified | approved
    submitted_by = Column(Text, nullable=False, index=True)
    verified_by = Column(Text, nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(Text, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    business = relationship("Business", back_populates="performances")
    distributions = relationship("Distribution", back_populates="performance")

    @property
    def net_result_cents(self) -> int:
        return self.revenue_cents - self.expenses_cents

    @property
    def period_label(self) -> str:
        return period_label(self.year, self.quarter)


class Distribution(Base):
    """One investor's profit/loss allocation for one approved performance report"""

    __tablename__ = "distribution"
    __table_args__ = (
        UniqueConstraint("performance_id", "investment_id", name="uq_distribution_performance_investment"),
        Index("ix_distribution_business_period", "business_id", "year", "quarter"),
        Index("ix_distribution_investor_status", "investor_id", "status"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(UUID(as_uuid=True), ForeignKey("business.id", ondelete="RESTRICT"), nullable=False, index=True)
    performance_id = Column(
        UUID(as_uuid=True), ForeignKey("business_performance.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    investor_id = Column(Text, nullable=False, index=True)
    investment_id = Column(UUID(as_uuid=True), ForeignKey("investment.id", ondelete="RESTRICT"), nullable=False, index=True)

    # Calculation snapshot, frozen at creation
    investment_amount_cents = Column(BigInteger, nullable=False)
    total_business_investment_cents = Column(BigInteger, nullable=False)
    share_percentage = Column(Float, nullable=False)
    business_profit_cents = Column(BigInteger, nullable=False)
    business_loss_cents = Column(BigInteger, nullable=False, default=0)

    # Derived by compute_distribution_amounts on every persist
    profit_share_cents = Column(BigInteger, nullable=False, default=0)
    loss_share_cents = Column(BigInteger, nullable=False, default=0)
    net_distribution_cents = Column(BigInteger, nullable=False, default=0)
    distribution_type = Column(Text, nullable=False, default="neutral")  # profit | loss | mixed | neutral
    tax_deducted_cents = Column(BigInteger, nullable=False, default=0)
    net_amount_after_tax_cents = Column(BigInteger, nullable=False, default=0)

    status = Column(Text, nullable=False, default="pending", index=True)  # pending | approved | paid | failed | cancelled
    year = Column(Integer, nullable=False)
    quarter = Column(Integer, nullable=False)
    distribution_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Approval
    approved_by = Column(Text, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approval_notes = Column(String(500), nullable=True)

    # Payment
    payment_method = Column(Text, nullable=True)
    payment_transaction_id = Column(Text, nullable=True, unique=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    processed_by = Column(Text, nullable=True)
    failure_reason = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    # Notification
    investor_notified = Column(Boolean, nullable=False, default=False)
    notification_sent_at = Column(DateTime(timezone=True), nullable=True)

    # Audit
    created_by = Column(Text, nullable=False)
    last_modified_by = Column(Text, nullable=True)
    last_modified_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    performance = relationship("BusinessPerformance", back_populates="distributions")
    investment = relationship("Investment", back_populates="distributions")

    @property
    def period_label(self) -> str:
        return period_label(self.year, self.quarter)


@event.listens_for(BusinessPerformance, "before_insert")
@event.listens_for(BusinessPerformance, "before_update")
def _recompute_financials(mapper, connection, target: BusinessPerformance) -> None:
    metrics = compute_financials(target.revenue_cents, target.expenses_cents)
    target.profit_cents = metrics.profit_cents
    target.loss_cents = metrics.loss_cents
    target.profit_margin = metrics.profit_margin
    target.expense_ratio = metrics.expense_ratio
    target.return_on_investment = metrics.return_on_investment


@event.listens_for(Distribution, "before_insert")
@event.listens_for(Distribution, "before_update")
def _recompute_distribution_amounts(mapper, connection, target: Distribution) -> None:
    amounts = compute_distribution_amounts(
        target.share_percentage,
        target.business_profit_cents,
        target.business_loss_cents or 0,
    )
    target.profit_share_cents = amounts.profit_share_cents
    target.loss_share_cents = amounts.loss_share_cents
    target.net_distribution_cents = amounts.net_distribution_cents
    target.distribution_type = amounts.distribution_type
    target.net_amount_after_tax_cents = amounts.net_distribution_cents - (target.tax_deducted_cents or 0)
    target.last_modified_at = utcnow()
