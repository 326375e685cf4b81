"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")

# Roles resolved by the identity layer
ROLE_INVESTOR = "investor"
ROLE_BUSINESS = "business"
ROLE_ADMIN = "admin"

BUSINESS_SECTORS = (
    "agriculture",
    "technology",
    "manufacturing",
    "retail",
    "services",
    "healthcare",
    "education",
    "finance",
    "real_estate",
    "energy",
    "transportation",
    "food_beverage",
    "other",
)

INVESTMENT_PAYMENT_METHODS = ("bank_transfer", "upi", "wallet", "cash", "other")
DISTRIBUTION_PAYMENT_METHODS = ("bank_transfer", "upi", "wallet", "other")
RISK_LEVELS = ("low", "medium", "high")

BREAKDOWN_FIELDS = (
    "operating_revenue_cents",
    "non_operating_revenue_cents",
    "operating_expenses_cents",
    "non_operating_expenses_cents",
    "taxes_cents",
    "depreciation_cents",
)


@dataclass(frozen=True)
class CallerContext:
    """Pre-validated caller identity handed over by the auth layer"""

    id: str
    role: str  # "investor", "business" or "admin"

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


@dataclass
class InvestmentTerms:
    """Informational terms, never used in allocation math"""

    expected_return: Optional[float] = None
    investment_period_months: Optional[int] = None
    risk_level: str = "medium"


@dataclass
class FinancialMetrics:
    """Profit/loss and ratios derived from revenue and expenses"""

    profit_cents: int
    loss_cents: int
    profit_margin: float
    expense_ratio: float
    return_on_investment: float


@dataclass
class DistributionAmounts:
    """Amounts derived from a distribution's calculation snapshot"""

    profit_share_cents: int
    loss_share_cents: int
    net_distribution_cents: int
    distribution_type: str  # "profit", "loss", "mixed" or "neutral"


@dataclass
class Allocation:
    """One investor's proportional slice of a performance result"""

    investment_id: object
    investor_id: str
    investment_amount_cents: int
    total_business_investment_cents: int
    share_percentage: float
    amounts: DistributionAmounts


@dataclass
class FundingState:
    """Business funding aggregates after applying a settlement delta"""

    raised_amount_cents: int
    total_investors: int
    average_investment_cents: int
    funding_progress: int
    status: str


@dataclass
class PaymentVerification:
    """Result returned by the payment verification collaborator"""

    success: bool
    payment_id: str
    amount_cents: int
    status: str
    method: str


@dataclass
class Page(Generic[T]):
    """One page of a filtered listing"""

    items: List[T]
    current_page: int
    total_pages: int
    total: int

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.current_page > 1


@dataclass
class InvestorDistributionSummary:
    """Totals over every distribution of one investor"""

    total_distributions: int = 0
    total_profit_received_cents: int = 0
    total_loss_incurred_cents: int = 0
    total_net_received_cents: int = 0
    pending_amount_cents: int = 0
    paid_amount_cents: int = 0


@dataclass
class DistributionTotals:
    """Approved/paid distribution totals for a business period"""

    total_profit_distributed_cents: int = 0
    total_loss_distributed_cents: int = 0
    total_net_distributed_cents: int = 0
    total_distributions: int = 0


@dataclass
class StatusBreakdown:
    status: str
    count: int
    total_amount_cents: int


@dataclass
class DistributionStats:
    """Global distribution statistics"""

    total_distributions: int = 0
    total_profit_distributed_cents: int = 0
    total_loss_distributed_cents: int = 0
    total_net_distributed_cents: int = 0
    pending_distributions: int = 0
    approved_distributions: int = 0
    paid_distributions: int = 0
    failed_distributions: int = 0
    cancelled_distributions: int = 0
    status_breakdown: List[StatusBreakdown] = field(default_factory=list)


@dataclass
class AnnualPerformance:
    """Totals over the verified/approved quarters of one year"""

    year: int
    quarters_reported: int
    total_revenue_cents: int
    total_expenses_cents: int
    total_profit_cents: int
    total_loss_cents: int
    net_result_cents: int
    average_quarterly_revenue_cents: int
    average_quarterly_profit_cents: int
