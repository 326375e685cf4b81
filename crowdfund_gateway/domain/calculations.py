"""Financial calculations - proportional allocation and derived-field rules"""

from typing import List, Optional, Sequence
from crowdfund_gateway.domain.exceptions import InternalError
from crowdfund_gateway.domain.models import Allocation, DistributionAmounts, FinancialMetrics, FundingState


def compute_financials(revenue_cents: int, expenses_cents: int) -> FinancialMetrics:
    """
    Derive profit/loss and ratios for a reporting period.

    Requirements:
    - profit = max(revenue - expenses, 0), loss = max(expenses - revenue, 0)
    - exactly one of profit/loss is zero (both when revenue == expenses)
    - margin and expense ratio only defined when revenue > 0, else 0
    """
    net_result = revenue_cents - expenses_cents
    profit = max(net_result, 0)
    loss = max(-net_result, 0)

    if revenue_cents > 0:
        profit_margin = profit / revenue_cents * 100
        expense_ratio = expenses_cents / revenue_cents * 100
    else:
        profit_margin = 0.0
        expense_ratio = 0.0

    return FinancialMetrics(
        profit_cents=profit,
        loss_cents=loss,
        profit_margin=profit_margin,
        expense_ratio=expense_ratio,
        # Simplified ROI until investment data is wired into the report
        return_on_investment=profit_margin,
    )


def revenue_growth(current_revenue_cents: int, previous_revenue_cents: Optional[int]) -> float:
    """Percentage change against the previous quarter, 0 without a usable baseline"""
    if not previous_revenue_cents or previous_revenue_cents <= 0:
        return 0.0
    return (current_revenue_cents - previous_revenue_cents) / previous_revenue_cents * 100


def share_percentage(amount_cents: int, total_cents: int) -> float:
    """An investment's share of all completed investment, as 0-100"""
    if total_cents <= 0:
        return 0.0
    return amount_cents / total_cents * 100


def distribution_type(profit_share_cents: int, loss_share_cents: int) -> str:
    if profit_share_cents > 0 and loss_share_cents > 0:
        return "mixed"
    if profit_share_cents > 0:
        return "profit"
    if loss_share_cents > 0:
        return "loss"
    return "neutral"


def compute_distribution_amounts(
    share_pct: float,
    business_profit_cents: int,
    business_loss_cents: int,
) -> DistributionAmounts:
    """
    Apply a share percentage to a period's profit and loss.

    Shares are rounded to whole minor units, so the per-investor shares of one
    performance sum to the business figure within one unit per investor.
    """
    profit_share = round(share_pct / 100 * business_profit_cents)
    loss_share = round(share_pct / 100 * business_loss_cents)

    return DistributionAmounts(
        profit_share_cents=profit_share,
        loss_share_cents=loss_share,
        net_distribution_cents=profit_share - loss_share,
        distribution_type=distribution_type(profit_share, loss_share),
    )


def allocate(investments: Sequence, business_profit_cents: int, business_loss_cents: int) -> List[Allocation]:
    """
    Split a performance result across completed investments.

    Each item needs `id`, `investor_id` and `amount_cents`. An empty sequence
    yields no allocations; otherwise the total is strictly positive because
    every investment amount is.
    """
    if not investments:
        return []

    total = sum(inv.amount_cents for inv in investments)

    allocations = []
    for inv in investments:
        share_pct = share_percentage(inv.amount_cents, total)
        allocations.append(
            Allocation(
                investment_id=inv.id,
                investor_id=inv.investor_id,
                investment_amount_cents=inv.amount_cents,
                total_business_investment_cents=total,
                share_percentage=share_pct,
                amounts=compute_distribution_amounts(share_pct, business_profit_cents, business_loss_cents),
            )
        )

    return allocations


def funding_progress(raised_amount_cents: int, funding_goal_cents: int) -> int:
    if funding_goal_cents <= 0:
        return 0
    return round(raised_amount_cents / funding_goal_cents * 100)


def derive_business_status(current_status: str, raised_amount_cents: int, funding_goal_cents: int) -> str:
    """
    Funding status rules:
    - open -> funded once raised >= goal
    - funded -> open when raised drops below goal (refund)
    - closed never changes here
    """
    if current_status == "closed":
        return current_status
    if raised_amount_cents >= funding_goal_cents:
        return "funded"
    return "open"


def apply_funding_delta(
    raised_amount_cents: int,
    total_investors: int,
    funding_goal_cents: int,
    current_status: str,
    amount_delta_cents: int,
    investor_delta: int,
) -> FundingState:
    """
    Apply a settlement (+) or refund (-) to business aggregates and re-derive status.

    Average investment is raised / investors in whole minor units, 0 with no investors.
    """
    raised = raised_amount_cents + amount_delta_cents
    investors = total_investors + investor_delta
    if raised < 0 or investors < 0:
        raise InternalError("Funding aggregates cannot go negative")

    average = raised // investors if investors > 0 else 0

    return FundingState(
        raised_amount_cents=raised,
        total_investors=investors,
        average_investment_cents=average,
        funding_progress=funding_progress(raised, funding_goal_cents),
        status=derive_business_status(current_status, raised, funding_goal_cents),
    )
