"""Unit tests for financial calculations and proportional allocation"""

import uuid
import pytest
from dataclasses import dataclass
from crowdfund_gateway.domain.calculations import (
    allocate,
    apply_funding_delta,
    compute_distribution_amounts,
    compute_financials,
    derive_business_status,
    distribution_type,
    funding_progress,
    revenue_growth,
    share_percentage,
)
from crowdfund_gateway.domain.exceptions import InternalError


@dataclass
class StubInvestment:
    id: uuid.UUID
    investor_id: str
    amount_cents: int


def _investments(*amounts):
    return [StubInvestment(uuid.uuid4(), f"investor-{i}", amount) for i, amount in enumerate(amounts)]


def test_compute_financials_profit():
    """Revenue 50,000 vs expenses 30,000 gives 20,000 profit at 40% margin"""
    metrics = compute_financials(5_000_000, 3_000_000)

    assert metrics.profit_cents == 2_000_000
    assert metrics.loss_cents == 0
    assert metrics.profit_margin == pytest.approx(40.0)
    assert metrics.expense_ratio == pytest.approx(60.0)
    assert metrics.return_on_investment == pytest.approx(40.0)


def test_compute_financials_loss():
    metrics = compute_financials(1_000_000, 2_500_000)

    assert metrics.profit_cents == 0
    assert metrics.loss_cents == 1_500_000
    assert metrics.profit_margin == 0.0
    assert metrics.expense_ratio == pytest.approx(250.0)


def test_compute_financials_zero_revenue():
    """Ratios are 0 rather than undefined when there is no revenue"""
    metrics = compute_financials(0, 100_000)

    assert metrics.loss_cents == 100_000
    assert metrics.profit_margin == 0.0
    assert metrics.expense_ratio == 0.0


def test_compute_financials_break_even():
    metrics = compute_financials(500_000, 500_000)

    assert metrics.profit_cents == 0
    assert metrics.loss_cents == 0


def test_revenue_growth():
    assert revenue_growth(6_000_000, 5_000_000) == pytest.approx(20.0)
    assert revenue_growth(4_000_000, 5_000_000) == pytest.approx(-20.0)


def test_revenue_growth_without_baseline():
    assert revenue_growth(5_000_000, None) == 0.0
    assert revenue_growth(5_000_000, 0) == 0.0


def test_share_percentage():
    assert share_percentage(600_000, 1_000_000) == pytest.approx(60.0)
    assert share_percentage(600_000, 0) == 0.0


@pytest.mark.parametrize(
    "profit,loss,expected",
    [
        (100, 0, "profit"),
        (0, 100, "loss"),
        (100, 100, "mixed"),
        (0, 0, "neutral"),
    ],
)
def test_distribution_type(profit, loss, expected):
    assert distribution_type(profit, loss) == expected


def test_compute_distribution_amounts_rounds_to_minor_units():
    amounts = compute_distribution_amounts(100 / 3, 100_000, 0)

    assert amounts.profit_share_cents == 33_333
    assert amounts.loss_share_cents == 0
    assert amounts.net_distribution_cents == 33_333
    assert amounts.distribution_type == "profit"


def test_allocate_profit_split():
    """60/40 split of a 20,000 profit gives 12,000 and 8,000"""
    allocations = allocate(_investments(600_000, 400_000), 2_000_000, 0)

    assert [a.share_percentage for a in allocations] == [pytest.approx(60.0), pytest.approx(40.0)]
    assert [a.amounts.profit_share_cents for a in allocations] == [1_200_000, 800_000]
    assert all(a.amounts.loss_share_cents == 0 for a in allocations)
    assert all(a.total_business_investment_cents == 1_000_000 for a in allocations)


def test_allocate_loss_split():
    """A 15,000 loss costs the 60% holder 9,000"""
    allocations = allocate(_investments(600_000, 400_000), 0, 1_500_000)

    first = allocations[0].amounts
    assert first.loss_share_cents == 900_000
    assert first.net_distribution_cents == -900_000
    assert first.distribution_type == "loss"


def test_allocate_shares_sum_to_100():
    allocations = allocate(_investments(100_000, 250_000, 333_333, 70_000), 1_000_000, 0)

    assert sum(a.share_percentage for a in allocations) == pytest.approx(100.0)


def test_allocate_rounding_within_one_unit_per_investor():
    allocations = allocate(_investments(100_000, 100_000, 100_000), 100_000, 0)

    total = sum(a.amounts.profit_share_cents for a in allocations)
    assert abs(total - 100_000) <= len(allocations)


def test_allocate_no_investments():
    assert allocate([], 2_000_000, 0) == []


def test_funding_progress():
    assert funding_progress(500_000, 1_000_000) == 50
    assert funding_progress(1_200_000, 1_000_000) == 120
    assert funding_progress(100, 0) == 0


def test_derive_business_status():
    assert derive_business_status("open", 1_000_000, 1_000_000) == "funded"
    assert derive_business_status("funded", 999_999, 1_000_000) == "open"
    assert derive_business_status("closed", 2_000_000, 1_000_000) == "closed"


def test_apply_funding_delta_settlements_reach_goal():
    """Goal 10,000 filled by 6,000 + 4,000 ends funded with a 5,000 average"""
    state = apply_funding_delta(0, 0, 1_000_000, "open", 600_000, 1)
    state = apply_funding_delta(
        state.raised_amount_cents, state.total_investors, 1_000_000, state.status, 400_000, 1
    )

    assert state.raised_amount_cents == 1_000_000
    assert state.total_investors == 2
    assert state.average_investment_cents == 500_000
    assert state.funding_progress == 100
    assert state.status == "funded"


def test_apply_funding_delta_refund_reopens():
    state = apply_funding_delta(1_000_000, 2, 1_000_000, "funded", -400_000, -1)

    assert state.raised_amount_cents == 600_000
    assert state.total_investors == 1
    assert state.average_investment_cents == 600_000
    assert state.status == "open"


def test_apply_funding_delta_last_refund_zeroes_average():
    state = apply_funding_delta(600_000, 1, 1_000_000, "open", -600_000, -1)

    assert state.total_investors == 0
    assert state.average_investment_cents == 0


def test_apply_funding_delta_rejects_negative_totals():
    with pytest.raises(InternalError) as exc_info:
        apply_funding_delta(100_000, 1, 1_000_000, "open", -200_000, -1)

    assert exc_info.value.status_code == 500
