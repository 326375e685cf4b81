"""Integration tests for the investment lifecycle against the test database"""

import pytest
from sqlalchemy.orm import Session
from crowdfund_gateway.domain.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from crowdfund_gateway.domain.models import CallerContext, InvestmentTerms, PaymentVerification
from crowdfund_gateway.infrastructure.database.models import Business
from crowdfund_gateway.services.common import transaction
from crowdfund_gateway.services.investments import InvestmentService


class DecliningPaymentVerifier:
    def verify(self, transaction_id, amount_cents, method, reference=None):
        return PaymentVerification(
            success=False, payment_id="", amount_cents=amount_cents, status="declined", method=method
        )


def test_create_investment_starts_pending(db: Session, business: Business, investor_a: CallerContext):
    investment = InvestmentService(db).create_investment(
        investor_a,
        business.id,
        600_000,
        payment_method="upi",
        terms=InvestmentTerms(expected_return=12.5, investment_period_months=24, risk_level="high"),
    )

    assert investment.status == "pending"
    assert investment.payment_status == "pending"
    assert investment.transaction_id.startswith("TXN_")
    assert investment.risk_level == "high"

    db.refresh(business)
    assert business.raised_amount_cents == 0
    assert business.total_investors == 0


def test_settlements_fill_funding_goal(db: Session, business: Business, invest, investor_a, investor_b):
    invest(investor_a, business, 600_000)
    invest(investor_b, business, 400_000)

    db.refresh(business)
    assert business.status == "funded"
    assert business.raised_amount_cents == 1_000_000
    assert business.total_investors == 2
    assert business.average_investment_cents == 500_000
    assert business.funding_progress == 100


def test_duplicate_active_investment_conflicts(db: Session, business: Business, investor_a):
    service = InvestmentService(db)
    service.create_investment(investor_a, business.id, 100_000)

    with pytest.raises(ConflictError) as exc_info:
        service.create_investment(investor_a, business.id, 200_000)
    assert exc_info.value.message == "You have already invested in this business"


def test_reinvest_after_cancellation(db: Session, business: Business, investor_a):
    service = InvestmentService(db)
    first = service.create_investment(investor_a, business.id, 100_000)
    service.cancel_investment(investor_a, first.id)

    second = service.create_investment(investor_a, business.id, 200_000)
    assert second.status == "pending"


def test_owner_cannot_invest_in_own_business(db: Session, business: Business):
    owner_as_investor = CallerContext(id=business.owner_id, role="investor")

    with pytest.raises(ForbiddenError):
        InvestmentService(db).create_investment(owner_as_investor, business.id, 100_000)


def test_only_investors_can_invest(db: Session, business: Business, admin):
    with pytest.raises(ForbiddenError):
        InvestmentService(db).create_investment(admin, business.id, 100_000)


def test_investment_amount_validated(db: Session, business: Business, investor_a):
    with pytest.raises(ValidationError) as exc_info:
        InvestmentService(db).create_investment(investor_a, business.id, 500)

    assert exc_info.value.errors[0].startswith("amount_cents:")


def test_investment_in_unknown_business(db: Session, investor_a):
    with pytest.raises(NotFoundError):
        InvestmentService(db).create_investment(investor_a, "00000000-0000-0000-0000-000000000000", 100_000)


def test_funded_business_rejects_new_investments(db: Session, business: Business, invest, investor_a, investor_b):
    invest(investor_a, business, 1_000_000)

    with pytest.raises(InvalidStateError):
        InvestmentService(db).create_investment(investor_b, business.id, 100_000)


def test_double_settlement_credits_once(db: Session, business: Business, invest, investor_a):
    investment = invest(investor_a, business, 600_000)

    with pytest.raises(InvalidStateError):
        InvestmentService(db).settle_investment(investor_a, investment.id)

    db.refresh(business)
    assert business.raised_amount_cents == 600_000
    assert business.total_investors == 1


def test_failed_payment_verification_leaves_investment_pending(db: Session, business: Business, investor_a):
    service = InvestmentService(db, payment_verifier=DecliningPaymentVerifier())
    investment = service.create_investment(investor_a, business.id, 100_000)

    with pytest.raises(ValidationError) as exc_info:
        service.settle_investment(investor_a, investment.id, payment_reference="ref-1")
    assert exc_info.value.errors[0].startswith("payment_reference:")

    db.refresh(investment)
    db.refresh(business)
    assert investment.status == "pending"
    assert business.raised_amount_cents == 0


def test_only_the_investor_settles(db: Session, business: Business, investor_a, investor_b):
    service = InvestmentService(db)
    investment = service.create_investment(investor_a, business.id, 100_000)

    with pytest.raises(ForbiddenError):
        service.settle_investment(investor_b, investment.id)


def test_cancel_pending_investment(db: Session, business: Business, investor_a):
    service = InvestmentService(db)
    investment = service.create_investment(investor_a, business.id, 100_000)

    cancelled = service.cancel_investment(investor_a, investment.id)

    assert cancelled.status == "failed"
    assert cancelled.notes == "Cancelled by investor"


def test_cancel_completed_investment_rejected(db: Session, business: Business, invest, investor_a):
    investment = invest(investor_a, business, 100_000)

    with pytest.raises(InvalidStateError):
        InvestmentService(db).cancel_investment(investor_a, investment.id)

    db.refresh(investment)
    assert investment.status == "completed"


def test_refund_decrements_business_totals(db: Session, business: Business, invest, investor_a, investor_b, admin):
    invest(investor_a, business, 600_000)
    refunded = invest(investor_b, business, 400_000)

    result = InvestmentService(db).refund_investment(admin, refunded.id, reason="Investor request")

    assert result.status == "refunded"
    assert result.refund_amount_cents == 400_000
    assert result.refund_processed_by == admin.id
    db.refresh(business)
    assert business.raised_amount_cents == 600_000
    assert business.total_investors == 1
    assert business.average_investment_cents == 600_000
    assert business.status == "open"


def test_refund_requires_admin(db: Session, business: Business, invest, investor_a):
    investment = invest(investor_a, business, 100_000)

    with pytest.raises(ForbiddenError):
        InvestmentService(db).refund_investment(investor_a, investment.id)


def test_refund_of_pending_investment_rejected(db: Session, business: Business, investor_a, admin):
    service = InvestmentService(db)
    investment = service.create_investment(investor_a, business.id, 100_000)

    with pytest.raises(InvalidStateError):
        service.refund_investment(admin, investment.id)


def test_share_percentage_computed_on_demand(db: Session, business: Business, invest, investor_a, investor_b):
    service = InvestmentService(db)
    first = invest(investor_a, business, 600_000)
    assert service.share_percentage(first) == pytest.approx(100.0)

    invest(investor_b, business, 400_000)
    assert service.share_percentage(first) == pytest.approx(60.0)


def test_investment_visibility(db: Session, business: Business, invest, investor_a, investor_b, owner, admin):
    service = InvestmentService(db)
    investment = invest(investor_a, business, 100_000)

    assert service.get_investment(investor_a, investment.id).id == investment.id
    assert service.get_investment(owner, investment.id).id == investment.id
    assert service.get_investment(admin, investment.id).id == investment.id
    with pytest.raises(ForbiddenError):
        service.get_investment(investor_b, investment.id)


def test_list_business_investments(db: Session, business: Business, invest, investor_a, investor_b, owner):
    service = InvestmentService(db)
    invest(investor_a, business, 600_000)
    service.create_investment(investor_b, business.id, 100_000)

    page, total = service.list_business_investments(owner, business.id)
    assert page.total == 2
    assert total == 600_000

    completed, _ = service.list_business_investments(owner, business.id, status="completed")
    assert completed.total == 1


def test_list_investor_investments(db: Session, business: Business, invest, investor_a):
    invest(investor_a, business, 100_000)

    page = InvestmentService(db).list_investor_investments(investor_a, page=1, limit=5)

    assert page.total == 1
    assert page.current_page == 1
    assert page.items[0].investor_id == investor_a.id


def test_settlements_from_separate_sessions_serialize_on_business(
    db: Session, business: Business, investor_a, investor_b, session_factory
):
    first_db, second_db = session_factory(), session_factory()
    first = InvestmentService(first_db).create_investment(investor_a, business.id, 600_000)
    second = InvestmentService(second_db).create_investment(investor_b, business.id, 400_000)

    # Second session holds the business as it was before the first settlement
    stale = second_db.get(Business, business.id)
    assert stale.raised_amount_cents == 0

    InvestmentService(first_db).settle_investment(investor_a, first.id)
    InvestmentService(second_db).settle_investment(investor_b, second.id)

    db.refresh(business)
    service = InvestmentService(db)
    assert business.raised_amount_cents == service.investments.get_total_completed_investment(business.id)
    assert business.raised_amount_cents == 1_000_000
    assert business.total_investors == 2
    assert business.average_investment_cents == 500_000
    assert business.status == "funded"


def test_stale_business_write_conflicts(db: Session, business: Business, invest, investor_a, session_factory):
    other_db = session_factory()
    stale = other_db.get(Business, business.id)
    stale_version = stale.version

    invest(investor_a, business, 100_000)
    db.refresh(business)
    assert business.version > stale_version

    with pytest.raises(ConflictError):
        with transaction(other_db):
            stale.name = "Renamed Farms"

    other_db.refresh(stale)
    assert stale.name == "Green Valley Farms"
    assert stale.raised_amount_cents == 100_000


def test_unknown_status_filter_rejected(db: Session, business: Business, investor_a, owner):
    service = InvestmentService(db)

    with pytest.raises(ValidationError) as exc_info:
        service.list_investor_investments(investor_a, status="bogus")
    assert exc_info.value.errors[0].startswith("status:")

    with pytest.raises(ValidationError):
        service.list_business_investments(owner, business.id, status="settled")
