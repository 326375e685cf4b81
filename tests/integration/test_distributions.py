"""Integration tests for distribution approval, payout, failure and cancellation"""

import pytest
from sqlalchemy.orm import Session
from crowdfund_gateway.domain.exceptions import ConflictError, ForbiddenError, InvalidStateError, ValidationError
from crowdfund_gateway.infrastructure.database.models import Business, Distribution
from crowdfund_gateway.services.distributions import DistributionService
from crowdfund_gateway.services.performance import PerformanceService


@pytest.fixture
def distributions(db: Session, business: Business, invest, investor_a, investor_b, owner, admin):
    """Pending distributions for a 20,000 profit split 60/40"""
    invest(investor_a, business, 600_000)
    invest(investor_b, business, 400_000)
    service = PerformanceService(db)
    performance = service.submit_performance(owner, business.id, 2024, 2, 5_000_000, 3_000_000)
    service.verify_performance(admin, performance.id)
    result = service.approve_performance(admin, performance.id)
    return {d.investor_id: d for d in result.distributions}


def test_approve_distribution(db: Session, distributions, investor_a, admin):
    distribution = DistributionService(db).approve_distribution(
        admin, distributions[investor_a.id].id, notes="Quarterly payout"
    )

    assert distribution.status == "approved"
    assert distribution.approved_by == admin.id
    assert distribution.approval_notes == "Quarterly payout"
    assert distribution.last_modified_by == admin.id


def test_approve_distribution_requires_admin(db: Session, distributions, investor_a, owner):
    with pytest.raises(ForbiddenError):
        DistributionService(db).approve_distribution(owner, distributions[investor_a.id].id)


def test_approval_notes_length_limit(db: Session, distributions, investor_a, admin):
    with pytest.raises(ValidationError):
        DistributionService(db).approve_distribution(admin, distributions[investor_a.id].id, notes="x" * 501)


def test_pay_approved_distribution_notifies_investor(db: Session, distributions, investor_a, admin):
    sent = []
    service = DistributionService(db, notify=lambda investor_id, distribution_id: sent.append((investor_id, distribution_id)))
    distribution_id = distributions[investor_a.id].id
    service.approve_distribution(admin, distribution_id)

    distribution = service.mark_distribution_paid(admin, distribution_id, "bank_transfer", transaction_id="PAYOUT-1")

    assert distribution.status == "paid"
    assert distribution.payment_transaction_id == "PAYOUT-1"
    assert distribution.processed_by == admin.id
    assert distribution.processed_at is not None
    assert sent == [(investor_a.id, str(distribution_id))]
    assert distribution.investor_notified is True
    assert distribution.notification_sent_at is not None


def test_notification_failure_keeps_paid_state(db: Session, distributions, investor_a, admin):
    def failing_notify(investor_id, distribution_id):
        raise RuntimeError("webhook unreachable")

    service = DistributionService(db, notify=failing_notify)
    distribution_id = distributions[investor_a.id].id
    service.approve_distribution(admin, distribution_id)

    distribution = service.mark_distribution_paid(admin, distribution_id, "upi")

    db.refresh(distribution)
    assert distribution.status == "paid"
    assert distribution.investor_notified is False


def test_pay_pending_distribution_rejected(db: Session, distributions, investor_a, admin):
    sent = []
    service = DistributionService(db, notify=lambda *args: sent.append(args))

    with pytest.raises(InvalidStateError):
        service.mark_distribution_paid(admin, distributions[investor_a.id].id, "bank_transfer")

    assert sent == []


def test_payment_transaction_id_reuse_conflicts(db: Session, distributions, investor_a, investor_b, admin):
    service = DistributionService(db)
    for distribution in distributions.values():
        service.approve_distribution(admin, distribution.id)
    service.mark_distribution_paid(admin, distributions[investor_a.id].id, "bank_transfer", transaction_id="PAYOUT-1")

    with pytest.raises(ConflictError):
        service.mark_distribution_paid(admin, distributions[investor_b.id].id, "bank_transfer", transaction_id="PAYOUT-1")

    db.refresh(distributions[investor_b.id])
    assert distributions[investor_b.id].status == "approved"


def test_invalid_payout_method(db: Session, distributions, investor_a, admin):
    with pytest.raises(ValidationError):
        DistributionService(db).mark_distribution_paid(admin, distributions[investor_a.id].id, "cash")


def test_mark_failed_requires_reason(db: Session, distributions, investor_a, admin):
    service = DistributionService(db)

    with pytest.raises(ValidationError):
        service.mark_distribution_failed(admin, distributions[investor_a.id].id, "  ")

    distribution = service.mark_distribution_failed(admin, distributions[investor_a.id].id, "Bank account closed")
    assert distribution.status == "failed"
    assert distribution.failure_reason == "Bank account closed"


def test_approved_distribution_can_fail(db: Session, distributions, investor_a, admin):
    service = DistributionService(db)
    service.approve_distribution(admin, distributions[investor_a.id].id)

    distribution = service.mark_distribution_failed(admin, distributions[investor_a.id].id, "Payout bounced")

    assert distribution.status == "failed"


def test_cancel_pending_distribution(db: Session, distributions, investor_a, admin):
    distribution = DistributionService(db).cancel_distribution(
        admin, distributions[investor_a.id].id, reason="Duplicate report"
    )

    assert distribution.status == "cancelled"
    assert distribution.cancellation_reason == "Duplicate report"


def test_cancel_approved_distribution_rejected(db: Session, distributions, investor_a, admin):
    service = DistributionService(db)
    service.approve_distribution(admin, distributions[investor_a.id].id)

    with pytest.raises(InvalidStateError):
        service.cancel_distribution(admin, distributions[investor_a.id].id)


def test_terminal_distribution_cannot_move(db: Session, distributions, investor_a, admin):
    service = DistributionService(db)
    service.cancel_distribution(admin, distributions[investor_a.id].id)

    with pytest.raises(InvalidStateError):
        service.approve_distribution(admin, distributions[investor_a.id].id)


def test_distribution_amounts_unchanged_by_transitions(db: Session, distributions, investor_a, admin):
    service = DistributionService(db)
    distribution_id = distributions[investor_a.id].id
    service.approve_distribution(admin, distribution_id)
    service.mark_distribution_paid(admin, distribution_id, "wallet")

    distribution = db.get(Distribution, distribution_id)
    assert distribution.profit_share_cents == 1_200_000
    assert distribution.net_distribution_cents == 1_200_000
    assert distribution.share_percentage == pytest.approx(60.0)


def test_distribution_visibility(db: Session, distributions, investor_a, investor_b, owner, admin):
    service = DistributionService(db)
    distribution_id = distributions[investor_a.id].id

    assert service.get_distribution(investor_a, distribution_id).id == distribution_id
    assert service.get_distribution(owner, distribution_id).id == distribution_id
    assert service.get_distribution(admin, distribution_id).id == distribution_id
    with pytest.raises(ForbiddenError):
        service.get_distribution(investor_b, distribution_id)
