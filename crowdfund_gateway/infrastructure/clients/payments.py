"""Payment verification collaborator - settlement signal for pending investments"""

import logging
import uuid
from typing import Optional
from crowdfund_gateway.domain.models import PaymentVerification

logger = logging.getLogger(__name__)


class MockPaymentVerifier:
    """
    Stand-in for a payment provider's capture check.

    Verification is synchronous and always succeeds; a real provider would be
    called asynchronously and retried by the surrounding system.
    """

    def verify(
        self,
        transaction_id: str,
        amount_cents: int,
        method: str,
        reference: Optional[str] = None,
    ) -> PaymentVerification:
        payment_id = f"PAY_{uuid.uuid4().hex[:12]}"
        logger.info(
            "Payment verified",
            extra={"transaction_id": transaction_id, "payment_id": payment_id, "payment_reference": reference},
        )
        return PaymentVerification(
            success=True,
            payment_id=payment_id,
            amount_cents=amount_cents,
            status="captured",
            method=method,
        )
