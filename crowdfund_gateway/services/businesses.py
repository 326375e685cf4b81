"""Business registration - the funding targets investments settle into"""

import logging
import uuid
from typing import Union
from sqlalchemy.orm import Session
from crowdfund_gateway.domain.exceptions import NotFoundError
from crowdfund_gateway.domain.models import ROLE_ADMIN, ROLE_BUSINESS, CallerContext
from crowdfund_gateway.domain.validation import raise_if_errors, validate_business
from crowdfund_gateway.infrastructure.database.models import Business
from crowdfund_gateway.infrastructure.database.repositories import BusinessRepository
from crowdfund_gateway.infrastructure.observability.logging import log_event
from crowdfund_gateway.services.common import require_role, transaction
from crowdfund_gateway.utils.ids import parse_id

logger = logging.getLogger(__name__)


class BusinessService:
    def __init__(self, db: Session):
        self.db = db
        self.businesses = BusinessRepository(db)

    def create_business(
        self,
        ctx: CallerContext,
        name: str,
        description: str,
        sector: str,
        funding_goal_cents: int,
    ) -> Business:
        """Register a business owned by the caller, open for investment"""
        require_role(ctx, ROLE_BUSINESS, ROLE_ADMIN)
        raise_if_errors(validate_business(name, description, sector, funding_goal_cents))

        with transaction(self.db):
            business = self.businesses.create_business(
                name=name.strip(),
                description=description.strip(),
                sector=sector,
                owner_id=ctx.id,
                funding_goal_cents=funding_goal_cents,
                raised_amount_cents=0,
                status="open",
            )

        log_event(logger, "business_created", business_id=business.id, owner_id=ctx.id)
        return business

    def get_business(self, business_id: Union[str, uuid.UUID]) -> Business:
        business = self.businesses.get_business(parse_id(business_id, "business_id"))
        if business is None:
            raise NotFoundError("Business not found")
        return business
