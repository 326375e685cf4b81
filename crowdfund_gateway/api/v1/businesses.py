"""POST /v1/businesses, GET /v1/businesses/{business_id} - Business registration"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from crowdfund_gateway.api.dependencies import get_caller
from crowdfund_gateway.api.v1.schemas import BusinessCreateRequest, BusinessResponse
from crowdfund_gateway.domain.models import CallerContext
from crowdfund_gateway.infrastructure.database.session import get_db
from crowdfund_gateway.services.businesses import BusinessService

router = APIRouter()


@router.post("/businesses", response_model=BusinessResponse, status_code=201)
def create_business(
    request_body: BusinessCreateRequest,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """Register a business owned by the caller, open for investment"""
    business = BusinessService(db).create_business(
        caller,
        name=request_body.name,
        description=request_body.description,
        sector=request_body.sector,
        funding_goal_cents=request_body.funding_goal_cents,
    )
    return BusinessResponse.model_validate(business)


@router.get("/businesses/{business_id}", response_model=BusinessResponse)
def get_business(
    business_id: str,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """Business details with live funding totals"""
    return BusinessResponse.model_validate(BusinessService(db).get_business(business_id))
