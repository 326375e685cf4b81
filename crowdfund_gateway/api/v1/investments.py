"""Investment endpoints - create, settle, cancel, refund and listings"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from crowdfund_gateway.api.dependencies import get_caller
from crowdfund_gateway.api.v1.schemas import (
    BusinessInvestmentListResponse,
    InvestmentCreateRequest,
    InvestmentListResponse,
    InvestmentRefundRequest,
    InvestmentResponse,
    InvestmentSettleRequest,
    PaginationSchema,
)
from crowdfund_gateway.domain.models import CallerContext, InvestmentTerms
from crowdfund_gateway.infrastructure.database.models import Investment
from crowdfund_gateway.infrastructure.database.session import get_db
from crowdfund_gateway.services.investments import InvestmentService

router = APIRouter()


def _to_response(service: InvestmentService, investment: Investment, totals=None) -> InvestmentResponse:
    response = InvestmentResponse.model_validate(investment)
    response.share_percentage = service.share_percentage(investment, totals)
    return response


@router.post("/investments", response_model=InvestmentResponse, status_code=201)
def create_investment(
    request_body: InvestmentCreateRequest,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """
    Commit funds to an open business.

    The investment starts pending; the business totals only move once it is
    settled through POST /v1/investments/settle.
    """
    terms = None
    if request_body.terms is not None:
        terms = InvestmentTerms(**request_body.terms.model_dump())

    service = InvestmentService(db)
    investment = service.create_investment(
        caller,
        business_id=request_body.business_id,
        amount_cents=request_body.amount_cents,
        payment_method=request_body.payment_method,
        payment_reference=request_body.payment_reference,
        terms=terms,
    )
    return _to_response(service, investment)


@router.post("/investments/settle", response_model=InvestmentResponse)
def settle_investment(
    request_body: InvestmentSettleRequest,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """Verify payment and complete a pending investment"""
    service = InvestmentService(db)
    investment = service.settle_investment(
        caller,
        request_body.investment_id,
        payment_reference=request_body.payment_reference,
        payment_method=request_body.payment_method,
    )
    return _to_response(service, investment)


@router.get("/investments/mine", response_model=InvestmentListResponse)
def list_my_investments(
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    service = InvestmentService(db)
    result = service.list_investor_investments(caller, status=status, page=page, limit=limit)
    totals = {}
    return InvestmentListResponse(
        investments=[_to_response(service, inv, totals) for inv in result.items],
        pagination=PaginationSchema.model_validate(result),
    )


@router.get("/investments/{investment_id}", response_model=InvestmentResponse)
def get_investment(
    investment_id: str,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    service = InvestmentService(db)
    return _to_response(service, service.get_investment(caller, investment_id))


@router.post("/investments/{investment_id}/cancel", response_model=InvestmentResponse)
def cancel_investment(
    investment_id: str,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """Cancel a pending investment"""
    service = InvestmentService(db)
    return _to_response(service, service.cancel_investment(caller, investment_id))


@router.post("/investments/{investment_id}/refund", response_model=InvestmentResponse)
def refund_investment(
    investment_id: str,
    request_body: InvestmentRefundRequest,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """Refund a completed investment (admin only)"""
    service = InvestmentService(db)
    investment = service.refund_investment(caller, investment_id, reason=request_body.reason)
    return _to_response(service, investment)


@router.get("/businesses/{business_id}/investments", response_model=BusinessInvestmentListResponse)
def list_business_investments(
    business_id: str,
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """Investments into a business, for its owner or an admin"""
    service = InvestmentService(db)
    result, total = service.list_business_investments(caller, business_id, status=status, page=page, limit=limit)
    totals = {}
    return BusinessInvestmentListResponse(
        investments=[_to_response(service, inv, totals) for inv in result.items],
        total_investment_cents=total,
        pagination=PaginationSchema.model_validate(result),
    )
