"""Quarterly performance endpoints - submit, verify, approve-and-distribute and reports"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from crowdfund_gateway.api.dependencies import get_caller
from crowdfund_gateway.api.v1.schemas import (
    AnnualPerformanceResponse,
    ApprovalResponse,
    DistributionResponse,
    PaginationSchema,
    PerformanceListResponse,
    PerformanceResponse,
    PerformanceSubmitRequest,
    PerformanceVerifyRequest,
)
from crowdfund_gateway.domain.models import CallerContext
from crowdfund_gateway.infrastructure.database.session import get_db
from crowdfund_gateway.services.performance import PerformanceService

router = APIRouter()


@router.post("/performance", response_model=PerformanceResponse, status_code=201)
def submit_performance(
    request_body: PerformanceSubmitRequest,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """Submit a quarterly report for a business the caller owns"""
    performance = PerformanceService(db).submit_performance(
        caller,
        business_id=request_body.business_id,
        year=request_body.year,
        quarter=request_body.quarter,
        revenue_cents=request_body.revenue_cents,
        expenses_cents=request_body.expenses_cents,
        start_date=request_body.start_date,
        end_date=request_body.end_date,
        breakdown=request_body.breakdown,
        notes=request_body.notes,
    )
    return PerformanceResponse.model_validate(performance)


@router.post("/performance/{performance_id}/verify", response_model=PerformanceResponse)
def verify_performance(
    performance_id: str,
    request_body: PerformanceVerifyRequest,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    performance = PerformanceService(db).verify_performance(
        caller, performance_id, internal_notes=request_body.internal_notes
    )
    return PerformanceResponse.model_validate(performance)


@router.post("/performance/{performance_id}/approve", response_model=ApprovalResponse)
def approve_performance(
    performance_id: str,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """
    Approve a verified report and create its distributions.

    Flow:
    1. Lock the report and move it verified -> approved
    2. Create one pending distribution per completed investment
    3. Commit both together
    """
    result = PerformanceService(db).approve_performance(caller, performance_id)
    return ApprovalResponse(
        performance=PerformanceResponse.model_validate(result.performance),
        distributions=[DistributionResponse.model_validate(d) for d in result.distributions],
        distribution_count=len(result.distributions),
        total_net_distribution_cents=result.total_net_distribution_cents,
    )


@router.get("/performance/{performance_id}", response_model=PerformanceResponse)
def get_performance(
    performance_id: str,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return PerformanceResponse.model_validate(PerformanceService(db).get_performance(caller, performance_id))


@router.get("/businesses/{business_id}/performance", response_model=PerformanceListResponse)
def list_business_performance(
    business_id: str,
    year: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """Reports of one business, most recent period first"""
    result = PerformanceService(db).list_business_performance(
        caller, business_id, year=year, status=status, page=page, limit=limit
    )
    return PerformanceListResponse(
        performances=[PerformanceResponse.model_validate(p) for p in result.items],
        pagination=PaginationSchema.model_validate(result),
    )


@router.get("/businesses/{business_id}/performance/annual/{year}", response_model=AnnualPerformanceResponse)
def get_annual_performance(
    business_id: str,
    year: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """Yearly totals over verified and approved quarters"""
    summary = PerformanceService(db).annual_performance(caller, business_id, year)
    return AnnualPerformanceResponse.model_validate(summary)
