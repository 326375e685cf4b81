"""Distribution endpoints - investor/business/admin reports and the approve/pay/fail/cancel transitions"""

from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from crowdfund_gateway.api.dependencies import get_caller, get_notification_client
from crowdfund_gateway.api.v1.schemas import (
    BusinessDistributionsResponse,
    DistributionApproveRequest,
    DistributionCancelRequest,
    DistributionFailRequest,
    DistributionListResponse,
    DistributionPayRequest,
    DistributionResponse,
    DistributionStatsResponse,
    DistributionTotalsSchema,
    InvestorDistributionSummarySchema,
    InvestorDistributionsResponse,
    PaginationSchema,
)
from crowdfund_gateway.domain.models import CallerContext
from crowdfund_gateway.infrastructure.clients.notifications import NotificationClient
from crowdfund_gateway.infrastructure.database.session import get_db
from crowdfund_gateway.services.distributions import DistributionService
from crowdfund_gateway.services.reporting import ReportingService

router = APIRouter()


@router.get("/distributions/mine", response_model=InvestorDistributionsResponse)
def list_my_distributions(
    status: Optional[str] = Query(None),
    year: Optional[int] = Query(None),
    quarter: Optional[int] = Query(None, ge=1, le=4),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """Caller's distributions with totals across all of them"""
    report = ReportingService(db).list_investor_distributions(
        caller, status=status, year=year, quarter=quarter, page=page, limit=limit
    )
    return InvestorDistributionsResponse(
        distributions=[DistributionResponse.model_validate(d) for d in report.page.items],
        summary=InvestorDistributionSummarySchema.model_validate(report.summary),
        pagination=PaginationSchema.model_validate(report.page),
    )


@router.get("/distributions/admin/all", response_model=DistributionListResponse)
def list_all_distributions(
    status: Optional[str] = Query(None),
    year: Optional[int] = Query(None),
    quarter: Optional[int] = Query(None, ge=1, le=4),
    business_id: Optional[str] = Query(None),
    investor_id: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    result = ReportingService(db).list_all_distributions(
        caller,
        status=status,
        year=year,
        quarter=quarter,
        business_id=business_id,
        investor_id=investor_id,
        page=page,
        limit=limit,
    )
    return DistributionListResponse(
        distributions=[DistributionResponse.model_validate(d) for d in result.items],
        pagination=PaginationSchema.model_validate(result),
    )


@router.get("/distributions/admin/stats", response_model=DistributionStatsResponse)
def get_distribution_stats(
    year: Optional[int] = Query(None),
    quarter: Optional[int] = Query(None, ge=1, le=4),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return DistributionStatsResponse.model_validate(
        ReportingService(db).distribution_stats(caller, year=year, quarter=quarter)
    )


@router.get("/distributions/{distribution_id}", response_model=DistributionResponse)
def get_distribution(
    distribution_id: str,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return DistributionResponse.model_validate(DistributionService(db).get_distribution(caller, distribution_id))


@router.get("/businesses/{business_id}/distributions", response_model=BusinessDistributionsResponse)
def list_business_distributions(
    business_id: str,
    year: Optional[int] = Query(None),
    quarter: Optional[int] = Query(None, ge=1, le=4),
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """A business's distributions, largest net first, with approved/paid totals"""
    report = ReportingService(db).list_business_distributions(
        caller, business_id, year=year, quarter=quarter, status=status, page=page, limit=limit
    )
    return BusinessDistributionsResponse(
        distributions=[DistributionResponse.model_validate(d) for d in report.page.items],
        totals=DistributionTotalsSchema.model_validate(report.totals),
        pagination=PaginationSchema.model_validate(report.page),
    )


@router.post("/distributions/{distribution_id}/approve", response_model=DistributionResponse)
def approve_distribution(
    distribution_id: str,
    request_body: DistributionApproveRequest,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    distribution = DistributionService(db).approve_distribution(
        caller, distribution_id, notes=request_body.approval_notes
    )
    return DistributionResponse.model_validate(distribution)


@router.post("/distributions/{distribution_id}/pay", response_model=DistributionResponse)
def pay_distribution(
    distribution_id: str,
    request_body: DistributionPayRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
    notification_client: NotificationClient = Depends(get_notification_client),
):
    """
    Record the payout of an approved distribution.

    The investor notification webhook is sent as a background task after the
    response, so delivery retries never hold up the request.
    """

    def notify(investor_id: str, distribution_id: str) -> None:
        background_tasks.add_task(notification_client.send_distribution_paid, investor_id, distribution_id)

    distribution = DistributionService(db, notify=notify).mark_distribution_paid(
        caller,
        distribution_id,
        payment_method=request_body.payment_method,
        transaction_id=request_body.transaction_id,
    )
    return DistributionResponse.model_validate(distribution)


@router.post("/distributions/{distribution_id}/fail", response_model=DistributionResponse)
def fail_distribution(
    distribution_id: str,
    request_body: DistributionFailRequest,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    distribution = DistributionService(db).mark_distribution_failed(caller, distribution_id, reason=request_body.reason)
    return DistributionResponse.model_validate(distribution)


@router.post("/distributions/{distribution_id}/cancel", response_model=DistributionResponse)
def cancel_distribution(
    distribution_id: str,
    request_body: DistributionCancelRequest,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    distribution = DistributionService(db).cancel_distribution(caller, distribution_id, reason=request_body.reason)
    return DistributionResponse.model_validate(distribution)
