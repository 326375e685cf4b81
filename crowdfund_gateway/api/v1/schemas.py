"""Pydantic schemas for API request/response validation"""

import uuid
from datetime import date, datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ResponseModel(BaseModel):
    """Response schemas read straight from ORM records and domain dataclasses"""

    model_config = ConfigDict(from_attributes=True)


class PaginationSchema(ResponseModel):
    current_page: int
    total_pages: int
    total: int
    has_next: bool
    has_prev: bool


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    message: str
    errors: List[str] = []


# Businesses


class BusinessCreateRequest(BaseModel):
    """Request body for POST /v1/businesses"""

    name: str = Field(..., description="Business name")
    description: str = Field(..., description="What the business does")
    sector: str = Field(..., description="Business sector")
    funding_goal_cents: int = Field(..., description="Funding goal in minor units")


class BusinessResponse(ResponseModel):
    id: uuid.UUID
    name: str
    description: str
    sector: str
    owner_id: str
    funding_goal_cents: int
    raised_amount_cents: int
    remaining_funding_cents: int
    status: str
    total_investors: int
    average_investment_cents: int
    funding_progress: int


# Investments


class InvestmentTermsSchema(ResponseModel):
    expected_return: Optional[float] = None
    investment_period_months: Optional[int] = None
    risk_level: str = "medium"


class InvestmentCreateRequest(BaseModel):
    """Request body for POST /v1/investments"""

    business_id: str = Field(..., description="Business to invest in")
    amount_cents: int = Field(..., description="Investment amount in minor units")
    payment_method: str = "bank_transfer"
    payment_reference: Optional[str] = None
    terms: Optional[InvestmentTermsSchema] = None


class InvestmentSettleRequest(BaseModel):
    """Request body for POST /v1/investments/settle"""

    investment_id: str
    payment_reference: Optional[str] = None
    payment_method: Optional[str] = None


class InvestmentRefundRequest(BaseModel):
    reason: Optional[str] = None


class InvestmentResponse(ResponseModel):
    id: uuid.UUID
    investor_id: str
    business_id: uuid.UUID
    amount_cents: int
    status: str
    transaction_id: Optional[str] = None
    payment_method: str
    payment_status: str
    payment_reference: Optional[str] = None
    paid_at: Optional[datetime] = None
    expected_return: Optional[float] = None
    investment_period_months: Optional[int] = None
    risk_level: str
    invested_at: Optional[datetime] = None
    notes: Optional[str] = None
    refund_amount_cents: Optional[int] = None
    refund_reason: Optional[str] = None
    refund_processed_at: Optional[datetime] = None
    refund_processed_by: Optional[str] = None
    share_percentage: float = 0.0


class InvestmentListResponse(BaseModel):
    investments: List[InvestmentResponse]
    pagination: PaginationSchema


class BusinessInvestmentListResponse(BaseModel):
    investments: List[InvestmentResponse]
    total_investment_cents: int
    pagination: PaginationSchema


# Performance


class PerformanceSubmitRequest(BaseModel):
    """Request body for POST /v1/performance"""

    business_id: str
    year: int
    quarter: int
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    revenue_cents: int
    expenses_cents: int
    breakdown: Optional[Dict[str, int]] = None
    notes: Optional[str] = None


class PerformanceVerifyRequest(BaseModel):
    internal_notes: Optional[str] = None


class PerformanceResponse(ResponseModel):
    id: uuid.UUID
    business_id: uuid.UUID
    year: int
    quarter: int
    period_label: str
    start_date: date
    end_date: date
    revenue_cents: int
    expenses_cents: int
    profit_cents: int
    loss_cents: int
    net_result_cents: int
    profit_margin: float
    expense_ratio: float
    return_on_investment: float
    revenue_growth: float
    operating_revenue_cents: int
    non_operating_revenue_cents: int
    operating_expenses_cents: int
    non_operating_expenses_cents: int
    taxes_cents: int
    depreciation_cents: int
    status: str
    submitted_by: str
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    notes: Optional[str] = None
    internal_notes: Optional[str] = None


class PerformanceListResponse(BaseModel):
    performances: List[PerformanceResponse]
    pagination: PaginationSchema


class AnnualPerformanceResponse(ResponseModel):
    year: int
    quarters_reported: int
    total_revenue_cents: int
    total_expenses_cents: int
    total_profit_cents: int
    total_loss_cents: int
    net_result_cents: int
    average_quarterly_revenue_cents: int
    average_quarterly_profit_cents: int


# Distributions


class DistributionResponse(ResponseModel):
    id: uuid.UUID
    business_id: uuid.UUID
    performance_id: uuid.UUID
    investor_id: str
    investment_id: uuid.UUID
    investment_amount_cents: int
    total_business_investment_cents: int
    share_percentage: float
    business_profit_cents: int
    business_loss_cents: int
    profit_share_cents: int
    loss_share_cents: int
    net_distribution_cents: int
    distribution_type: str
    tax_deducted_cents: int
    net_amount_after_tax_cents: int
    status: str
    year: int
    quarter: int
    period_label: str
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    approval_notes: Optional[str] = None
    payment_method: Optional[str] = None
    payment_transaction_id: Optional[str] = None
    processed_at: Optional[datetime] = None
    processed_by: Optional[str] = None
    failure_reason: Optional[str] = None
    cancellation_reason: Optional[str] = None
    investor_notified: bool
    created_by: str
    last_modified_by: Optional[str] = None
    last_modified_at: Optional[datetime] = None


class ApprovalResponse(BaseModel):
    """Response for POST /v1/performance/{id}/approve"""

    performance: PerformanceResponse
    distributions: List[DistributionResponse]
    distribution_count: int
    total_net_distribution_cents: int


class DistributionApproveRequest(BaseModel):
    approval_notes: Optional[str] = None


class DistributionPayRequest(BaseModel):
    payment_method: str
    transaction_id: Optional[str] = None


class DistributionFailRequest(BaseModel):
    reason: str


class DistributionCancelRequest(BaseModel):
    reason: Optional[str] = None


class InvestorDistributionSummarySchema(ResponseModel):
    total_distributions: int
    total_profit_received_cents: int
    total_loss_incurred_cents: int
    total_net_received_cents: int
    pending_amount_cents: int
    paid_amount_cents: int


class DistributionTotalsSchema(ResponseModel):
    total_profit_distributed_cents: int
    total_loss_distributed_cents: int
    total_net_distributed_cents: int
    total_distributions: int


class InvestorDistributionsResponse(BaseModel):
    distributions: List[DistributionResponse]
    summary: InvestorDistributionSummarySchema
    pagination: PaginationSchema


class BusinessDistributionsResponse(BaseModel):
    distributions: List[DistributionResponse]
    totals: DistributionTotalsSchema
    pagination: PaginationSchema


class DistributionListResponse(BaseModel):
    distributions: List[DistributionResponse]
    pagination: PaginationSchema


class StatusBreakdownSchema(ResponseModel):
    status: str
    count: int
    total_amount_cents: int


class DistributionStatsResponse(ResponseModel):
    total_distributions: int
    total_profit_distributed_cents: int
    total_loss_distributed_cents: int
    total_net_distributed_cents: int
    pending_distributions: int
    approved_distributions: int
    paid_distributions: int
    failed_distributions: int
    cancelled_distributions: int
    status_breakdown: List[StatusBreakdownSchema]
