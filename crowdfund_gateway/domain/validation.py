"""Field validation for commands entering the core - collects every violation before raising"""

from datetime import date
from typing import Dict, List, Optional, Sequence
from crowdfund_gateway.domain.exceptions import ValidationError
from crowdfund_gateway.domain.models import (
    BREAKDOWN_FIELDS,
    BUSINESS_SECTORS,
    DISTRIBUTION_PAYMENT_METHODS,
    INVESTMENT_PAYMENT_METHODS,
    RISK_LEVELS,
    InvestmentTerms,
)


def raise_if_errors(errors: List[str], message: str = "Validation failed") -> None:
    if errors:
        raise ValidationError(message, errors=errors)


def validate_business(name: str, description: str, sector: str, funding_goal_cents: int) -> List[str]:
    errors = []
    if not name or not name.strip():
        errors.append("name: Business name is required")
    elif len(name.strip()) > 100:
        errors.append("name: Business name cannot exceed 100 characters")
    if not description or not description.strip():
        errors.append("description: Business description is required")
    elif len(description.strip()) > 1000:
        errors.append("description: Description cannot exceed 1000 characters")
    if sector not in BUSINESS_SECTORS:
        errors.append(f"sector: Invalid business sector '{sector}'")
    if funding_goal_cents is None or funding_goal_cents <= 0:
        errors.append("funding_goal_cents: Funding goal must be positive")
    return errors


def validate_investment(
    amount_cents: int,
    payment_method: str,
    terms: Optional[InvestmentTerms],
    min_cents: int,
    max_cents: int,
) -> List[str]:
    errors = []
    if amount_cents is None or amount_cents < min_cents or amount_cents > max_cents:
        errors.append(f"amount_cents: Investment amount must be between {min_cents} and {max_cents}")
    if payment_method not in INVESTMENT_PAYMENT_METHODS:
        errors.append(f"payment_method: Invalid payment method '{payment_method}'")
    if terms is not None:
        if terms.risk_level not in RISK_LEVELS:
            errors.append(f"terms.risk_level: Invalid risk level '{terms.risk_level}'")
        if terms.investment_period_months is not None and terms.investment_period_months <= 0:
            errors.append("terms.investment_period_months: Investment period must be positive")
    return errors


def is_reportable_period(year: int, quarter: int, min_year: int, today: date) -> bool:
    """Year and quarter inside the accepted reporting window"""
    return year is not None and min_year <= year <= today.year + 1 and quarter in (1, 2, 3, 4)


def validate_status_filter(status: Optional[str], allowed: Sequence[str]) -> None:
    """Reject listing filters naming a status the entity never takes"""
    if status is not None and status not in allowed:
        raise_if_errors([f"status: Unknown status '{status}', expected one of {', '.join(allowed)}"])


def validate_performance(
    year: int,
    quarter: int,
    start_date: date,
    end_date: date,
    revenue_cents: int,
    expenses_cents: int,
    breakdown: Optional[Dict[str, int]],
    notes: Optional[str],
    min_year: int,
    today: date,
) -> List[str]:
    errors = []
    if year is None or year < min_year:
        errors.append(f"year: Year must be {min_year} or later")
    elif year > today.year + 1:
        errors.append("year: Year cannot be in the future")
    if quarter not in (1, 2, 3, 4):
        errors.append("quarter: Quarter must be between 1-4")
    if start_date is None or end_date is None:
        errors.append("period: Period start and end dates are required")
    elif start_date > end_date:
        errors.append("period: Start date must not be after end date")
    if revenue_cents is None or revenue_cents < 0:
        errors.append("revenue_cents: Revenue cannot be negative")
    if expenses_cents is None or expenses_cents < 0:
        errors.append("expenses_cents: Expenses cannot be negative")
    for key, value in (breakdown or {}).items():
        if key not in BREAKDOWN_FIELDS:
            errors.append(f"breakdown.{key}: Unknown breakdown field")
        elif value is None or value < 0:
            errors.append(f"breakdown.{key}: Breakdown values cannot be negative")
    if notes and len(notes) > 1000:
        errors.append("notes: Notes cannot exceed 1000 characters")
    return errors


def validate_distribution_payment(payment_method: str, transaction_id: Optional[str]) -> List[str]:
    errors = []
    if payment_method not in DISTRIBUTION_PAYMENT_METHODS:
        errors.append(f"payment_method: Invalid payment method '{payment_method}'")
    if transaction_id is not None and not transaction_id.strip():
        errors.append("transaction_id: Transaction id cannot be blank")
    return errors
