"""Dependency injection for FastAPI endpoints"""

from typing import Optional
from fastapi import Header, HTTPException, Request
from crowdfund_gateway.domain.models import ROLE_ADMIN, ROLE_BUSINESS, ROLE_INVESTOR, CallerContext
from crowdfund_gateway.infrastructure.clients.notifications import NotificationClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_caller(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> CallerContext:
    """
    Caller identity as resolved by the upstream auth gateway.

    Token verification happens before requests reach this service; only the
    resulting user id and role headers are trusted here.
    """
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=401, detail="Authentication required")
    if x_user_role not in (ROLE_INVESTOR, ROLE_BUSINESS, ROLE_ADMIN):
        raise HTTPException(status_code=401, detail="Unknown role")
    return CallerContext(id=x_user_id, role=x_user_role)


def get_notification_client() -> NotificationClient:
    """Provide investor notification client instance"""
    return NotificationClient()
