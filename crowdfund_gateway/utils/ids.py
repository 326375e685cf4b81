"""Identifier helpers"""

import time
import uuid
from typing import Union
from crowdfund_gateway.domain.exceptions import ValidationError


def parse_id(value: Union[str, uuid.UUID], field: str) -> uuid.UUID:
    """Coerce an incoming identifier to UUID, rejecting malformed input"""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        raise ValidationError(f"Invalid {field} format", errors=[f"{field}: not a valid identifier"])


def generate_transaction_id(prefix: str = "TXN") -> str:
    """TXN_<epoch millis>_<9 hex chars>, unique per investment"""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
