"""Unit-of-work and caller authorization helpers shared by the core services"""

import logging
from contextlib import contextmanager
from typing import Iterator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError
from crowdfund_gateway.domain.exceptions import ConflictError, DomainException, ForbiddenError, InternalError
from crowdfund_gateway.domain.models import ROLE_ADMIN, CallerContext

logger = logging.getLogger(__name__)


@contextmanager
def transaction(db: Session, conflict_message: str = "Operation conflicts with an existing record") -> Iterator[None]:
    """
    Run one state transition as a single commit.

    Any failure rolls the whole unit back. Unique-constraint violations and
    optimistic-version mismatches surface as ConflictError, other storage
    errors as InternalError.
    """
    try:
        yield
        db.commit()
    except DomainException:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        raise ConflictError(conflict_message) from e
    except StaleDataError as e:
        db.rollback()
        raise ConflictError("Record was modified concurrently, retry the operation") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Storage error: {e}")
        raise InternalError("Storage failure") from e
    except Exception:
        db.rollback()
        raise


def require_role(ctx: CallerContext, *roles: str) -> None:
    if ctx.role not in roles:
        raise ForbiddenError(f"Access denied. Required roles: {', '.join(roles)}")


def require_admin(ctx: CallerContext) -> None:
    require_role(ctx, ROLE_ADMIN)


def require_owner_or_admin(ctx: CallerContext, owner_id: str) -> None:
    if not ctx.is_admin and ctx.id != owner_id:
        raise ForbiddenError("Access denied")
