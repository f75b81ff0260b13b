"""FastAPI dependencies for dependency injection."""

import logging
from collections.abc import AsyncGenerator
from functools import lru_cache
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from hris_payroll.calculators import BracketTableLookup, PayrollEngine
from hris_payroll.config import get_settings
from hris_payroll.database import init_db
from hris_payroll.services import PayrollService

logger = logging.getLogger(__name__)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        yield session


async def get_actor_id(
    x_actor_id: Annotated[str | None, Header()] = None
) -> UUID | None:
    """Extract the acting user from the X-Actor-ID header."""
    if not x_actor_id:
        return None
    try:
        return UUID(x_actor_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-Actor-ID format",
        )


@lru_cache(maxsize=1)
def get_contribution_lookup() -> BracketTableLookup:
    """Bracket tables from CONTRIBUTION_TABLES_PATH, loaded once."""
    path = get_settings().contribution_tables_path
    if path is None:
        logger.warning(
            "CONTRIBUTION_TABLES_PATH is not set; statutory contributions and tax will be zero"
        )
        return BracketTableLookup()
    return BracketTableLookup.from_json_file(path)


def get_payroll_service() -> PayrollService:
    """Build the payroll service over the global session factory."""
    settings = get_settings()
    _, factory = init_db()
    engine = PayrollEngine(get_contribution_lookup(), engine_version=settings.engine_version)
    return PayrollService(factory, engine, max_concurrency=settings.batch_concurrency)


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
ActorId = Annotated[UUID | None, Depends(get_actor_id)]
Payroll = Annotated[PayrollService, Depends(get_payroll_service)]
