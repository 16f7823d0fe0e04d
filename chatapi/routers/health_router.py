import logging

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from chatapi.containers import Container
from chatapi.schemas.health import HealthCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
@inject
def health_check(
    session_factory: sessionmaker = Depends(
        Provide[Container.database.session_factory]
    ),
) -> HealthCheckResponse:
    """Health check endpoint."""

    db = session_factory()
    try:
        db.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        database = "unavailable"
    finally:
        db.close()

    return HealthCheckResponse(
        status="healthy" if database == "connected" else "degraded",
        database=database,
    )
