"""Operational probes, mounted at the root rather than under the API prefix."""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException
from sqlalchemy import text

from workforce.core.config import settings
from workforce.database import SessionLocal

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/")
def root():
    return {
        "message": f"{settings.app_name} API",
        "version": settings.version,
        "docs": "/docs",
    }


@router.get("/health")
@router.get("/liveness")
def health_check():
    """Liveness probe: the process is up and serving."""
    return {
        "status": "up",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.version,
        "environment": settings.environment,
        "build_id": settings.build_id,
    }


@router.get("/readiness")
def readiness_check():
    """Readiness probe: the ledger database answers."""
    try:
        with SessionLocal() as session:
            session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        raise HTTPException(status_code=503, detail="Database unavailable")
    return {"status": "ready", "components": {"database": "connected"}}
