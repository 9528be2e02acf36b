"""Health routes - System health and readiness checks."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response
from sqlalchemy import select, text
from sqlalchemy.orm import Session

from snaplake.api.deps import get_db
from snaplake.models.snapshots import Snapshot
from snaplake.schemas.api import HealthResponse

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=HealthResponse)
def health(response: Response, db: Session = Depends(get_db)):
    """
    Health check endpoint for load balancer and Docker health checks.

    Checks metadata database connectivity and the status of the most recent
    snapshot. Returns 503 if the database is unreachable.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception as e:
        response.status_code = 503
        return HealthResponse(database=f"down: {e}", last_snapshot_status=None)

    stmt = select(Snapshot).order_by(Snapshot.created_at.desc(), Snapshot.id.desc()).limit(1)
    last_snapshot = db.execute(stmt).scalar_one_or_none()

    return HealthResponse(
        database=db_status,
        last_snapshot_status=last_snapshot.status if last_snapshot else None,
    )


@router.get("/ready")
def readiness(response: Response, db: Session = Depends(get_db)):
    """
    Kubernetes/ELB readiness probe - checks if service can serve traffic.

    Returns 200 if ready, 503 if database is unreachable.
    """
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ready", "timestamp": datetime.now(timezone.utc).isoformat()}
    except Exception as e:
        response.status_code = 503
        return {"status": "not_ready", "error": str(e), "timestamp": datetime.now(timezone.utc).isoformat()}
