"""Health check API endpoints for monitoring and load balancer integration."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Request

logger = logging.getLogger(__name__)

# Create the FastAPI router
router = APIRouter()


@router.get("/health")
def basic_health_check() -> Dict[str, Any]:
    """Basic health check that returns system status."""
    return {
        "status": "healthy",
        "message": "Service is operational",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/health/live")
def liveness_probe() -> Dict[str, Any]:
    """Kubernetes liveness probe."""
    return {
        "status": "alive",
        "message": "Application is responsive"
    }


@router.get("/health/ready")
def readiness_probe(request: Request) -> Dict[str, Any]:
    """Kubernetes readiness probe; ready once the venue registry is loaded."""
    strategy = getattr(request.app.state, "strategy", None)
    if strategy is None:
        return {
            "status": "not_ready",
            "message": "Venue registry not loaded"
        }
    return {
        "status": "ready",
        "message": "Application is ready to serve traffic",
        "pairs": strategy.registry.pairs
    }
