"""Health check endpoints for monitoring and readiness probes."""

from datetime import datetime
from fastapi import APIRouter
from ..config import get_settings
from ..models.schemas import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Service health check — used by load balancers and Kubernetes probes."""
    settings = get_settings()
    return HealthResponse(
        status="healthy",
        version="1.0.0",
        document_intelligence_status=(
            "configured" if settings.azure_document_intelligence_endpoint else "not_configured"
        ),
        identity_verifier_status="configured" if settings.youverify_api_key else "not_configured",
        timestamp=datetime.utcnow(),
    )


@router.get("/ready")
async def readiness_check():
    """Readiness probe — checks if all dependencies are reachable."""
    return {"ready": True, "timestamp": datetime.utcnow().isoformat()}
