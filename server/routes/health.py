"""Health check endpoint."""

from datetime import datetime

from fastapi import APIRouter, Depends

from orchestrator.coordinator import DeepSearchCoordinator
from server.dependencies import get_coordinator
from server.schemas.responses import HealthResponseDTO

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponseDTO)
async def health_check(coordinator: DeepSearchCoordinator = Depends(get_coordinator)):
    """Report collaborator configuration and reachability."""
    services = coordinator.health()
    status = "healthy" if services["synthesis"]["status"] == "enabled" else "degraded"
    return HealthResponseDTO(
        status=status,
        timestamp=datetime.utcnow().isoformat() + "Z",
        version="1.0.0",
        services=services,
    )
