"""Cache management endpoints, scoped to the caller's namespace."""

from datetime import datetime

from fastapi import APIRouter, Depends

from orchestrator.coordinator import DeepSearchCoordinator
from server.dependencies import get_coordinator, get_user_id
from server.schemas.responses import CacheClearResponseDTO, CacheStatsDTO

router = APIRouter(prefix="/cache", tags=["Cache"])


@router.get("/stats", response_model=CacheStatsDTO)
async def cache_stats(
    user_id: str = Depends(get_user_id),
    coordinator: DeepSearchCoordinator = Depends(get_coordinator),
):
    return CacheStatsDTO(**coordinator.cache.stats(user_id))


@router.delete("", response_model=CacheClearResponseDTO)
async def clear_cache(
    user_id: str = Depends(get_user_id),
    coordinator: DeepSearchCoordinator = Depends(get_coordinator),
):
    removed = coordinator.cache.clear(user_id)
    return CacheClearResponseDTO(
        message="Cache cleared successfully",
        removed=removed,
        timestamp=datetime.utcnow().isoformat() + "Z",
    )
