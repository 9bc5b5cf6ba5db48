"""Plain web search endpoints: cached provider results without synthesis."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status

from models.errors import InvalidRequestError
from orchestrator.coordinator import DeepSearchCoordinator
from server.dependencies import get_coordinator, get_user_id
from server.schemas.requests import ParallelSearchRequest
from server.schemas.responses import ErrorResponseDTO, ParallelSearchResponseDTO, SearchResponseDTO
from server.utils import bad_request, error_response
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/search", tags=["Search"])

_ERROR_RESPONSES = {400: {"model": ErrorResponseDTO}, 500: {"model": ErrorResponseDTO}}


@router.get("", response_model=SearchResponseDTO, responses=_ERROR_RESPONSES)
async def search(
    q: str | None = Query(None, description="Search query"),
    user_id: str = Depends(get_user_id),
    coordinator: DeepSearchCoordinator = Depends(get_coordinator),
):
    """Search the web for one query, serving repeats from the caller's cache."""
    try:
        result = await coordinator.search(user_id, q)
    except InvalidRequestError as e:
        return bad_request(str(e))
    except Exception as e:
        logger.error(
            f"Search failed: {e}",
            exc_info=True,
            extra={"extra_fields": {"user_id": user_id, "error_type": type(e).__name__}},
        )
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Search failed", str(e))

    return SearchResponseDTO.from_result_set(result)


@router.post("/parallel", response_model=ParallelSearchResponseDTO, responses=_ERROR_RESPONSES)
async def parallel_search(
    request: ParallelSearchRequest,
    user_id: str = Depends(get_user_id),
    coordinator: DeepSearchCoordinator = Depends(get_coordinator),
):
    """Search up to five queries concurrently; each result carries its own error."""
    try:
        results = await coordinator.search_many(user_id, request.queries)
    except InvalidRequestError as e:
        return bad_request(str(e))
    except Exception as e:
        logger.error(
            f"Parallel search failed: {e}",
            exc_info=True,
            extra={"extra_fields": {"user_id": user_id, "error_type": type(e).__name__}},
        )
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Parallel search failed", str(e))

    return ParallelSearchResponseDTO(
        queries=[r.query for r in results],
        results=[SearchResponseDTO.from_result_set(r) for r in results],
        timestamp=datetime.utcnow().isoformat() + "Z",
    )
