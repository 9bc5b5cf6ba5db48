"""Deep search endpoint."""

from fastapi import APIRouter, Depends, status

from models.errors import InvalidRequestError
from orchestrator.coordinator import DeepSearchCoordinator
from server.dependencies import get_coordinator, get_user_id
from server.schemas.requests import DeepSearchRequest
from server.schemas.responses import DeepSearchResponseDTO, ErrorResponseDTO
from server.utils import bad_request, error_response, trim_history
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Deep Search"])


@router.post(
    "/deep-search",
    response_model=DeepSearchResponseDTO,
    responses={400: {"model": ErrorResponseDTO}, 500: {"model": ErrorResponseDTO}},
)
async def deep_search(
    request: DeepSearchRequest,
    user_id: str = Depends(get_user_id),
    coordinator: DeepSearchCoordinator = Depends(get_coordinator),
):
    """
    Answer a question from live web search results.

    Always answers with HTTP 200 when the query is valid, even when search or
    synthesis degraded; ``metadata.aiGenerated`` and ``metadata.confidence``
    tell a synthesized answer apart from a fallback.
    """
    try:
        response = await coordinator.run(user_id, request.query, trim_history(request.history_dicts()))
    except InvalidRequestError as e:
        logger.info(f"Rejected deep search request: {e}", extra={"extra_fields": {"user_id": user_id}})
        return bad_request(str(e))
    except Exception as e:
        logger.error(
            f"Deep search failed: {e}",
            exc_info=True,
            extra={"extra_fields": {"user_id": user_id, "error_type": type(e).__name__}},
        )
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Deep search failed", str(e))

    return DeepSearchResponseDTO.from_deep_search_response(response)
