"""Client for the document RAG service, used as supplementary synthesis context."""

import httpx

from models.deep_search import RagContext, RagDocument
from utils.logger import get_logger

logger = get_logger(__name__)

MAX_CONTENT_CHARS = 200


def _document_from_payload(item) -> RagDocument | None:
    if not isinstance(item, dict):
        return None
    metadata = item.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}
    source = item.get("source") or metadata.get("source") or ""
    content = str(item.get("content") or item.get("pageContent") or "").strip()
    if not content:
        return None
    if len(content) > MAX_CONTENT_CHARS:
        content = content[:MAX_CONTENT_CHARS] + "..."
    try:
        score = float(item.get("score") or 0.0)
    except (TypeError, ValueError):
        score = 0.0
    return RagDocument(source=str(source), content=content, score=score)


class RagContextClient:
    """
    Fetches the user's most relevant uploaded-document snippets for a query.

    Talks to ``POST {base_url}/relevant-documents``. Never raises: any failure
    yields an empty context, since RAG snippets are optional evidence.
    """

    def __init__(self, base_url: str, top_k: int = 4, timeout_s: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.top_k = top_k
        self.timeout_s = timeout_s

    async def get_context(self, user_id: str, query: str) -> RagContext:
        payload = {"user_id": user_id, "query": query, "k": self.top_k}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                response = await client.post(f"{self.base_url}/relevant-documents", json=payload)
                response.raise_for_status()
                data = response.json() if response.content else {}
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "RAG context lookup failed",
                extra={"extra_fields": {"error": str(exc), "error_type": type(exc).__name__}},
            )
            return RagContext()

        items = data.get("documents") if isinstance(data, dict) else None
        if not isinstance(items, list):
            items = []
        documents = [doc for doc in (_document_from_payload(i) for i in items) if doc]
        return RagContext(documents=documents[: self.top_k])
