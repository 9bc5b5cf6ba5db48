"""Prompt builders for query decomposition and result synthesis."""

from models.deep_search import Decomposition, RagContext, SearchHit

MAX_HISTORY_TURNS = 6
MAX_TURN_CHARS = 500
MAX_PROMPT_SNIPPET_CHARS = 400


def _format_history(history: list[dict[str, str]] | None) -> str:
    lines = []
    for turn in (history or [])[-MAX_HISTORY_TURNS:]:
        role = turn.get("role", "user")
        content = (turn.get("content") or "").strip()
        if not content:
            continue
        if len(content) > MAX_TURN_CHARS:
            content = content[:MAX_TURN_CHARS] + "..."
        lines.append(f"{role}: {content}")
    return "\n".join(lines)


def build_decomposition_prompt(query: str, history: list[dict[str, str]] | None, max_queries: int) -> str:
    history_text = _format_history(history)
    history_block = (
        f"Conversation so far (use it only to resolve references like 'it' or 'that'):\n{history_text}\n\n"
        if history_text
        else ""
    )
    return (
        "You plan web searches for a research assistant.\n\n"
        f"{history_block}"
        f'User question: "{query}"\n\n'
        f"Break the question into at most {max_queries} focused web search queries that together "
        "cover what is needed to answer it. Prefer fewer queries when the question is simple. "
        "Each query must be short and specific, written the way a person types into a search engine.\n\n"
        "Respond with ONLY a JSON object, no prose, in this exact shape:\n"
        '{"coreQuestion": "<the question restated in one sentence>", '
        '"searchQueries": ["<query 1>", "<query 2>"], '
        '"context": "<one or two sentences explaining the search plan>"}'
    )


def build_synthesis_prompt(
    query: str,
    hits: list[SearchHit],
    decomposition: Decomposition,
    rag_context: RagContext | None = None,
) -> str:
    lines = [
        "You are a research assistant. Answer the user's question using ONLY the web search "
        "results below. Cite sources inline as [1], [2] using the result numbers. If the results "
        "do not contain the answer, say so plainly.",
        "",
        f'Question: "{query}"',
    ]
    if decomposition.rationale:
        lines.append(f"Search plan: {decomposition.rationale}")

    lines += ["", "Search results:"]
    for idx, hit in enumerate(hits, start=1):
        snippet = hit.snippet[:MAX_PROMPT_SNIPPET_CHARS]
        lines.append(f"[{idx}] {hit.title}\nURL: {hit.url}\nFound via: {hit.sub_query}\n{snippet}")
        lines.append("")

    if rag_context and rag_context.documents:
        lines.append("Excerpts from the user's own documents (may be cited by name, not number):")
        for doc in rag_context.documents:
            lines.append(f"- ({doc.source}) {doc.content}")
        lines.append("")

    lines.append(
        "Respond with ONLY a JSON object, no prose outside it, in this exact shape:\n"
        '{"summary": "<answer in markdown with [n] citations>", '
        '"sources": ["<url of each result you cited, in order of first citation>"], '
        '"confidence": <number between 0 and 1 for how well the results support the answer>}'
    )
    return "\n".join(lines)
