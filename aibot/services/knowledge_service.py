from dataclasses import dataclass, field
from typing import List, Optional

from aibot.logging_config import get_logger
from aibot.repositories import KnowledgeStore, ScoredChunk
from aibot.services.llm import LLMProvider

logger = get_logger("knowledge_service")

PREVIEW_CHARS = 100


@dataclass
class RetrievalResult:
    chunks: List[ScoredChunk] = field(default_factory=list)

    @property
    def chunk_count(self) -> int:
        return len(self.chunks)

    @property
    def top_similarity(self) -> float:
        if not self.chunks:
            return 0.0
        return max(chunk.similarity for chunk in self.chunks)

    @property
    def top_chunk_preview(self) -> Optional[str]:
        if not self.chunks:
            return None
        return self.chunks[0].chunk_text[:PREVIEW_CHARS] + "..."


async def retrieve_knowledge(
    message: str,
    bot_id: str,
    retrieval_count: int,
    provider: LLMProvider,
    store: KnowledgeStore,
) -> RetrievalResult:
    """Embed ``message`` and fetch the bot's closest knowledge chunks.

    Embedding errors propagate. A failed similarity query is logged and
    treated as an empty result so the turn can still fall back.
    """
    embedding = await provider.embed(message)

    try:
        chunks = store.search(bot_id, embedding, retrieval_count)
    except Exception as e:
        logger.error(
            f"Knowledge search failed: {e}",
            extra={"context": {"bot_id": bot_id, "retrieval_count": retrieval_count}},
        )
        chunks = []

    result = RetrievalResult(chunks=list(chunks)[: max(retrieval_count, 0)])

    logger.info(
        f"Knowledge search: found {result.chunk_count} chunks, top similarity {result.top_similarity:.3f}",
        extra={
            "context": {
                "bot_id": bot_id,
                "similarities": [round(c.similarity, 3) for c in result.chunks],
            }
        },
    )
    return result


def format_knowledge_context(chunks: List[ScoredChunk]) -> str:
    """Number chunks as ``[1] text`` blocks separated by blank lines."""
    return "\n\n".join(f"[{i}] {chunk.chunk_text}" for i, chunk in enumerate(chunks, 1))
