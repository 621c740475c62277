from dataclasses import dataclass
from typing import List, Sequence

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from aibot.repositories.bot_repo import parse_uuid

# The database ranks by cosine similarity itself; the threshold is applied by
# the answer engine, so the function always receives 0.0.
MATCH_KNOWLEDGE_SQL = text(
    """
    SELECT chunk_text, similarity
    FROM match_knowledge_embeddings(
        CAST(:query_embedding AS vector),
        :match_bot_id,
        :match_threshold,
        :match_count
    )
    """
)


@dataclass(frozen=True)
class ScoredChunk:
    chunk_text: str
    similarity: float


def to_vector_literal(vector: Sequence[float]) -> str:
    return "[" + ",".join(str(float(v)) for v in vector) + "]"


class KnowledgeStore:
    """Similarity search over a bot's knowledge partition."""

    def __init__(self, db: Session):
        self.db = db

    def search(self, bot_id: str, vector: Sequence[float], k: int) -> List[ScoredChunk]:
        """Top ``k`` chunks for ``vector``, most similar first."""
        bot_uuid = parse_uuid(bot_id)
        if bot_uuid is None or k <= 0:
            return []
        try:
            rows = (
                self.db.execute(
                    MATCH_KNOWLEDGE_SQL,
                    {
                        "query_embedding": to_vector_literal(vector),
                        "match_bot_id": bot_uuid,
                        "match_threshold": 0.0,
                        "match_count": k,
                    },
                )
                .mappings()
                .all()
            )
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return [ScoredChunk(chunk_text=row["chunk_text"] or "", similarity=float(row["similarity"])) for row in rows]
