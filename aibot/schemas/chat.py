from typing import List, Literal, Optional

from pydantic import BaseModel


class HistoryMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    # Required, but validated by the pipeline so a missing field answers 400.
    bot_id: Optional[str] = None
    message: Optional[str] = None
    session_id: Optional[str] = None
    lead_id: Optional[str] = None
    conversation_history: List[HistoryMessage] = []


class ChatResponse(BaseModel):
    response: str
    chunks_used: int
    session_id: str
    top_similarity: float
    calendar_triggered: Optional[bool] = None
    booking_link: Optional[str] = None
    triggered_keyword: Optional[str] = None
    is_fallback: Optional[bool] = None
    is_greeting: Optional[bool] = None
    similarity_threshold: Optional[float] = None
    retrieval_count: Optional[int] = None
    chunk_count: Optional[int] = None
    top_chunk_preview: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
