import uuid

from sqlalchemy import Boolean, Column, Integer, Numeric, Text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, TIMESTAMP, UUID

from aibot.database import Base

DEFAULT_SIMILARITY_THRESHOLD = 0.30
DEFAULT_RETRIEVAL_COUNT = 5
DEFAULT_MODEL_NAME = "gpt-4o-mini"
DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 1024
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
DEFAULT_USER_MESSAGE_TEMPLATE = "Context:\n{context}\n\nUser Question:\n{question}"
DEFAULT_FALLBACK_MESSAGE = (
    "I apologize, but I don't have specific information about that in my knowledge base. "
    "Please contact us directly for assistance."
)


class Bot(Base):
    __tablename__ = "ab_bots"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(UUID(as_uuid=True))
    name = Column(Text)
    model_provider = Column(Text, nullable=False, default="openai")
    model_name = Column(Text)
    temperature = Column(Numeric(3, 2))
    max_tokens = Column(Integer)
    system_prompt = Column(Text)
    user_message_template = Column(Text)
    fallback_message = Column(Text)
    allowed_domains = Column(ARRAY(Text), nullable=False, default=list)
    is_public = Column(Boolean, nullable=False, default=False)
    embed_settings = Column(JSONB, nullable=False, default=dict)
    similarity_threshold = Column(Numeric(4, 3))
    retrieval_count = Column(Integer)
    created_at = Column(TIMESTAMP(timezone=True))
    updated_at = Column(TIMESTAMP(timezone=True))

    @property
    def effective_model(self) -> str:
        return self.model_name or DEFAULT_MODEL_NAME

    @property
    def effective_temperature(self) -> float:
        return float(self.temperature) if self.temperature is not None else DEFAULT_TEMPERATURE

    @property
    def effective_max_tokens(self) -> int:
        return self.max_tokens if self.max_tokens is not None else DEFAULT_MAX_TOKENS

    @property
    def effective_threshold(self) -> float:
        if self.similarity_threshold is None:
            return DEFAULT_SIMILARITY_THRESHOLD
        return float(self.similarity_threshold)

    @property
    def effective_retrieval_count(self) -> int:
        return self.retrieval_count if self.retrieval_count is not None else DEFAULT_RETRIEVAL_COUNT

    @property
    def effective_system_prompt(self) -> str:
        return self.system_prompt or DEFAULT_SYSTEM_PROMPT

    @property
    def effective_user_message_template(self) -> str:
        return self.user_message_template or DEFAULT_USER_MESSAGE_TEMPLATE

    @property
    def effective_fallback_message(self) -> str:
        return self.fallback_message or DEFAULT_FALLBACK_MESSAGE
