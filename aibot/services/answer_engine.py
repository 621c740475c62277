"""Decides how a chat turn is answered and builds the model prompts."""

import re
from enum import Enum
from typing import List, Optional

from aibot.models import Bot
from aibot.services.knowledge_service import RetrievalResult, format_knowledge_context
from aibot.services.llm import LLMProvider


class AnswerState(str, Enum):
    GREETING = "greeting"
    FALLBACK = "fallback"
    GROUNDED = "grounded"


ANTI_HALLUCINATION_PROMPT = """

CRITICAL RULES - You MUST follow these strictly:
1. ONLY answer using information from the provided context
2. If the context does not contain relevant information, respond with: "I don't have that information in my knowledge base."
3. NEVER guess or make up information about prices, hours, policies, locations, or any factual data
4. NEVER provide information not explicitly stated in the context
5. If unsure, suggest the user contact the business directly
6. Be concise and accurate - do not elaborate beyond what the context provides
7. Do not invent product names, service offerings, or contact details"""

GREETING_INSTRUCTION = """

The user is greeting you. Respond in a friendly, welcoming manner. Keep your response brief (1-2 sentences).
Ask how you can help them today. Stay in character based on your system prompt."""

GREETING_TEMPERATURE = 0.7
GREETING_MAX_TOKENS = 150
DEFAULT_GREETING_RESPONSE = "Hello! How can I help you today?"
EMPTY_COMPLETION_RESPONSE = "I apologize, but I could not generate a response."

_TEMPLATE_FIELD = re.compile(r"\{(context|question)\}")


def decide_answer_state(retrieval: RetrievalResult, similarity_threshold: float) -> AnswerState:
    """Pick FALLBACK or GROUNDED for a retrieval outcome."""
    if retrieval.chunk_count == 0 or retrieval.top_similarity < similarity_threshold:
        return AnswerState.FALLBACK
    return AnswerState.GROUNDED


def render_user_message(template: str, context: str, question: str) -> str:
    # Single pass, so placeholders inside the context or question stay literal.
    values = {"context": context, "question": question}
    return _TEMPLATE_FIELD.sub(lambda m: values[m.group(1)], template)


def build_grounded_messages(
    bot: Bot,
    retrieval: RetrievalResult,
    question: str,
    history: Optional[List[dict]] = None,
) -> List[dict]:
    context = format_knowledge_context(retrieval.chunks)
    messages = [{"role": "system", "content": bot.effective_system_prompt + ANTI_HALLUCINATION_PROMPT}]
    for item in history or []:
        messages.append({"role": item["role"], "content": item["content"]})
    messages.append(
        {
            "role": "user",
            "content": render_user_message(bot.effective_user_message_template, context, question),
        }
    )
    return messages


def build_greeting_messages(bot: Bot, message: str) -> List[dict]:
    return [
        {"role": "system", "content": bot.effective_system_prompt + GREETING_INSTRUCTION},
        {"role": "user", "content": message},
    ]


async def generate_greeting_reply(provider: LLMProvider, bot: Bot, message: str) -> str:
    result = await provider.generate(
        build_greeting_messages(bot, message),
        model=bot.effective_model,
        temperature=GREETING_TEMPERATURE,
        max_tokens=GREETING_MAX_TOKENS,
    )
    return result.content or DEFAULT_GREETING_RESPONSE


async def generate_grounded_reply(provider: LLMProvider, bot: Bot, messages: List[dict]) -> str:
    result = await provider.generate(
        messages,
        model=bot.effective_model,
        temperature=bot.effective_temperature,
        max_tokens=bot.effective_max_tokens,
    )
    return result.content or EMPTY_COMPLETION_RESPONSE
