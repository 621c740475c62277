from aibot.services.answer_engine import AnswerState, decide_answer_state
from aibot.services.chat_service import ChatPipeline, ChatTurnOutcome, schedule_turn_side_effects
from aibot.services.intent_service import Intent, classify_intent, is_greeting
from aibot.services.origin_guard import is_origin_allowed
from aibot.services.webhook_service import dispatch_event, sign_payload, verify_signature
