"""Errors raised by the chat pipeline.

Each error carries the HTTP status the chat endpoint answers with. Degradable
failures (search, decryption, webhook delivery, logging) never raise these;
they are handled where they happen.
"""


class ChatPipelineError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class MissingFieldsError(ChatPipelineError):
    status_code = 400

    def __init__(self, message: str = "Missing bot_id or message"):
        super().__init__(message)


class BotNotFoundError(ChatPipelineError):
    status_code = 404

    def __init__(self, bot_id: str):
        self.bot_id = bot_id
        super().__init__("Bot not found")


class OriginNotAllowedError(ChatPipelineError):
    status_code = 403

    def __init__(self, origin: str | None):
        self.origin = origin
        super().__init__("Origin not allowed")


class MissingApiKeyError(ChatPipelineError):
    status_code = 400

    def __init__(self):
        super().__init__("No API key configured. Please add your OpenAI API key in bot settings.")


class ProviderError(ChatPipelineError):
    """Embedding or chat-completion API answered with a non-2xx status."""

    status_code = 500

    def __init__(self, provider: str, status: int, body: str = ""):
        self.provider = provider
        self.status = status
        self.body = body
        super().__init__(f"{provider} API error: {status}")
