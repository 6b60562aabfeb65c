# app/services/gemini_provider.py
"""
Provider abstraction for the exchange gateway and its Gemini implementation.

The gateway only sees ``ChatProvider.start_session(history)`` and
``ChatSession.send(text)``. Everything Gemini-specific (generation config,
safety settings, system instruction, SDK exceptions) stays in this module.
"""
from typing import Any, Dict, List, Optional, Protocol

import google.generativeai as genai

# Fixed for every call; not configurable per request.
GENERATION_CONFIG = {
    "temperature": 0.7,
    "top_p": 0.95,
    "top_k": 60,
    "max_output_tokens": 1024,
}

SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
]

SYSTEM_INSTRUCTION = (
    "You are a friendly and helpful AI assistant. Always answer in clear and "
    "informative Bahasa Indonesia. Use Markdown formatting for better "
    "readability where appropriate."
)


class ProviderBlockedError(Exception):
    """The provider refused the input because of its safety filters."""

    def __init__(self, reason: str):
        super().__init__(f"Prompt blocked: {reason}")
        self.reason = reason


class ChatSession(Protocol):
    async def send(self, text: str) -> str:
        ...


class ChatProvider(Protocol):
    def start_session(self, history: List[Dict[str, Any]]) -> ChatSession:
        ...


def _block_reason_name(feedback: Any) -> Optional[str]:
    reason = getattr(feedback, "block_reason", None)
    if not reason:
        return None
    return getattr(reason, "name", None) or str(reason)


class GeminiChatSession:
    def __init__(self, chat: Any, timeout: Optional[float] = None):
        self._chat = chat
        self._timeout = timeout

    async def send(self, text: str) -> str:
        request_options = {"timeout": self._timeout} if self._timeout else None
        try:
            response = await self._chat.send_message_async(text, request_options=request_options)
        except genai.types.BlockedPromptException as e:
            feedback = e.args[0] if e.args else None
            raise ProviderBlockedError(_block_reason_name(feedback) or "UNKNOWN") from e

        # Some SDK versions hand back the blocked response instead of raising
        reason = _block_reason_name(getattr(response, "prompt_feedback", None))
        if reason:
            raise ProviderBlockedError(reason)
        return response.text


class GeminiProvider:
    """Opens Gemini chat sessions under the fixed generation and safety policy."""

    def __init__(self, api_key: str, model_name: str, timeout: Optional[float] = None):
        genai.configure(api_key=api_key)
        self._timeout = timeout
        self._model = genai.GenerativeModel(
            model_name,
            generation_config=genai.types.GenerationConfig(**GENERATION_CONFIG),
            safety_settings=SAFETY_SETTINGS,
            system_instruction=SYSTEM_INSTRUCTION,
        )

    def start_session(self, history: List[Dict[str, Any]]) -> GeminiChatSession:
        chat = self._model.start_chat(history=history)
        return GeminiChatSession(chat, timeout=self._timeout)
