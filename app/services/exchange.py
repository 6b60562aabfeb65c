# app/services/exchange.py
import asyncio
import logging
from typing import Any, Callable, Optional

from pydantic import ValidationError

from app.schemas import Message, Role
from app.services.gemini_provider import ChatProvider, ProviderBlockedError

logger = logging.getLogger(__name__)


class ExchangeError(Exception):
    """A request the gateway refuses, with the HTTP status to report it under."""

    def __init__(self, status_code: int, message: str, error: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.error = error


class ExchangeGateway:
    """
    Stateless translation of one chat request into one provider call.

    The API key is injected once at construction; the provider is built from
    it lazily so a missing key only surfaces when a request arrives.
    """

    def __init__(
        self,
        api_key: Optional[str],
        provider_factory: Callable[[str], ChatProvider],
        timeout: Optional[float] = 60.0,
    ):
        self._api_key = api_key
        self._provider_factory = provider_factory
        self._provider: Optional[ChatProvider] = None
        self._timeout = timeout

    def _get_provider(self) -> ChatProvider:
        if self._provider is None:
            self._provider = self._provider_factory(self._api_key)
        return self._provider

    async def exchange(self, body: Any) -> Message:
        history = body.get("history") if isinstance(body, dict) else None
        if not isinstance(history, list):
            raise ExchangeError(400, "Conversation history is required and must be an array.")

        if not self._api_key:
            logger.error("GEMINI_API_KEY is not set; rejecting chat request.")
            raise ExchangeError(500, "Gemini API key is not configured.")

        last_turn = self._parse_last_turn(history)

        # Earlier turns are trusted and forwarded untouched as context.
        try:
            session = self._get_provider().start_session(history[:-1])
            text = await asyncio.wait_for(session.send(last_turn.text), timeout=self._timeout)
        except ProviderBlockedError as e:
            logger.warning("Provider blocked the prompt: %s", e.reason)
            raise ExchangeError(
                400, f"Content blocked because of: {e.reason}. Please try a different question."
            )
        except asyncio.TimeoutError:
            logger.error("Provider did not answer within %ss", self._timeout)
            raise ExchangeError(
                500,
                "The AI service took too long to respond.",
                error=f"No reply within {self._timeout} seconds.",
            )
        except Exception as e:
            logger.exception("Error while calling the Gemini API")
            raise ExchangeError(500, "Error while processing your request.", error=str(e))

        return Message.from_text(Role.MODEL, text)

    @staticmethod
    def _parse_last_turn(history: list) -> Message:
        if not history:
            raise ExchangeError(400, "The last user message in the history is invalid.")
        try:
            last_turn = Message.model_validate(history[-1])
        except ValidationError:
            raise ExchangeError(400, "The last user message in the history is invalid.")
        if last_turn.role is not Role.USER:
            raise ExchangeError(400, "The last user message in the history is invalid.")
        return last_turn
