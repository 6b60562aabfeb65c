# app/services/conversation_store.py
import logging
from typing import Callable, List, Optional, Tuple

import httpx
from pydantic import ValidationError

from app.schemas import Message, Role

logger = logging.getLogger(__name__)

CHAT_ENDPOINT = "/api/chat"
FALLBACK_REPLY_TEXT = "Oops! Something went wrong. Please try again."

Listener = Callable[[Tuple[Message, ...]], None]


class ExchangeFailed(Exception):
    """The gateway answered, but not with a usable model reply."""


class ConversationStore:
    """
    Client-side message log for one session.

    Holds the history in memory, sends the whole of it to the gateway on every
    submit, and appends either the model's reply or a fallback message.
    """

    def __init__(self, client: httpx.AsyncClient, endpoint: str = CHAT_ENDPOINT):
        self._client = client
        self._endpoint = endpoint
        self._messages: List[Message] = []
        self._busy = False
        self._listeners: List[Listener] = []
        self.draft = ""

    @property
    def messages(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def busy(self) -> bool:
        return self._busy

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` with the new history whenever it grows."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def submit(self, text: Optional[str] = None) -> bool:
        """
        Send `text` (or the current draft) as the next user turn.

        Returns False without touching the history when the text is blank or
        another exchange is still in flight.
        """
        if text is None:
            text = self.draft
        if not text.strip() or self._busy:
            return False

        self._append(Message.from_text(Role.USER, text))
        self.draft = ""
        self._busy = True
        try:
            try:
                reply = await self._exchange(self.messages)
            except Exception:
                logger.exception("Error sending message")
                reply = Message.from_text(Role.MODEL, FALLBACK_REPLY_TEXT)
            self._append(reply)
        finally:
            self._busy = False
        return True

    async def _exchange(self, history: Tuple[Message, ...]) -> Message:
        payload = {"history": [m.model_dump(mode="json") for m in history]}
        response = await self._client.post(self._endpoint, json=payload)

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = None
            detail = body.get("message") if isinstance(body, dict) else None
            raise ExchangeFailed(
                detail or f"Server responded with status {response.status_code}."
            )

        data = response.json()
        reply = data.get("reply") if isinstance(data, dict) else None
        if not reply:
            raise ExchangeFailed("No valid reply from the AI.")
        try:
            message = Message.model_validate(reply)
        except ValidationError as e:
            raise ExchangeFailed(f"Malformed reply: {e}") from e
        if message.role is not Role.MODEL:
            raise ExchangeFailed("Reply was not authored by the model.")
        return message

    def _append(self, message: Message) -> None:
        self._messages.append(message)
        snapshot = self.messages
        for listener in list(self._listeners):
            listener(snapshot)
