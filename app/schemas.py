# app/schemas.py
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Who authored a turn. There is no third role."""
    USER = "user"
    MODEL = "model"


class TextPart(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str


class Message(BaseModel):
    """A single turn in the conversation history, in the Gemini content shape."""
    model_config = ConfigDict(frozen=True)

    role: Role
    parts: List[TextPart] = Field(..., min_length=1)

    @classmethod
    def from_text(cls, role: Role, text: str) -> "Message":
        return cls(role=role, parts=[TextPart(text=text)])

    @property
    def text(self) -> str:
        """Text of the first fragment; only one is ever populated."""
        return self.parts[0].text


class ChatReply(BaseModel):
    """Successful response body of POST /api/chat."""
    reply: Message


class ErrorBody(BaseModel):
    message: str
    error: Optional[str] = None
