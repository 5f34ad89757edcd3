from typing import Optional

from pydantic import BaseModel


class ChatRequest(BaseModel):
    message: Optional[str] = None


class ChatResponse(BaseModel):
    reply: str


class ResetResponse(BaseModel):
    reset: bool


class MailCheckResponse(BaseModel):
    success: bool
    message: str
