# models.py
from datetime import datetime

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    message: str = Field(..., description="User message")


class ChatResponse(BaseModel):
    reply: str


class ErrorResponse(BaseModel):
    error: str


class HistoryItem(BaseModel):
    userMessage: str
    aiResponse: str
    timestamp: datetime
