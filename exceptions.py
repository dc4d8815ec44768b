# exceptions.py
from fastapi import HTTPException


class MessageRequiredException(HTTPException):
    def __init__(self, detail: str = "Message is required"):
        super().__init__(status_code=400, detail=detail)


class QuotaExceededException(HTTPException):
    def __init__(self, detail: str = "AI service unavailable: Quota exceeded. Please try again later."):
        super().__init__(status_code=429, detail=detail)


class ContentBlockedException(HTTPException):
    def __init__(self, detail: str = "Message blocked due to safety concerns. Please rephrase your message."):
        super().__init__(status_code=400, detail=detail)


class ProviderUnavailableException(HTTPException):
    def __init__(self, detail: str = "Failed to get AI response after multiple attempts. Please try again later."):
        super().__init__(status_code=500, detail=detail)


class HistoryUnavailableException(HTTPException):
    def __init__(self, detail: str = "Failed to retrieve chat history."):
        super().__init__(status_code=500, detail=detail)


SERVER_ERROR_MESSAGE = "Server error. Please try again later."


class ServerErrorException(HTTPException):
    def __init__(self, detail: str = SERVER_ERROR_MESSAGE):
        super().__init__(status_code=500, detail=detail)
