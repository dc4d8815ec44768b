# providers.py
"""Generative-text provider clients.

Each provider performs exactly one outbound call per ``generate`` and
classifies the outcome into a ``ProviderResult`` instead of raising, so the
retry policy never has to inspect SDK error wording.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Union

import openai
from google import genai
from google.genai import errors, types
from openai import AsyncOpenAI

from settings import Settings

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = (
    "You are a helpful AI assistant. Please provide a well-formatted response to the following query. "
    "Use line breaks, bullet points, or numbered lists where appropriate to make the response easy to read. "
    "Avoid returning the response as a single paragraph unless it is a short answer."
)


@dataclass(frozen=True)
class Success:
    text: str


@dataclass(frozen=True)
class QuotaExceeded:
    detail: str = ""


@dataclass(frozen=True)
class ContentBlocked:
    detail: str = ""


@dataclass(frozen=True)
class Transient:
    detail: str = ""


ProviderResult = Union[Success, QuotaExceeded, ContentBlocked, Transient]


# --- Gemini ---

GEMINI_BLOCKED_FINISH_REASONS = {
    types.FinishReason.SAFETY,
    types.FinishReason.BLOCKLIST,
    types.FinishReason.PROHIBITED_CONTENT,
    types.FinishReason.SPII,
}


class GeminiProvider:
    name = "gemini"

    def __init__(self, api_key: str, model_name: str, client: Optional[genai.Client] = None):
        self.model_name = model_name
        self.client = client or genai.Client(api_key=api_key)

    async def generate(self, prompt: str) -> ProviderResult:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=types.GenerateContentConfig(system_instruction=SYSTEM_INSTRUCTION),
            )
        except errors.APIError as e:
            if e.code == 429 or e.status == "RESOURCE_EXHAUSTED":
                return QuotaExceeded(str(e))
            return Transient(f"Gemini API error {e.code}: {e.message}")
        except Exception as e:
            return Transient(repr(e))

        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and feedback.block_reason:
            return ContentBlocked(f"prompt blocked: {feedback.block_reason}")

        candidates = response.candidates or []
        if candidates and candidates[0].finish_reason in GEMINI_BLOCKED_FINISH_REASONS:
            return ContentBlocked(f"response blocked: {candidates[0].finish_reason}")

        text = response.text
        if not text or not text.strip():
            return Transient("Empty response from model")
        return Success(text)


# --- OpenAI ---

OPENAI_BLOCKED_CODES = {"content_policy_violation", "content_filter"}


class OpenAIProvider:
    name = "openai"

    def __init__(self, api_key: str, model_name: str, max_tokens: int = 150,
                 client: Optional[AsyncOpenAI] = None):
        self.model_name = model_name
        self.max_tokens = max_tokens
        self.client = client or AsyncOpenAI(api_key=api_key)

    async def generate(self, prompt: str) -> ProviderResult:
        try:
            response = await self.client.completions.create(
                model=self.model_name,
                prompt=prompt,
                max_tokens=self.max_tokens,
            )
        except openai.RateLimitError as e:
            return QuotaExceeded(str(e))
        except openai.BadRequestError as e:
            if e.code in OPENAI_BLOCKED_CODES:
                return ContentBlocked(str(e))
            return Transient(str(e))
        except openai.OpenAIError as e:
            return Transient(str(e))

        if not response.choices:
            return Transient("Empty response from model")
        choice = response.choices[0]
        if choice.finish_reason == "content_filter":
            return ContentBlocked("completion filtered")
        if not choice.text or not choice.text.strip():
            return Transient("Empty response from model")
        return Success(choice.text)


def build_provider(settings: Settings):
    if settings.AI_PROVIDER == "openai":
        provider = OpenAIProvider(settings.api_key, settings.model_name, settings.MAX_OUTPUT_TOKENS)
    else:
        provider = GeminiProvider(settings.api_key, settings.model_name)
    logger.info("Using %s provider with model %s", provider.name, provider.model_name)
    return provider
