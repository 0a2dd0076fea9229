"""AI backend capability: chat completions, embeddings and image OCR.

Every AI call in the ingest and search pipelines goes through an
``AIBackend`` instance handed to the component at construction time.
``NullBackend`` stands for "no backend configured"; consumers check
``available`` and take their documented fallback instead of calling it.

``LiteLLMBackend`` routes through LiteLLM with its built-in retry
(``num_retries``, exponential backoff).
"""

from __future__ import annotations

import base64
import os
from abc import ABC, abstractmethod

import litellm
import structlog

from secondbrain.config import AiCfg, EmbeddingCfg

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True

logger = structlog.get_logger(logger_name=__name__)

_OCR_SYSTEM_PROMPT = (
    "You are an OCR engine. Return ONLY the text visible in the image, "
    "one line per line in the image."
)
_OCR_USER_PROMPT = (
    "Extract every piece of readable text from this image. "
    "If none, respond with an empty string."
)

# ------------------------------------------------------------------
# Provider → env var mapping for API key detection
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "together_ai": "TOGETHERAI_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


def provider_of(model: str) -> str:
    """Return the LiteLLM provider prefix of *model* ('openai' when absent)."""
    return model.split("/")[0].lower() if "/" in model else "openai"


def has_api_key(model: str) -> bool:
    """True when the environment holds the API key *model*'s provider needs."""
    provider = provider_of(model)
    if provider not in _PROVIDER_ENV:
        return bool(os.getenv(f"{provider.upper()}_API_KEY"))
    env_var = _PROVIDER_ENV[provider]
    return env_var is None or bool(os.getenv(env_var))


class AIBackend(ABC):
    """Capability interface for every AI call the pipeline makes."""

    @property
    @abstractmethod
    def available(self) -> bool:
        """Whether calls can be made at all."""

    @abstractmethod
    def complete_json(self, system: str, prompt: str) -> str:
        """Run a chat completion that must answer with a JSON object.

        Returns the raw message content ('' when the model returned nothing).
        May raise on transport or provider errors.
        """

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        """Return the raw embedding vector of *text*. May raise."""

    @abstractmethod
    def ocr_image(self, data: bytes, mime: str) -> str:
        """Return the text visible in an image. May raise."""


class NullBackend(AIBackend):
    """Backend used when no provider is configured; never performs a call."""

    @property
    def available(self) -> bool:
        return False

    def complete_json(self, system: str, prompt: str) -> str:
        return ""

    def embed(self, text: str) -> list[float]:
        return []

    def ocr_image(self, data: bytes, mime: str) -> str:
        return ""


class LiteLLMBackend(AIBackend):
    """LiteLLM-backed implementation.

    Args:
        ai: Completion / OCR model settings.
        embedding: Embedding model settings.
    """

    def __init__(self, ai: AiCfg | None = None, embedding: EmbeddingCfg | None = None) -> None:
        self._ai = ai or AiCfg()
        self._embedding = embedding or EmbeddingCfg()

    @property
    def available(self) -> bool:
        return True

    def complete_json(self, system: str, prompt: str) -> str:
        response = litellm.completion(
            model=self._ai.summary_model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            response_format={"type": "json_object"},
            temperature=self._ai.temperature,
            num_retries=self._ai.num_retries,
        )
        return (response.choices[0].message.content or "").strip()

    def embed(self, text: str) -> list[float]:
        response = litellm.embedding(
            model=self._embedding.model,
            input=[text],
            num_retries=self._ai.num_retries,
        )
        return list(response.data[0]["embedding"])

    def ocr_image(self, data: bytes, mime: str) -> str:
        encoded = base64.b64encode(data).decode("ascii")
        response = litellm.completion(
            model=self._ai.ocr_model,
            messages=[
                {"role": "system", "content": _OCR_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": _OCR_USER_PROMPT},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:{mime};base64,{encoded}"},
                        },
                    ],
                },
            ],
            temperature=0,
            num_retries=self._ai.num_retries,
        )
        return (response.choices[0].message.content or "").strip()


def build_backend(ai: AiCfg, embedding: EmbeddingCfg) -> AIBackend:
    """Return a LiteLLM backend when the summary model's API key is present.

    Without a key the pipeline runs in offline mode on ``NullBackend``.
    """
    if has_api_key(ai.summary_model):
        return LiteLLMBackend(ai, embedding)
    logger.info("ai_backend_offline", model=ai.summary_model, provider=provider_of(ai.summary_model))
    return NullBackend()
