# app/services/llm_service.py
import asyncio
import logging
from typing import Dict, List, Optional, Protocol

import google.generativeai as genai
import httpx

from app.core.config import settings
from app.core.errors import LanguageModelError

logger = logging.getLogger(__name__)

# -----------------------------
# Provider contract
# -----------------------------

class LanguageModel(Protocol):
    async def complete(
        self,
        system_prompt: str,
        messages: List[Dict[str, str]],
        *,
        json_mode: bool = False,
    ) -> str:
        """
        messages: [{"role": "user" | "assistant", "content": str}, ...]
        Raises LanguageModelError when no usable content is produced.
        """
        ...


# -----------------------------
# OpenRouter (HTTP)
# -----------------------------

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"

TIMEOUT = httpx.Timeout(
    timeout=20.0,
    connect=5.0,
    read=20.0,
    write=20.0,
)


class OpenRouterLanguageModel:
    """Tries each configured model in order and returns the first complete answer."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        models: Optional[List[str]] = None,
        temperature: float = 0.3,
        max_tokens: int = 512,
    ):
        self.api_key = api_key if api_key is not None else settings.OPENROUTER_API_KEY
        self.models = list(models or settings.OPENROUTER_MODELS)
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def complete(self, system_prompt, messages, *, json_mode=False):
        if not self.api_key:
            raise LanguageModelError("OpenRouter API key not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": settings.APP_NAME,
        }

        async with httpx.AsyncClient(timeout=TIMEOUT) as client:

            for model in self.models:
                payload = {
                    "model": model,
                    "messages": [{"role": "system", "content": system_prompt}, *messages],
                    "temperature": self.temperature,
                    "max_tokens": self.max_tokens,
                }
                if json_mode:
                    payload["response_format"] = {"type": "json_object"}

                try:
                    resp = await client.post(OPENROUTER_URL, headers=headers, json=payload)

                    logger.info("openrouter: model=%s status=%s", model, resp.status_code)

                    if resp.status_code != 200:
                        continue

                    data = resp.json()
                    choice = (data.get("choices") or [{}])[0]
                    finish_reason = choice.get("finish_reason")
                    content = ((choice.get("message") or {}).get("content") or "").strip()

                    # truncated answers are useless for JSON extraction
                    if finish_reason not in (None, "stop"):
                        logger.warning("model %s returned finish_reason=%s; skipping", model, finish_reason)
                        continue

                    if not content:
                        logger.warning("model %s returned empty content; skipping", model)
                        continue

                    return content

                except (httpx.TimeoutException, httpx.ConnectError) as exc:
                    logger.warning("network error calling model %s: %s", model, exc)
                    continue

                except Exception:
                    logger.exception("unexpected error calling model %s", model)
                    continue

        raise LanguageModelError("all OpenRouter models failed")


# -----------------------------
# Google Gemini
# -----------------------------

class GeminiLanguageModel:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.GOOGLE_API_KEY
        self.model = model or settings.GOOGLE_MODEL
        if self.api_key:
            genai.configure(api_key=self.api_key)

    def _generate(self, system_prompt: str, messages: List[Dict[str, str]], json_mode: bool) -> str:
        model_instance = genai.GenerativeModel(self.model, system_instruction=system_prompt)
        contents = [
            {"role": "model" if m["role"] == "assistant" else "user", "parts": [m["content"]]}
            for m in messages
        ]
        generation_config = {"response_mime_type": "application/json"} if json_mode else None
        response = model_instance.generate_content(contents, generation_config=generation_config)
        return response.text if response and response.text else ""

    async def complete(self, system_prompt, messages, *, json_mode=False):
        if not self.api_key:
            raise LanguageModelError("GOOGLE_API_KEY not configured")
        try:
            # the SDK call is blocking
            text = await asyncio.to_thread(self._generate, system_prompt, messages, json_mode)
        except Exception as e:
            raise LanguageModelError(f"gemini call failed: {e}") from e
        text = text.strip()
        if not text:
            raise LanguageModelError("gemini returned empty content")
        return text


def build_language_model(provider: Optional[str] = None) -> LanguageModel:
    provider = (provider or settings.LLM_PROVIDER).lower()
    if provider == "gemini":
        return GeminiLanguageModel()
    if provider == "openrouter":
        return OpenRouterLanguageModel()
    raise ValueError(f"unknown LLM provider: {provider}")
