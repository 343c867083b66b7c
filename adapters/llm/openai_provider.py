from __future__ import annotations

import logging
import os
from typing import Any

import openai
from openai import OpenAI

from adapters.llm.base import CompletionService
from nql.errors.codes import ErrorCode
from nql.errors.exceptions import ConfigurationError, UpstreamTransportError

log = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_TIMEOUT_SEC = 20.0
_BODY_EXCERPT = 500


def _resolve_api_config() -> tuple[str, str, str]:
    """Returns (api_key, base_url, model_id) according to env."""
    override_model = os.getenv("LLM_MODEL_ID")

    proxy_key = os.getenv("PROXY_API_KEY")
    proxy_url = os.getenv("PROXY_BASE_URL")
    if proxy_key and proxy_url:
        model = (
            override_model
            or os.getenv("PROXY_MODEL_ID")
            or os.getenv("OPENAI_MODEL_ID")
            or DEFAULT_MODEL
        )
        return proxy_key, proxy_url, model

    openai_key = os.getenv("OPENAI_API_KEY")
    if not openai_key:
        raise ConfigurationError(
            "Completion service is not configured. Set OPENAI_API_KEY "
            "(or PROXY_API_KEY/PROXY_BASE_URL).",
            code=ErrorCode.LLM_DISABLED,
        )
    openai_url = os.getenv("OPENAI_BASE_URL", DEFAULT_BASE_URL)
    model = override_model or os.getenv("OPENAI_MODEL_ID") or DEFAULT_MODEL
    return openai_key, openai_url, model


class OpenAIProvider(CompletionService):
    """OpenAI chat-completions backed CompletionService."""

    PROVIDER_ID = "openai"

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT_SEC,
        max_tokens: int | None = 800,
        model: str | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
    ) -> None:
        """Initialize OpenAI client with config from environment.

        Automatic SDK retries are disabled; a failed call surfaces to the
        caller, who decides whether to resubmit.
        """
        if api_key:
            env_model = os.getenv("OPENAI_MODEL_ID") or DEFAULT_MODEL
            base_url = base_url or DEFAULT_BASE_URL
        else:
            api_key, base_url, env_model = _resolve_api_config()
        self.client = OpenAI(
            api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0
        )
        self.model = model or env_model
        self.timeout = timeout
        self.max_tokens = max_tokens
        # last call usage/metadata for tracing
        self._last_usage: dict[str, Any] = {}

    def get_last_usage(self) -> dict[str, Any]:
        """Return metadata of the last LLM call (tokens, cost)."""
        return dict(self._last_usage)

    def _create_chat_completion(self, **kwargs):
        """OpenAI SDK seam for stable unit testing."""
        return self.client.chat.completions.create(**kwargs)

    def complete(
        self,
        *,
        system: str,
        user: str,
        temperature: float = 0.2,
        json_mode: bool = True,
    ) -> str:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": temperature,
        }
        if self.max_tokens:
            kwargs["max_tokens"] = self.max_tokens
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            completion = self._create_chat_completion(**kwargs)
        except openai.APITimeoutError as e:
            log.warning("Completion call timed out after %.1fs", self.timeout)
            raise UpstreamTransportError(
                f"Completion service timed out after {self.timeout:g}s",
                code=ErrorCode.LLM_TIMEOUT,
                detail=str(e),
            ) from e
        except openai.APIStatusError as e:
            body = (getattr(e.response, "text", "") or str(e))[:_BODY_EXCERPT]
            log.warning(
                "Completion service returned HTTP %s",
                e.status_code,
                extra={"body_excerpt": body},
            )
            raise UpstreamTransportError(
                f"Completion service returned HTTP {e.status_code}",
                code=ErrorCode.LLM_HTTP_ERROR,
                detail=body,
                status=e.status_code,
            ) from e
        except openai.APIConnectionError as e:
            raise UpstreamTransportError(
                "Completion service is unreachable",
                code=ErrorCode.LLM_UNREACHABLE,
                detail=str(e),
            ) from e

        text = completion.choices[0].message.content or ""
        usage = completion.usage
        if usage:
            self._last_usage = {
                "prompt_tokens": usage.prompt_tokens,
                "completion_tokens": usage.completion_tokens,
                "cost_usd": self._estimate_cost(usage),
            }
        else:
            self._last_usage = {
                "prompt_tokens": 0,
                "completion_tokens": 0,
                "cost_usd": 0.0,
            }
        return text.strip()

    def _estimate_cost(self, usage: Any) -> float:
        """Estimate cost based on token usage.

        Args:
            usage: OpenAI usage object with token counts

        Returns:
            Estimated cost in USD
        """
        if not usage:
            return 0.0

        # Pricing per 1K tokens (adjust based on model)
        pricing = {
            "gpt-4": {"input": 0.03, "output": 0.06},
            "gpt-4-turbo": {"input": 0.01, "output": 0.03},
            "gpt-4o": {"input": 0.005, "output": 0.015},
            "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
            "gpt-3.5-turbo": {"input": 0.0005, "output": 0.0015},
        }

        model_pricing = pricing.get(self.model, pricing["gpt-4o-mini"])

        input_cost = (usage.prompt_tokens / 1000) * model_pricing["input"]
        output_cost = (usage.completion_tokens / 1000) * model_pricing["output"]

        return input_cost + output_cost
