"""
LLM Client Abstraction
Single entry point for all text-generation calls in the materials advisor.

Each capability (deep research, recommendation synthesis, requirement
analysis) gets its own LLMClient built from a TextGenConfig. A missing
credential is not an error: generate() returns None ("unavailable") and the
caller takes its deterministic path.
"""
import asyncio
import logging
from typing import Optional

import litellm

from app.agents.config import TextGenConfig

logger = logging.getLogger("packmat-llm")

# Suppress litellm verbose logging
litellm.suppress_debug_info = True


class LLMClient:
    """Text-generation capability: prompt in, text blob or None out."""

    def __init__(self, config: TextGenConfig):
        self.config = config

    @property
    def configured(self) -> bool:
        return self.config.configured

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Optional[str]:
        """
        Call the primary model, then the fallback model once if the primary fails.
        Returns the response content, or None when the capability is
        unconfigured, unauthorized, timed out, or returned nothing usable.
        """
        if not self.configured:
            logger.info(f"No credential configured for {self.config.model}; text generation unavailable")
            return None

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        kwargs = {
            "messages": messages,
            "temperature": self.config.temperature if temperature is None else temperature,
            "max_tokens": self.config.max_tokens if max_tokens is None else max_tokens,
            "api_key": self.config.credential,
        }
        if self.config.base_endpoint:
            kwargs["api_base"] = self.config.base_endpoint

        models = [self.config.model]
        if self.config.fallback_model and self.config.fallback_model != self.config.model:
            models.append(self.config.fallback_model)

        for model in models:
            content = await self._attempt(model, kwargs)
            if content:
                return content
        return None

    async def _attempt(self, model: str, kwargs: dict) -> Optional[str]:
        try:
            response = await asyncio.wait_for(
                litellm.acompletion(model=model, **kwargs),
                timeout=self.config.timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning(f"{model} timed out after {self.config.timeout_s}s")
            return None
        except litellm.AuthenticationError:
            logger.warning(f"{model} rejected the configured credential")
            return None
        except litellm.RateLimitError:
            logger.warning(f"{model} rate limit hit")
            return None
        except Exception as e:
            logger.warning(f"{model} error ({type(e).__name__}: {e})")
            return None

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, KeyError, TypeError):
            logger.warning(f"{model} returned an unexpected response shape")
            return None
        if not content or not content.strip():
            logger.warning(f"{model} returned empty content")
            return None
        return content


def extract_json_block(text: str) -> Optional[str]:
    """
    Return the first balanced ``{...}`` block in ``text``.

    Braces inside JSON string literals are ignored. Returns None when no
    opening brace exists or the first block never closes.
    """
    if not text:
        return None
    start = text.find("{")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def get_system_prompt(role: str) -> str:
    """Standard system prompts for the different AI roles."""
    prompts = {
        "researcher": (
            "You are a materials science expert specializing in sustainable packaging materials. "
            "Provide detailed, accurate, and up-to-date information based on recent research and "
            "industry developments. Always respond in English."
        ),
        "integrator": (
            "You are a packaging materials expert. You integrate database search results and "
            "research findings into graded recommendations and answer with JSON only."
        ),
        "spec_analyst": (
            "You are a Technical Specification Analyst for packaging films. You read product "
            "specification sheets and extract performance requirements and material composition."
        ),
        "experiment_planner": (
            "You are an expert in packaging material development. You design practical, staged "
            "experimental plans and answer with JSON only."
        ),
    }
    return prompts.get(role, prompts["researcher"])
