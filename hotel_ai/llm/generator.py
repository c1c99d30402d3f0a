"""
Text Generator
LLM Provider:
- If OPENAI_API_KEY is set: use OpenAI (chat completions)
- If no OPENAI_API_KEY: use Ollama (/api/generate over httpx)

Failures surface as GenerationFailed; callers decide how to degrade.
"""

from typing import Dict, List, Optional

import httpx
from loguru import logger

from ..config import Settings, settings as default_settings
from ..errors import GenerationFailed


class OpenAIGenerator:
    def __init__(self, config: Settings):
        from openai import AsyncOpenAI

        self.client = AsyncOpenAI(api_key=config.OPENAI_API_KEY)
        self.model = config.OPENAI_MODEL
        self.temperature = config.LLM_TEMPERATURE
        self.max_tokens = config.LLM_MAX_TOKENS
        self.name = f"openai:{self.model}"

    async def generate(self, system: str, prompt: str, history: Optional[List[Dict]] = None) -> str:
        messages = [{"role": "system", "content": system}]
        messages.extend(history or [])
        messages.append({"role": "user", "content": prompt})
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except Exception as e:
            logger.error(f"OpenAI API error: {e}")
            raise GenerationFailed(f"OpenAI API error: {e}") from e

        content = (response.choices[0].message.content or "").strip()
        if not content:
            raise GenerationFailed("OpenAI returned an empty completion")
        return content


class OllamaGenerator:
    def __init__(self, config: Settings):
        self.base_url = config.OLLAMA_BASE_URL.rstrip("/")
        self.model = config.OLLAMA_MODEL
        self.temperature = config.LLM_TEMPERATURE
        self.max_tokens = config.LLM_MAX_TOKENS
        self.name = f"ollama:{self.model}"

    async def generate(self, system: str, prompt: str, history: Optional[List[Dict]] = None) -> str:
        # /api/generate takes a single prompt, so history is inlined
        transcript = "\n".join(f"{m['role'].title()}: {m['content']}" for m in history or [])
        full_prompt = f"{system}\n\n{transcript}\n\nUser: {prompt}\nAssistant:" if transcript else (
            f"{system}\n\nUser: {prompt}\nAssistant:"
        )
        try:
            async with httpx.AsyncClient(timeout=60.0) as client:
                response = await client.post(
                    f"{self.base_url}/api/generate",
                    json={
                        "model": self.model,
                        "prompt": full_prompt,
                        "stream": False,
                        "options": {
                            "temperature": self.temperature,
                            "num_predict": self.max_tokens,
                        },
                    },
                )
        except httpx.ConnectError as e:
            logger.error("Cannot connect to Ollama. Make sure Ollama is running.")
            raise GenerationFailed("cannot connect to Ollama") from e
        except httpx.HTTPError as e:
            logger.error(f"Ollama API error: {e}")
            raise GenerationFailed(f"Ollama API error: {e}") from e

        if response.status_code != 200:
            logger.error(f"Ollama returned HTTP {response.status_code}")
            raise GenerationFailed(f"Ollama returned HTTP {response.status_code}")

        content = (response.json().get("response") or "").strip()
        if not content:
            raise GenerationFailed("Ollama returned an empty response")
        return content


def build_generator(config: Settings = default_settings):
    """Pick the generation provider from configuration"""
    if config.use_openai:
        logger.info(f"LLM provider: OpenAI ({config.OPENAI_MODEL})")
        return OpenAIGenerator(config)
    logger.info(f"LLM provider: Ollama ({config.OLLAMA_MODEL} at {config.OLLAMA_BASE_URL})")
    return OllamaGenerator(config)
