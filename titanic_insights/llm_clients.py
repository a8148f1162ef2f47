from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import requests


class LLMClient(Protocol):
    def generate(self, system_prompt: str, user_prompt: str) -> str:
        ...


@dataclass
class GeminiClient:
    api_key: str
    model: str
    json_output: bool = False
    timeout_seconds: int = 120

    def __post_init__(self) -> None:
        from google import genai

        self.client = genai.Client(
            api_key=self.api_key,
            http_options={"timeout": self.timeout_seconds * 1000},
        )

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        from google.genai import types

        response = self.client.models.generate_content(
            model=self.model,
            contents=user_prompt,
            config=types.GenerateContentConfig(
                system_instruction=system_prompt,
                temperature=0.2,
                response_mime_type="application/json" if self.json_output else None,
            ),
        )
        return response.text or ""


@dataclass
class OpenAIClient:
    api_key: str
    model: str
    json_output: bool = False
    timeout_seconds: int = 120

    def __post_init__(self) -> None:
        from openai import OpenAI

        self.client = OpenAI(api_key=self.api_key, timeout=self.timeout_seconds)

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        extra: dict[str, object] = {}
        if self.json_output:
            extra["response_format"] = {"type": "json_object"}

        response = self.client.chat.completions.create(
            model=self.model,
            temperature=0.2,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            **extra,
        )
        return response.choices[0].message.content or ""


@dataclass
class OllamaClient:
    base_url: str
    model: str
    json_output: bool = False
    timeout_seconds: int = 120

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        endpoint = f"{self.base_url.rstrip('/')}/api/chat"
        payload = {
            "model": self.model,
            "stream": False,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "options": {
                "temperature": 0.2,
            },
        }
        if self.json_output:
            payload["format"] = "json"

        response = requests.post(endpoint, json=payload, timeout=self.timeout_seconds)
        response.raise_for_status()
        response_json = response.json()

        message = response_json.get("message", {})
        return message.get("content", "")


def create_llm_client(
    provider: str,
    *,
    gemini_api_key: str | None = None,
    gemini_model: str = "gemini-3-flash-preview",
    openai_api_key: str | None = None,
    openai_model: str = "gpt-4o-mini",
    ollama_base_url: str = "http://localhost:11434",
    ollama_model: str = "llama3.1",
    json_output: bool = False,
    timeout_seconds: int = 120,
) -> LLMClient:
    provider_normalized = provider.strip().lower()

    if provider_normalized == "gemini":
        if not gemini_api_key:
            raise ValueError("GEMINI_API_KEY is required when provider is Gemini.")
        return GeminiClient(
            api_key=gemini_api_key,
            model=gemini_model,
            json_output=json_output,
            timeout_seconds=timeout_seconds,
        )

    if provider_normalized == "openai":
        if not openai_api_key:
            raise ValueError("OPENAI_API_KEY is required when provider is OpenAI.")
        return OpenAIClient(
            api_key=openai_api_key,
            model=openai_model,
            json_output=json_output,
            timeout_seconds=timeout_seconds,
        )

    if provider_normalized == "ollama":
        return OllamaClient(
            base_url=ollama_base_url,
            model=ollama_model,
            json_output=json_output,
            timeout_seconds=timeout_seconds,
        )

    raise ValueError(f"Unsupported provider: {provider}")
