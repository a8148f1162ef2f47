from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class AppConfig:
    log_dir: Path
    data_path: Path
    static_dir: Path
    app_env: str
    gateway_host: str
    gateway_port: int
    gateway_url: str
    llm_provider: str
    gemini_api_key: str | None
    gemini_model: str
    openai_api_key: str | None
    openai_model: str
    ollama_base_url: str
    ollama_model: str
    request_timeout_seconds: int

    @classmethod
    def from_env(cls) -> "AppConfig":
        gateway_port = int(os.getenv("GATEWAY_PORT", "3000"))
        return cls(
            log_dir=Path(os.getenv("LOG_DIR", "logs")),
            data_path=Path(os.getenv("TITANIC_CSV", "titanic.csv")),
            static_dir=Path(os.getenv("STATIC_DIR", "dist")),
            app_env=os.getenv("APP_ENV", "development"),
            gateway_host=os.getenv("GATEWAY_HOST", "0.0.0.0"),
            gateway_port=gateway_port,
            gateway_url=os.getenv("GATEWAY_URL", f"http://localhost:{gateway_port}"),
            llm_provider=os.getenv("LLM_PROVIDER", "gemini"),
            gemini_api_key=os.getenv("GEMINI_API_KEY"),
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-3-flash-preview"),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            ollama_base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434"),
            ollama_model=os.getenv("OLLAMA_MODEL", "llama3.1"),
            request_timeout_seconds=int(os.getenv("REQUEST_TIMEOUT_SECONDS", "120")),
        )
