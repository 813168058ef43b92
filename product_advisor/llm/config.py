from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

_PROVIDER_DEFAULTS: dict[str, dict] = {
    "gemini": {
        "key_envs": ("GEMINI_API_KEY", "EXPO_PUBLIC_GEMINI_API_KEY", "ADVISOR_API_KEY"),
        "model": "gemini-1.5-flash",
        "base_url": "https://generativelanguage.googleapis.com/v1beta",
    },
    "groq": {
        "key_envs": ("GROQ_API_KEY", "ADVISOR_API_KEY"),
        "model": "llama-3.3-70b-versatile",
        "base_url": "https://api.groq.com",
    },
}


def _first_env(*names: str) -> str:
    """Return the first non-empty variable among ``names``."""
    for name in names:
        value = os.getenv(name, "")
        if value:
            return value
    return ""


@dataclass(frozen=True)
class LLMConfig:
    provider: str = "gemini"
    api_key: str = _first_env("GEMINI_API_KEY", "EXPO_PUBLIC_GEMINI_API_KEY")
    model: str = "gemini-1.5-flash"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    timeout: float = 10.0
    max_tokens: int = 512
    temperature: float = 0.2

    @classmethod
    def from_env(cls, provider: str | None = None) -> "LLMConfig":
        """Build a config for ``provider`` with its own key variable and default model."""
        provider = (provider or os.getenv("ADVISOR_PROVIDER", "gemini")).lower()
        if provider not in _PROVIDER_DEFAULTS:
            raise ValueError(f"Unknown advisor provider: {provider!r}")
        defaults = _PROVIDER_DEFAULTS[provider]
        return cls(
            provider=provider,
            api_key=_first_env(*defaults["key_envs"]),
            model=os.getenv("ADVISOR_MODEL", defaults["model"]),
            base_url=defaults["base_url"],
            timeout=float(os.getenv("ADVISOR_TIMEOUT", "10.0")),
        )


DEFAULT_LLM_CONFIG = LLMConfig.from_env()
