from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Sequence

import httpx
from groq import APIConnectionError, APIStatusError, AsyncGroq

from ..catalog.models import Product
from ..errors import ConfigurationError, RemoteServiceError
from .config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an AI Product Advisor. Given a user query and a JSON catalog, "
    "select 1-3 best products. Respond ONLY as strict JSON in this exact format:\n"
    '{"recommendations": [{"productId": "<id from the catalog>", '
    '"confidence": <number between 0 and 1>, '
    '"reason": "<concise rationale tailored to the user\'s needs>"}]}\n'
    "Only use product ids that appear in the catalog. "
    "Order from best match to worst."
)


@dataclass(frozen=True)
class RemoteReply:
    raw_text: str | None
    model: str | None = None


def serialize_catalog(catalog: Sequence[Product]) -> str:
    return json.dumps([p.model_dump(mode="json") for p in catalog])


def _build_user_parts(query: str, catalog: Sequence[Product]) -> list[str]:
    return [
        f"User query: {query}",
        "Catalog JSON:",
        serialize_catalog(catalog),
    ]


def _first_candidate_text(envelope: Any) -> str | None:
    """Dig ``candidates[0].content.parts[0].text`` out of a generateContent reply."""
    try:
        text = envelope["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


class RemoteAdvisorClient:
    """Send one recommendation request to the configured generation service."""

    def __init__(
        self,
        config: LLMConfig = DEFAULT_LLM_CONFIG,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self._http_client = http_client

    async def request_recommendations(
        self,
        query: str,
        catalog: Sequence[Product],
    ) -> RemoteReply:
        """
        Ask the model for a ranked shortlist.

        Raises ``ConfigurationError`` before any network activity when no API
        key is configured, and ``RemoteServiceError`` when the service answers
        with a non-success status or cannot be reached. A reply without any
        text part is returned as ``RemoteReply(raw_text=None)``.
        """
        if not self.config.api_key:
            raise ConfigurationError(
                f"Missing API key for the {self.config.provider} advisor "
                "(set GEMINI_API_KEY or ADVISOR_API_KEY, or GROQ_API_KEY with ADVISOR_PROVIDER=groq)."
            )

        if self.config.provider == "groq":
            return await self._request_groq(query, catalog)
        return await self._request_gemini(query, catalog)

    # ── Gemini (REST) ────────────────────────────────────────────────────

    def _gemini_payload(self, query: str, catalog: Sequence[Product]) -> dict[str, Any]:
        parts = [SYSTEM_PROMPT, *_build_user_parts(query, catalog)]
        return {
            "contents": [
                {"role": "user", "parts": [{"text": p} for p in parts]},
            ],
            "generationConfig": {
                "temperature": self.config.temperature,
                "maxOutputTokens": self.config.max_tokens,
                "responseMimeType": "application/json",
            },
        }

    async def _post(self, client: httpx.AsyncClient, url: str, payload: dict) -> httpx.Response:
        try:
            return await client.post(
                url,
                params={"key": self.config.api_key},
                json=payload,
                timeout=self.config.timeout,
            )
        except httpx.HTTPError as exc:
            logger.warning("Advisor request to %s failed", self.config.provider, exc_info=True)
            raise RemoteServiceError(None, str(exc) or type(exc).__name__) from exc

    async def _request_gemini(self, query: str, catalog: Sequence[Product]) -> RemoteReply:
        url = f"{self.config.base_url}/models/{self.config.model}:generateContent"
        payload = self._gemini_payload(query, catalog)

        if self._http_client is not None:
            resp = await self._post(self._http_client, url, payload)
        else:
            async with httpx.AsyncClient(timeout=self.config.timeout) as client:
                resp = await self._post(client, url, payload)

        if resp.is_error:
            logger.warning("Advisor service returned HTTP %s", resp.status_code)
            raise RemoteServiceError(resp.status_code, resp.text)

        try:
            envelope = resp.json()
        except ValueError:
            logger.warning("Advisor service returned a non-JSON envelope")
            return RemoteReply(raw_text=None)

        model = envelope.get("modelVersion") if isinstance(envelope, dict) else None
        return RemoteReply(raw_text=_first_candidate_text(envelope), model=model)

    # ── Groq (SDK) ───────────────────────────────────────────────────────

    async def _request_groq(self, query: str, catalog: Sequence[Product]) -> RemoteReply:
        try:
            async with AsyncGroq(
                api_key=self.config.api_key, timeout=self.config.timeout, max_retries=0,
            ) as client:
                response = await client.chat.completions.create(
                    model=self.config.model,
                    messages=[
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": "\n".join(_build_user_parts(query, catalog))},
                    ],
                    max_tokens=self.config.max_tokens,
                    temperature=self.config.temperature,
                    response_format={"type": "json_object"},
                )
        except APIStatusError as exc:
            logger.warning("Groq advisor returned HTTP %s", exc.status_code)
            raise RemoteServiceError(exc.status_code, exc.response.text) from exc
        except APIConnectionError as exc:
            logger.warning("Groq advisor request failed", exc_info=True)
            raise RemoteServiceError(None, str(exc)) from exc

        if not response.choices:
            return RemoteReply(raw_text=None, model=response.model)
        content = response.choices[0].message.content
        return RemoteReply(raw_text=content or None, model=response.model)
