from __future__ import annotations

import logging
from typing import Callable, Protocol, Sequence

from ..catalog.models import Product
from ..errors import ConfigurationError, NoUsableRecommendations, RemoteServiceError
from ..llm.client import RemoteReply
from .heuristic import MAX_RECOMMENDATIONS, score
from .models import AdvisorResponse, AdvisorSnapshot, AdvisorState, Recommendation
from .validator import normalize

logger = logging.getLogger(__name__)

HEURISTIC_LABEL = "heuristic fallback"

Scorer = Callable[[str, Sequence[Product]], list[Recommendation]]


class AdvisorClient(Protocol):
    async def request_recommendations(
        self, query: str, catalog: Sequence[Product],
    ) -> RemoteReply: ...


def _require_recommendations(recommendations: list[Recommendation]) -> list[Recommendation]:
    if not recommendations:
        raise NoUsableRecommendations("advisor returned no usable recommendations")
    return recommendations[:MAX_RECOMMENDATIONS]


class AdvisorOrchestrator:
    """
    Resolve one query at a time: remote advisor, validation, heuristic fallback.

    Missing credentials and failed HTTP calls end the submission in the
    ``failed`` state without falling back. Only empty or malformed model
    output routes to the heuristic scorer. A submission made while another is
    in flight is ignored.
    """

    def __init__(
        self,
        catalog: Sequence[Product],
        client: AdvisorClient,
        scorer: Scorer = score,
        default_model: str | None = None,
    ) -> None:
        self.catalog = tuple(catalog)
        self.client = client
        self.scorer = scorer
        self.default_model = default_model or getattr(
            getattr(client, "config", None), "model", None,
        ) or "unknown-model"

        self.state = AdvisorState.idle
        self.query: str | None = None
        self.error: str | None = None
        self.result: AdvisorResponse | None = None
        self._busy = False

    @property
    def loading(self) -> bool:
        return self._busy

    def snapshot(self) -> AdvisorSnapshot:
        return AdvisorSnapshot(
            state=self.state,
            loading=self._busy,
            query=self.query,
            error=self.error,
            result=self.result,
        )

    async def submit(self, query: str) -> AdvisorResponse | None:
        """
        Run the pipeline for ``query``.

        Returns the new response, or ``None`` when the submission was ignored
        (blank query, or another one in flight) or failed. Failures are
        reported through ``error`` and ``state``.
        """
        trimmed = (query or "").strip()
        if not trimmed or self._busy:
            return None

        self._busy = True
        self.state = AdvisorState.requesting
        self.query = trimmed
        self.error = None
        try:
            reply = await self.client.request_recommendations(trimmed, self.catalog)
            self.result = self._resolve(trimmed, reply)
        except (ConfigurationError, RemoteServiceError) as exc:
            logger.warning("Advisor request failed: %s", exc)
            self.state = AdvisorState.failed
            self.error = str(exc) or "Something went wrong."
            self.result = None
            return None
        except Exception:
            self.state = AdvisorState.failed
            self.error = "Something went wrong."
            self.result = None
            raise
        finally:
            self._busy = False

        return self.result

    def _resolve(self, query: str, reply: RemoteReply) -> AdvisorResponse:
        model = reply.model or self.default_model
        try:
            recommendations = _require_recommendations(normalize(reply.raw_text))
        except NoUsableRecommendations:
            logger.info("No usable model output for %r, applying heuristic fallback", query)
            self.state = AdvisorState.fallback_applied
            return AdvisorResponse(
                recommendations=self.scorer(query, self.catalog),
                model=f"{HEURISTIC_LABEL} ({model})",
                raw_text=reply.raw_text,
            )

        self.state = AdvisorState.succeeded
        return AdvisorResponse(
            recommendations=recommendations,
            model=model,
            raw_text=reply.raw_text,
        )
