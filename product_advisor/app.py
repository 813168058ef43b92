from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, HTTPException

from .catalog.models import Product
from .catalog.store import find_product, get_catalog
from .llm.client import RemoteAdvisorClient
from .llm.config import DEFAULT_LLM_CONFIG
from .log import configure_logging
from .recommendations.models import (
    AdviceRequest,
    AdviceResponse,
    AdvisorSnapshot,
    RecommendationItem,
)
from .recommendations.orchestrator import AdvisorOrchestrator

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Product Advisor API", version="1.0.0")

_orchestrator: AdvisorOrchestrator | None = None


def get_orchestrator() -> AdvisorOrchestrator:
    """Return the process-wide orchestrator, building it on first call."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = AdvisorOrchestrator(
            get_catalog(),
            RemoteAdvisorClient(DEFAULT_LLM_CONFIG),
        )
    return _orchestrator


def _to_response(snapshot: AdvisorSnapshot, orchestrator: AdvisorOrchestrator) -> AdviceResponse:
    items: list[RecommendationItem] = []
    model = None
    if snapshot.result is not None:
        model = snapshot.result.model
        for rec in snapshot.result.recommendations:
            product = find_product(orchestrator.catalog, rec.product_id)
            if product is None:
                logger.warning("Dropping recommendation for unknown product %r", rec.product_id)
                continue
            items.append(RecommendationItem(
                product=product,
                confidence=rec.confidence,
                reason=rec.reason,
            ))

    return AdviceResponse(
        state=snapshot.state,
        loading=snapshot.loading,
        query=snapshot.query,
        error=snapshot.error,
        model=model,
        recommendations=items,
    )


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/catalog", response_model=list[Product])
def catalog(orchestrator: AdvisorOrchestrator = Depends(get_orchestrator)) -> list[Product]:
    return list(orchestrator.catalog)


@app.get("/catalog/{product_id}", response_model=Product)
def catalog_item(
    product_id: str,
    orchestrator: AdvisorOrchestrator = Depends(get_orchestrator),
) -> Product:
    product = find_product(orchestrator.catalog, product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


# ── Advisor endpoints ────────────────────────────────────────────────────


@app.post("/advisor", response_model=AdviceResponse)
async def advise(
    body: AdviceRequest,
    orchestrator: AdvisorOrchestrator = Depends(get_orchestrator),
) -> AdviceResponse:
    await orchestrator.submit(body.query)
    return _to_response(orchestrator.snapshot(), orchestrator)


@app.get("/advisor", response_model=AdviceResponse)
def advisor_state(orchestrator: AdvisorOrchestrator = Depends(get_orchestrator)) -> AdviceResponse:
    return _to_response(orchestrator.snapshot(), orchestrator)
