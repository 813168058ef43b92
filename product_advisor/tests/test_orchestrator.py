import asyncio
import json
from unittest.mock import MagicMock

import pytest

from product_advisor.catalog.store import get_catalog
from product_advisor.errors import ConfigurationError, RemoteServiceError
from product_advisor.llm.client import RemoteReply
from product_advisor.recommendations.heuristic import score
from product_advisor.recommendations.models import AdvisorState
from product_advisor.recommendations.orchestrator import HEURISTIC_LABEL, AdvisorOrchestrator

CATALOG = get_catalog()
QUERY = "I need a lightweight laptop for travel with a long battery life"

MODEL_TEXT = json.dumps({
    "recommendations": [
        {"productId": "laptop-travel-14", "confidence": 0.8, "reason": "Cheap and light."},
        {"productId": "laptop-ultra-13", "confidence": 0.75, "reason": "Long battery."},
    ]
})


class FakeClient:
    """Stand-in advisor client that replays a reply or raises an error."""

    def __init__(self, reply: RemoteReply | None = None, error: Exception | None = None, gate=None):
        self.reply = reply
        self.error = error
        self.gate = gate
        self.calls: list[str] = []

    async def request_recommendations(self, query, catalog):
        self.calls.append(query)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.reply


def _spy_scorer():
    return MagicMock(side_effect=score)


def _submit(orchestrator: AdvisorOrchestrator, query: str = QUERY):
    return asyncio.run(orchestrator.submit(query))


def test_initial_state_is_idle():
    orchestrator = AdvisorOrchestrator(CATALOG, FakeClient())
    snap = orchestrator.snapshot()
    assert snap.state == AdvisorState.idle
    assert snap.loading is False
    assert snap.result is None


def test_success_uses_model_output():
    client = FakeClient(RemoteReply(raw_text=MODEL_TEXT, model="gemini-1.5-flash-002"))
    scorer = _spy_scorer()
    orchestrator = AdvisorOrchestrator(CATALOG, client, scorer=scorer)

    response = _submit(orchestrator)

    assert orchestrator.state == AdvisorState.succeeded
    assert [r.product_id for r in response.recommendations] == ["laptop-travel-14", "laptop-ultra-13"]
    assert response.model == "gemini-1.5-flash-002"
    assert response.raw_text == MODEL_TEXT
    assert client.calls == [QUERY]
    scorer.assert_not_called()


def test_success_without_reported_model_uses_default():
    client = FakeClient(RemoteReply(raw_text=MODEL_TEXT))
    orchestrator = AdvisorOrchestrator(CATALOG, client, default_model="gemini-1.5-flash")

    response = _submit(orchestrator)

    assert response.model == "gemini-1.5-flash"


def test_success_is_truncated_to_three():
    entries = [{"productId": p.id, "confidence": 0.5, "reason": "ok"} for p in CATALOG]
    client = FakeClient(RemoteReply(raw_text=json.dumps({"recommendations": entries})))
    orchestrator = AdvisorOrchestrator(CATALOG, client)

    response = _submit(orchestrator)

    assert len(response.recommendations) == 3


def test_empty_list_applies_heuristic_fallback():
    client = FakeClient(RemoteReply(raw_text='{"recommendations": []}', model="gemini-1.5-flash"))
    orchestrator = AdvisorOrchestrator(CATALOG, client)

    response = _submit(orchestrator)

    assert orchestrator.state == AdvisorState.fallback_applied
    assert response.recommendations
    assert response.recommendations[0].product_id == "laptop-ultra-13"
    assert response.model == f"{HEURISTIC_LABEL} (gemini-1.5-flash)"
    assert response.raw_text == '{"recommendations": []}'


def test_malformed_output_applies_heuristic_fallback():
    client = FakeClient(RemoteReply(raw_text="Sure! Here are some laptops..."))
    orchestrator = AdvisorOrchestrator(CATALOG, client)

    response = _submit(orchestrator)

    assert orchestrator.state == AdvisorState.fallback_applied
    assert response.recommendations == score(QUERY, CATALOG)


def test_missing_text_applies_heuristic_fallback():
    orchestrator = AdvisorOrchestrator(CATALOG, FakeClient(RemoteReply(raw_text=None)))

    response = _submit(orchestrator)

    assert orchestrator.state == AdvisorState.fallback_applied
    assert response.raw_text is None


def test_remote_error_fails_without_fallback():
    client = FakeClient(error=RemoteServiceError(500, "Internal error"))
    scorer = _spy_scorer()
    orchestrator = AdvisorOrchestrator(CATALOG, client, scorer=scorer)

    assert _submit(orchestrator) is None

    snap = orchestrator.snapshot()
    assert snap.state == AdvisorState.failed
    assert snap.error and "500" in snap.error
    assert snap.result is None
    assert snap.loading is False
    scorer.assert_not_called()


def test_configuration_error_is_surfaced_verbatim():
    error = ConfigurationError("Missing API key for the gemini advisor.")
    orchestrator = AdvisorOrchestrator(CATALOG, FakeClient(error=error))

    _submit(orchestrator)

    assert orchestrator.state == AdvisorState.failed
    assert orchestrator.error == "Missing API key for the gemini advisor."


def test_blank_query_is_ignored():
    client = FakeClient(RemoteReply(raw_text=MODEL_TEXT))
    orchestrator = AdvisorOrchestrator(CATALOG, client)

    assert _submit(orchestrator, "   ") is None
    assert _submit(orchestrator, "") is None

    assert client.calls == []
    assert orchestrator.state == AdvisorState.idle


def test_query_is_trimmed():
    client = FakeClient(RemoteReply(raw_text=MODEL_TEXT))
    orchestrator = AdvisorOrchestrator(CATALOG, client)

    _submit(orchestrator, "  travel laptop  ")

    assert client.calls == ["travel laptop"]
    assert orchestrator.query == "travel laptop"


def test_previous_result_persists_until_next_submission():
    client = FakeClient(RemoteReply(raw_text=MODEL_TEXT))
    orchestrator = AdvisorOrchestrator(CATALOG, client)

    first = _submit(orchestrator)
    _submit(orchestrator, "   ")

    assert orchestrator.result == first
    assert orchestrator.state == AdvisorState.succeeded

    client.reply = None
    client.error = RemoteServiceError(502, "Bad gateway")
    _submit(orchestrator, "a phone")

    assert orchestrator.state == AdvisorState.failed
    assert orchestrator.result is None


def test_second_submission_while_requesting_is_ignored():
    async def scenario():
        gate = asyncio.Event()
        client = FakeClient(RemoteReply(raw_text=MODEL_TEXT), gate=gate)
        orchestrator = AdvisorOrchestrator(CATALOG, client)

        first = asyncio.create_task(orchestrator.submit(QUERY))
        await asyncio.sleep(0)

        assert orchestrator.state == AdvisorState.requesting
        assert orchestrator.loading is True
        assert await orchestrator.submit(QUERY) is None

        gate.set()
        response = await first
        return client, orchestrator, response

    client, orchestrator, response = asyncio.run(scenario())

    assert client.calls == [QUERY]
    assert orchestrator.state == AdvisorState.succeeded
    assert orchestrator.loading is False
    assert response is not None


def test_oversized_confidence_falls_back_instead_of_crashing():
    raw = '{"recommendations": [{"productId": "phone-compact", "confidence": ' + "7" * 5000 + ', "reason": "x"}]}'
    orchestrator = AdvisorOrchestrator(CATALOG, FakeClient(RemoteReply(raw_text=raw)))

    response = _submit(orchestrator)

    assert orchestrator.state == AdvisorState.fallback_applied
    assert response.recommendations == score(QUERY, CATALOG)
    assert orchestrator.loading is False


def test_unexpected_resolution_error_ends_in_failed():
    client = FakeClient(RemoteReply(raw_text='{"recommendations": []}'))
    scorer = MagicMock(side_effect=RuntimeError("scorer blew up"))
    orchestrator = AdvisorOrchestrator(CATALOG, client, scorer=scorer)

    with pytest.raises(RuntimeError):
        _submit(orchestrator)

    snap = orchestrator.snapshot()
    assert snap.state == AdvisorState.failed
    assert snap.error == "Something went wrong."
    assert snap.loading is False
    assert snap.result is None
