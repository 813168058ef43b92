from __future__ import annotations

import json
import logging
import math
from typing import Any

from ..errors import MalformedResponse
from .models import Recommendation

logger = logging.getLogger(__name__)


def _confidence(value: Any) -> float | None:
    """Clamp a numeric confidence into [0, 1]; ``None`` for anything non-numeric."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, int):
        # Arbitrarily large ints would overflow a float conversion.
        return 0.0 if value < 0 else 1.0 if value > 1 else float(value)
    if math.isnan(value):
        return None
    return max(0.0, min(1.0, value))


def _parse_entries(raw_text: str) -> list[Any]:
    try:
        parsed = json.loads(raw_text)
    except (ValueError, RecursionError) as exc:
        raise MalformedResponse(f"model output is not JSON: {exc}") from exc

    if not isinstance(parsed, dict):
        raise MalformedResponse("model output is not a JSON object")

    entries = parsed.get("recommendations")
    if not isinstance(entries, list):
        raise MalformedResponse("'recommendations' is missing or not a list")

    return entries


def normalize(raw_text: str | None) -> list[Recommendation]:
    """
    Turn raw model output into recommendations, never raising.

    Entries without a string ``productId``, a numeric ``confidence`` and a
    string ``reason`` are dropped. Confidence is clamped into [0, 1] and the
    model's ordering is kept.
    """
    if raw_text is None:
        return []

    try:
        entries = _parse_entries(raw_text)
    except MalformedResponse as exc:
        logger.debug("Discarding malformed advisor output: %s", exc)
        return []

    results: list[Recommendation] = []
    for item in entries:
        if not isinstance(item, dict):
            continue
        product_id = item.get("productId")
        confidence = _confidence(item.get("confidence"))
        reason = item.get("reason")
        if isinstance(product_id, str) and confidence is not None and isinstance(reason, str):
            results.append(Recommendation(
                product_id=product_id,
                confidence=confidence,
                reason=reason,
            ))

    dropped = len(entries) - len(results)
    if dropped:
        logger.debug("Dropped %d advisor entries with missing or mistyped fields", dropped)

    return results
