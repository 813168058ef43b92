from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Sequence

from ..catalog.models import Product, has_numeric_spec, numeric_spec
from .models import Recommendation

MAX_RECOMMENDATIONS = 3
FALLBACK_REASON = "well-reviewed"

# ---------------------------------------------------------------------------
# Signal extraction
# ---------------------------------------------------------------------------

# "around"/"about" only count with an explicit "$". Amounts followed by a
# decimal part or a unit (weight, hours, storage, size) are not prices.
_BUDGET_RE = re.compile(
    r"(?:(?:under|below|less than|budget(?:\s+of)?)\s*\$?\s*|(?:around|about)\s*\$\s*|\$\s*)"
    r"(\d[\d,]{0,11})"
    r"(?![\d,]|\.\d|\s*(?:kg|lbs?|g\b|grams?|hours?|hrs?|h\b|days?|gb|tb|mah|wh|inch|mm|cm|hz|mp\b|%|\"))",
    re.IGNORECASE,
)

_CATEGORY_KEYWORDS: dict[str, re.Pattern[str]] = {
    "laptop": re.compile(r"\b(?:laptop|notebook|ultrabook)", re.IGNORECASE),
    "smartphone": re.compile(r"\b(?:phone|smartphone|mobile)", re.IGNORECASE),
    "earbuds": re.compile(r"\b(?:earbud|earphone|headphone)", re.IGNORECASE),
    "smartwatch": re.compile(r"\b(?:watch|smartwatch)", re.IGNORECASE),
}

_PORTABILITY_RE = re.compile(r"lightweight|travel|portable|compact", re.IGNORECASE)
_PERFORMANCE_RE = re.compile(
    r"gaming|video editing|render|heavy duty|powerful|creator|graphics",
    re.IGNORECASE,
)
_FITNESS_RE = re.compile(r"fitness|running|workout|health|sleep tracking", re.IGNORECASE)
_GPU_FEATURE_RE = re.compile(r"gpu|graphics", re.IGNORECASE)

_BATTERY_SPECS = ("batteryWh", "batteryHours", "batteryDays", "batteryMah")


@dataclass(frozen=True)
class QuerySignals:
    budget: int | None = None
    categories: frozenset[str] = field(default_factory=frozenset)
    portability: bool = False
    performance: bool = False
    fitness: bool = False
    battery: bool = False
    camera: bool = False
    noise: bool = False


def extract_budget(query: str) -> int | None:
    """Return the first dollar amount the query puts a ceiling on, if any."""
    match = _BUDGET_RE.search(query)
    if not match:
        return None
    digits = match.group(1).replace(",", "")
    return int(digits) if digits else None


def extract_categories(query: str) -> frozenset[str]:
    return frozenset(
        category for category, pattern in _CATEGORY_KEYWORDS.items() if pattern.search(query)
    )


def extract_signals(query: str) -> QuerySignals:
    lower = query.lower()
    return QuerySignals(
        budget=extract_budget(query),
        categories=extract_categories(query),
        portability=bool(_PORTABILITY_RE.search(query)),
        performance=bool(_PERFORMANCE_RE.search(query)),
        fitness=bool(_FITNESS_RE.search(query)),
        battery="battery" in lower,
        camera="camera" in lower,
        noise="noise" in lower,
    )


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def _score_product(product: Product, signals: QuerySignals) -> tuple[float, list[str]]:
    """Compute the additive heuristic score and reason fragments for one product."""
    score = 0.0
    reasons: list[str] = []
    category = product.category.lower()

    if signals.categories:
        if category in signals.categories:
            score += 1.5
            reasons.append(f"matches {product.category.lower()}")
        else:
            score -= 1

    if signals.budget is not None:
        if product.price <= signals.budget:
            score += 1
            reasons.append(f"within ${signals.budget} budget")
        else:
            score -= 1

    if signals.portability:
        weight = numeric_spec(product, "weightKg")
        if weight is not None and weight < 1.5:
            score += 1.2
            reasons.append(f"lightweight ({weight:g} kg)")

    if signals.battery and has_numeric_spec(product, *_BATTERY_SPECS):
        score += 1
        reasons.append("good battery")

    if signals.camera and category == "smartphone":
        score += 1
        reasons.append("good camera")

    if signals.noise and category == "earbuds":
        score += 1
        reasons.append("noise cancelling")

    if signals.performance and category == "laptop":
        ram = numeric_spec(product, "ramGB")
        if ram is not None and ram >= 16:
            score += 0.8
            reasons.append(f"{ram:g}GB RAM")
        if any(_GPU_FEATURE_RE.search(f) for f in product.features):
            score += 0.8
            reasons.append("dedicated graphics")

    if signals.fitness and category == "smartwatch":
        score += 1
        reasons.append("fitness tracking")

    score += product.rating * 0.25
    return score, reasons


def _confidence(score: float) -> float:
    return max(0.0, min(1.0, score / 5))


def score(query: str, catalog: Sequence[Product]) -> list[Recommendation]:
    """
    Rank catalog products against a free-text need without any remote call.

    Deterministic: ties keep catalog order (``sorted`` is stable), and at most
    three products are returned regardless of the sign of their score.
    """
    signals = extract_signals(query)

    scored = []
    for product in catalog:
        value, reasons = _score_product(product, signals)
        scored.append((product, value, reasons))

    ranked = sorted(scored, key=lambda item: item[1], reverse=True)

    return [
        Recommendation(
            product_id=product.id,
            confidence=_confidence(value),
            reason=", ".join(reasons) or FALLBACK_REASON,
        )
        for product, value, reasons in ranked[:MAX_RECOMMENDATIONS]
    ]
